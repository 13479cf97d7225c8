from __future__ import annotations

import importlib
import logging
import os
from typing import Any, Callable, Mapping, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse, Response
from starlette.background import BackgroundTask

from ...core.logging_utils import log_event
from ...integrations.discord.constants import (
    HEALTH_TEXT,
    SIGNATURE_HEADER,
    TIMESTAMP_HEADER,
)
from ...integrations.discord.dispatcher import DiscordInteractionsApp
from ...integrations.discord.errors import (
    DiscordConfigError,
    DiscordProtocolError,
    DiscordRoutingError,
)
from ...integrations.discord.execution import ExecutionContext

logger = logging.getLogger(__name__)

BindingsProvider = Callable[[], Mapping[str, Any]]


def environ_bindings() -> Mapping[str, Any]:
    return dict(os.environ)


def _attach_background(response: Response, execution_ctx: ExecutionContext) -> Response:
    if execution_ctx.pending_count == 0:
        return response
    if response.background is not None:
        # Keep any background work the handler attached itself.
        existing = response.background

        async def run_both() -> None:
            await existing()
            await execution_ctx.drain()

        response.background = BackgroundTask(run_both)
    else:
        response.background = BackgroundTask(execution_ctx.drain)
    return response


def create_app(
    interactions: DiscordInteractionsApp,
    *,
    bindings: BindingsProvider = environ_bindings,
    path: str = "/",
) -> FastAPI:
    """Expose ``interactions`` as an HTTP webhook endpoint."""
    app = FastAPI(docs_url=None, redoc_url=None, openapi_url=None)
    app.state.interactions = interactions

    @app.exception_handler(DiscordConfigError)
    async def _config_error(request: Request, exc: DiscordConfigError) -> Response:
        log_event(logger, logging.ERROR, "discord.config.missing", name=exc.name)
        return JSONResponse({"error": exc.user_message}, status_code=500)

    @app.exception_handler(DiscordProtocolError)
    async def _protocol_error(request: Request, exc: DiscordProtocolError) -> Response:
        log_event(logger, logging.WARNING, "discord.interaction.malformed", field=exc.field)
        return JSONResponse({"error": exc.user_message}, status_code=400)

    @app.exception_handler(DiscordRoutingError)
    async def _routing_error(request: Request, exc: DiscordRoutingError) -> Response:
        log_event(logger, logging.ERROR, "discord.interaction.unrouted", key=exc.key)
        return JSONResponse({"error": exc.user_message}, status_code=404)

    @app.get(path)
    async def health() -> Response:
        return PlainTextResponse(HEALTH_TEXT)

    @app.post(path)
    async def receive_interaction(request: Request) -> Response:
        env = bindings()
        execution_ctx = ExecutionContext(bindings=env)
        body = await request.body()
        response = await interactions.handle_webhook(
            body=body,
            signature=request.headers.get(SIGNATURE_HEADER),
            timestamp=request.headers.get(TIMESTAMP_HEADER),
            env=env,
            execution_ctx=execution_ctx,
            event=request,
        )
        return _attach_background(response, execution_ctx)

    return app


def load_interactions_app(target: str) -> DiscordInteractionsApp:
    """Import ``module:attribute`` and return the interactions app it names."""
    module_name, _, attribute = target.partition(":")
    if not module_name or not attribute:
        raise ValueError(f"expected 'module:attribute', got {target!r}")
    module = importlib.import_module(module_name)
    candidate: Optional[Any] = module
    for part in attribute.split("."):
        candidate = getattr(candidate, part, None)
        if candidate is None:
            raise ValueError(f"{target!r} does not exist")
    if not isinstance(candidate, DiscordInteractionsApp):
        raise ValueError(f"{target!r} is not a DiscordInteractionsApp")
    return candidate
