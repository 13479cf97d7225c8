from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import NoReturn, Optional

import typer
import uvicorn

from ...core.config import InteractionsConfig, load_config
from ...core.exceptions import ConfigError
from ...core.logging_utils import setup_rotating_logger
from ...integrations.discord.config import (
    DiscordInteractionsConfig,
    DiscordInteractionsConfigError,
)
from ...integrations.discord.dispatcher import DiscordInteractionsApp
from ...integrations.discord.errors import DiscordError
from ...integrations.discord.execution import ExecutionContext
from ..web.app import create_app, environ_bindings, load_interactions_app

logger = logging.getLogger("interactions_router.cli")

app = typer.Typer(add_completion=False)

__version__ = "0.1.0"


def raise_exit(message: str, *, cause: Optional[BaseException] = None) -> NoReturn:
    typer.echo(message, err=True)
    if cause is not None:
        raise typer.Exit(code=1) from cause
    raise typer.Exit(code=1)


def _version_callback(value: bool) -> None:
    if not value:
        return
    typer.echo(f"interactions-router {__version__}")
    raise typer.Exit(code=0)


@app.callback()
def _root(
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show the version and exit.",
    ),
) -> None:
    """Serve Discord interaction webhooks."""


def _load(
    target: str, config_path: Optional[Path]
) -> tuple[InteractionsConfig, DiscordInteractionsApp]:
    try:
        config = load_config(config_path)
        discord_config = DiscordInteractionsConfig.from_raw(config.raw.get("discord"))
    except (ConfigError, DiscordInteractionsConfigError) as exc:
        raise_exit(str(exc), cause=exc)
    setup_rotating_logger("interactions_router", config.log)
    try:
        interactions = load_interactions_app(target)
    except (ImportError, ValueError) as exc:
        raise_exit(f"Unable to load app {target!r}: {exc}", cause=exc)
    return config, interactions.configure(discord_config)


@app.command("serve")
def serve(
    target: str = typer.Option(..., "--app", help="Interactions app as module:attribute"),
    config_path: Optional[Path] = typer.Option(
        None, "--config", help="Config file or directory holding interactions.yml"
    ),
    host: Optional[str] = typer.Option(None, "--host", help="Host to bind"),
    port: Optional[int] = typer.Option(None, "--port", help="Port to bind"),
) -> None:
    config, interactions = _load(target, config_path)
    bind_host = host or config.server.host
    bind_port = port or config.server.port
    typer.echo(f"Serving interactions on http://{bind_host}:{bind_port}/")
    uvicorn.run(
        create_app(interactions),
        host=bind_host,
        port=bind_port,
        access_log=config.server.access_log,
    )


async def _fire_cron(interactions: DiscordInteractionsApp, expression: str) -> None:
    env = environ_bindings()
    execution_ctx = ExecutionContext(bindings=env)
    await interactions.scheduled(expression, env=env, execution_ctx=execution_ctx)
    await execution_ctx.drain()


@app.command("cron")
def cron(
    expression: str = typer.Argument(..., help="Trigger expression to match"),
    target: str = typer.Option(..., "--app", help="Interactions app as module:attribute"),
    config_path: Optional[Path] = typer.Option(
        None, "--config", help="Config file or directory holding interactions.yml"
    ),
) -> None:
    _config, interactions = _load(target, config_path)
    try:
        asyncio.run(_fire_cron(interactions, expression))
    except DiscordError as exc:
        raise_exit(str(exc), cause=exc)
    typer.echo(f"Cron trigger {expression!r} handled.")


def main() -> None:
    app()
