from __future__ import annotations

import functools
import inspect
import json
import logging
from typing import (
    Any,
    Awaitable,
    Callable,
    Mapping,
    Optional,
    Union,
)

from starlette.responses import JSONResponse, PlainTextResponse, Response

from ...core.logging_utils import log_event
from .bindings import bindings_scope
from .config import DiscordEnv, DiscordEnvFactory, DiscordInteractionsConfig
from .constants import InteractionType
from .context import (
    AutocompleteContext,
    CommandContext,
    ComponentContext,
    CronContext,
    FollowupClientFactory,
    ModalContext,
)
from .custom_id import decode_custom_id
from .errors import DiscordProtocolError
from .execution import ExecutionContext
from .interactions import (
    InteractionEnvelope,
    extract_command_name,
    extract_component_custom_id,
    extract_focused_option,
    extract_modal_values,
    extract_sub_command_and_options,
    flatten_options,
)
from .registry import HandlerRegistry, KeyLike
from .responses import PONG, InteractionResponse
from .rest import DiscordFollowupClient
from .verify import verify_signature

logger = logging.getLogger(__name__)

HandlerResult = Union[InteractionResponse, Response]
Handler = Callable[[Any], Union[HandlerResult, Awaitable[HandlerResult]]]
CronHandler = Callable[[CronContext], Any]
Verifier = Callable[[bytes, Optional[str], Optional[str], str], Union[bool, Awaitable[bool]]]

UNKNOWN_TYPE_BODY = {"error": "Unknown Type"}


async def _maybe_await(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


def _as_response(result: Any) -> Response:
    if isinstance(result, Response):
        return result
    if isinstance(result, InteractionResponse):
        return result.to_response()
    raise TypeError(
        f"handler must return an InteractionResponse or Response, got {type(result).__name__}"
    )


class DiscordInteractionsApp:
    """Routes verified interaction webhooks to registered handlers.

    Handlers are registered per category by exact name or compiled pattern;
    the ``""`` key acts as the category's catch-all::

        app = DiscordInteractionsApp()

        @app.command("ping")
        def ping(c):
            return c.res("pong")
    """

    def __init__(
        self,
        *,
        verify: Verifier = verify_signature,
        discord_env: Optional[DiscordEnvFactory] = None,
        followup_client_factory: Optional[FollowupClientFactory] = None,
        logger: logging.Logger = logger,
    ) -> None:
        self._verify = verify
        # Caller hooks survive configure(); config only replaces the defaults.
        self._discord_env_defaults: DiscordEnvFactory = DiscordEnv.from_bindings
        self._discord_env_hook = discord_env
        self._custom_followup_client = followup_client_factory is not None
        self._followup_client_factory: FollowupClientFactory = (
            followup_client_factory or DiscordFollowupClient
        )
        self._logger = logger
        self.commands: HandlerRegistry[Handler] = HandlerRegistry("command")
        self.components: HandlerRegistry[Handler] = HandlerRegistry("component")
        self.autocompletes: HandlerRegistry[Handler] = HandlerRegistry("autocomplete")
        self.modals: HandlerRegistry[Handler] = HandlerRegistry("modal")
        self.crons: HandlerRegistry[CronHandler] = HandlerRegistry("cron")

    def _register(
        self, registry: HandlerRegistry[Any], key: KeyLike, handler: Optional[Any]
    ) -> Any:
        if handler is not None:
            registry.set(key, handler)
            return self

        def decorator(func: Any) -> Any:
            registry.set(key, func)
            return func

        return decorator

    def command(self, key: KeyLike, handler: Optional[Handler] = None) -> Any:
        """Register a slash-command handler; usable as a decorator."""
        return self._register(self.commands, key, handler)

    def component(self, key: KeyLike, handler: Optional[Handler] = None) -> Any:
        """Register a component handler keyed by custom-id namespace."""
        return self._register(self.components, key, handler)

    def autocomplete(
        self,
        key: KeyLike,
        handler: Optional[Handler] = None,
        command_handler: Optional[Handler] = None,
    ) -> Any:
        """Register an autocomplete handler, optionally with its command handler."""
        if command_handler is not None:
            self.commands.set(key, command_handler)
        return self._register(self.autocompletes, key, handler)

    def modal(self, key: KeyLike, handler: Optional[Handler] = None) -> Any:
        return self._register(self.modals, key, handler)

    def cron(self, key: KeyLike, handler: Optional[CronHandler] = None) -> Any:
        return self._register(self.crons, key, handler)

    def extend(self, other: "DiscordInteractionsApp") -> "DiscordInteractionsApp":
        self.commands.merge(other.commands)
        self.components.merge(other.components)
        self.autocompletes.merge(other.autocompletes)
        self.modals.merge(other.modals)
        self.crons.merge(other.crons)
        return self

    def configure(self, config: DiscordInteractionsConfig) -> "DiscordInteractionsApp":
        """Apply credential names, API base and follow-up pacing from config."""
        self._discord_env_defaults = config.env_factory()
        if not self._custom_followup_client:
            self._followup_client_factory = functools.partial(
                DiscordFollowupClient,
                base_url=config.api_base_url,
                followup=config.followup,
            )
        return self

    def resolve_discord_env(self, bindings: Optional[Mapping[str, Any]]) -> DiscordEnv:
        """Binding defaults, overlaid with whatever the ``discord_env`` hook sets."""
        resolved = self._discord_env_defaults(bindings)
        if self._discord_env_hook is not None:
            resolved = resolved.overlay(self._discord_env_hook(bindings))
        return resolved

    async def verify_request(
        self,
        body: bytes,
        signature: Optional[str],
        timestamp: Optional[str],
        discord: DiscordEnv,
    ) -> bool:
        public_key = discord.require_public_key()
        return bool(await _maybe_await(self._verify(body, signature, timestamp, public_key)))

    async def handle_webhook(
        self,
        *,
        body: bytes,
        signature: Optional[str],
        timestamp: Optional[str],
        env: Optional[Mapping[str, Any]] = None,
        execution_ctx: Optional[ExecutionContext] = None,
        event: Any = None,
    ) -> Response:
        """Verify and dispatch one raw POST body."""
        discord = self.resolve_discord_env(env)
        if not await self.verify_request(body, signature, timestamp, discord):
            log_event(self._logger, logging.INFO, "discord.interaction.bad_signature")
            return PlainTextResponse("Bad request signature.", status_code=401)
        try:
            payload = json.loads(body)
        except ValueError as exc:
            raise DiscordProtocolError("JSON body") from exc
        return await self.dispatch(
            payload,
            env=env,
            execution_ctx=execution_ctx,
            event=event,
            discord=discord,
        )

    async def dispatch(
        self,
        payload: Any,
        *,
        env: Optional[Mapping[str, Any]] = None,
        execution_ctx: Optional[ExecutionContext] = None,
        event: Any = None,
        discord: Optional[DiscordEnv] = None,
    ) -> Response:
        """Route an already-verified interaction payload."""
        envelope = InteractionEnvelope.from_payload(payload)
        if envelope.type == InteractionType.PING:
            return PONG.to_response()

        discord = discord or self.resolve_discord_env(env)
        if execution_ctx is not None:
            execution_ctx.bind(env)
        common: dict[str, Any] = {
            "event": event,
            "env": env,
            "execution_ctx": execution_ctx,
            "discord": discord,
            "envelope": envelope,
        }
        with bindings_scope(env):
            if envelope.type == InteractionType.APPLICATION_COMMAND:
                key = extract_command_name(envelope)
                handler = self.commands.resolve(key)
                sub, options = extract_sub_command_and_options(envelope.data)
                context: Any = CommandContext(
                    sub=sub,
                    options=flatten_options(options),
                    key=key,
                    followup_client_factory=self._followup_client_factory,
                    **common,
                )
            elif envelope.type == InteractionType.MESSAGE_COMPONENT:
                token = decode_custom_id(extract_component_custom_id(envelope))
                key = token.namespace
                handler = self.components.resolve(key)
                context = ComponentContext(
                    custom_id=token,
                    key=key,
                    followup_client_factory=self._followup_client_factory,
                    **common,
                )
            elif envelope.type == InteractionType.AUTOCOMPLETE:
                key = extract_command_name(envelope)
                handler = self.autocompletes.resolve(key)
                sub, options = extract_sub_command_and_options(envelope.data)
                context = AutocompleteContext(
                    sub=sub,
                    options=flatten_options(options),
                    focused=extract_focused_option(options),
                    key=key,
                    **common,
                )
            elif envelope.type == InteractionType.MODAL_SUBMIT:
                token = decode_custom_id(extract_component_custom_id(envelope))
                key = token.namespace
                handler = self.modals.resolve(key)
                context = ModalContext(
                    custom_id=token,
                    values=extract_modal_values(envelope),
                    key=key,
                    followup_client_factory=self._followup_client_factory,
                    **common,
                )
            else:
                log_event(
                    self._logger,
                    logging.ERROR,
                    "discord.interaction.unknown_type",
                    interaction_type=envelope.type,
                )
                return JSONResponse(UNKNOWN_TYPE_BODY, status_code=400)

            log_event(
                self._logger,
                logging.DEBUG,
                "discord.interaction.dispatch",
                interaction_type=int(envelope.type),
                interaction_id=envelope.id,
                key=key,
            )
            result = await _maybe_await(handler(context))
        return _as_response(result)

    async def scheduled(
        self,
        cron: str,
        *,
        env: Optional[Mapping[str, Any]] = None,
        execution_ctx: Optional[ExecutionContext] = None,
    ) -> None:
        """Fire the cron handler matching ``cron``; its result is ignored."""
        handler = self.crons.resolve(cron)
        context = CronContext(
            event=cron,
            env=env,
            execution_ctx=execution_ctx,
            discord=self.resolve_discord_env(env),
        )
        log_event(self._logger, logging.DEBUG, "discord.cron.dispatch", cron=cron)
        if execution_ctx is not None:
            execution_ctx.bind(env)
            with bindings_scope(env):
                result = handler(context)
            execution_ctx.wait_until(_maybe_await(result))
            return
        with bindings_scope(env):
            await _maybe_await(handler(context))
