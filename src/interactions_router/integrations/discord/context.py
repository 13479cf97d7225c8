from __future__ import annotations

import inspect
from typing import (
    Any,
    Awaitable,
    Callable,
    Generic,
    Mapping,
    Optional,
    TypeVar,
    Union,
)

import httpx

from .config import DiscordEnv
from .constants import DISCORD_FLAG_EPHEMERAL, InteractionResponseType
from .custom_id import CustomIdToken
from .errors import DiscordProtocolError
from .execution import ExecutionContext
from .interactions import (
    InteractionEnvelope,
    SubCommand,
    extract_component_values,
    extract_message_id,
)
from .responses import (
    InteractionResponse,
    MessageData,
    prepare_autocomplete_data,
    prepare_message_data,
    to_plain,
)
from .rate_limit import RateLimitController
from .rest import Attachments, DiscordFollowupClient

EventT = TypeVar("EventT")
SelfT = TypeVar("SelfT", bound="MessageContext[Any]")

FollowupClientFactory = Callable[[], DiscordFollowupClient]
Continuation = Callable[[SelfT], Union[Awaitable[Any], None]]


class BaseContext(Generic[EventT]):
    """State shared by every handler context."""

    def __init__(
        self,
        *,
        event: EventT,
        env: Optional[Mapping[str, Any]],
        execution_ctx: Optional[ExecutionContext],
        discord: DiscordEnv,
    ) -> None:
        self._event = event
        self._env: Mapping[str, Any] = env if env is not None else {}
        self._execution_ctx = execution_ctx
        self._vars: dict[str, Any] = {}
        self.discord = discord

    @property
    def env(self) -> Mapping[str, Any]:
        return self._env

    @property
    def event(self) -> EventT:
        return self._event

    @property
    def execution_ctx(self) -> ExecutionContext:
        if self._execution_ctx is None:
            raise RuntimeError("no execution context is attached to this handler")
        return self._execution_ctx

    def set(self, key: str, value: Any) -> None:
        self._vars[key] = value

    def get(self, key: str, default: Any = None) -> Any:
        return self._vars.get(key, default)

    @property
    def var(self) -> dict[str, Any]:
        return dict(self._vars)


class InteractionContext(BaseContext[EventT]):
    def __init__(
        self,
        *,
        event: EventT,
        env: Optional[Mapping[str, Any]],
        execution_ctx: Optional[ExecutionContext],
        discord: DiscordEnv,
        envelope: InteractionEnvelope,
        key: str,
    ) -> None:
        super().__init__(
            event=event, env=env, execution_ctx=execution_ctx, discord=discord
        )
        self.envelope = envelope
        self.key = key

    @property
    def interaction(self) -> Mapping[str, Any]:
        """Raw interaction payload as received."""
        return self.envelope.payload


class MessageContext(InteractionContext[EventT]):
    """Contexts that can answer with a message and send follow-ups."""

    def __init__(
        self,
        *,
        event: EventT,
        env: Optional[Mapping[str, Any]],
        execution_ctx: Optional[ExecutionContext],
        discord: DiscordEnv,
        envelope: InteractionEnvelope,
        key: str,
        followup_client_factory: FollowupClientFactory = DiscordFollowupClient,
    ) -> None:
        super().__init__(
            event=event,
            env=env,
            execution_ctx=execution_ctx,
            discord=discord,
            envelope=envelope,
            key=key,
        )
        self._flags: dict[str, int] = {}
        self._followup_client_factory = followup_client_factory
        self._rate_limit: Optional[RateLimitController] = None

    def ephemeral(self: SelfT, flag: bool = True) -> SelfT:
        """Limit the reply and later follow-ups to the invoking user."""
        self._flags = {"flags": DISCORD_FLAG_EPHEMERAL} if flag else {}
        return self

    def _message(
        self, data: MessageData, response_type: InteractionResponseType
    ) -> InteractionResponse:
        return InteractionResponse(
            response_type, {**self._flags, **prepare_message_data(data)}
        )

    async def _run_continuation(self, handler: Continuation[Any]) -> None:
        result = handler(self)
        if inspect.isawaitable(result):
            await result

    def _schedule(self, handler: Optional[Continuation[Any]]) -> None:
        # The handler is only called once the host drains the execution context.
        if handler is not None:
            self.execution_ctx.wait_until(self._run_continuation(handler))

    def res(self, data: MessageData = None) -> InteractionResponse:
        """Reply immediately with a channel message."""
        return self._message(data, InteractionResponseType.CHANNEL_MESSAGE)

    def res_defer(
        self: SelfT, handler: Optional[Continuation[SelfT]] = None
    ) -> InteractionResponse:
        """Acknowledge now; ``handler`` runs after the response is sent.

        The user sees a loading state until a follow-up is posted.
        """
        self._schedule(handler)
        return InteractionResponse(
            InteractionResponseType.DEFERRED_CHANNEL_MESSAGE, dict(self._flags)
        )

    def _chain_rate_limit(self, client: DiscordFollowupClient) -> RateLimitController:
        if self._rate_limit is None:
            self._rate_limit = client.rate_limit_controller()
        return self._rate_limit

    async def followup(
        self,
        data: MessageData = None,
        files: Attachments = None,
        retry: int = 0,
    ) -> httpx.Response:
        """Post a follow-up message for this interaction.

        ``retry`` bounds how many times a 429 is retried; the final response is
        returned whatever its status. Follow-ups from one context share rate
        limit state, so a later call waits when the quota ran low.
        """
        application_id = self.discord.require_application_id()
        token = self.envelope.token
        if not token:
            raise DiscordProtocolError("token")
        payload = {**self._flags, **prepare_message_data(data)}
        async with self._followup_client_factory() as client:
            return await client.create_followup_message(
                application_id=application_id,
                interaction_token=token,
                payload=payload,
                files=files,
                retry=retry,
                rate_limit=self._chain_rate_limit(client),
            )

    async def followup_delete(
        self, message_id: Optional[str] = None, retry: int = 0
    ) -> httpx.Response:
        """Delete a follow-up message, by default the one this interaction is attached to."""
        application_id = self.discord.require_application_id()
        token = self.envelope.token
        if not token:
            raise DiscordProtocolError("token")
        target = message_id or extract_message_id(self.envelope)
        if not target:
            raise DiscordProtocolError("message.id")
        async with self._followup_client_factory() as client:
            return await client.delete_followup_message(
                application_id=application_id,
                interaction_token=token,
                message_id=target,
                retry=retry,
                rate_limit=self._chain_rate_limit(client),
            )


def _modal_response(data: Any) -> InteractionResponse:
    return InteractionResponse(InteractionResponseType.MODAL, to_plain(data))


class CommandContext(MessageContext[EventT]):
    def __init__(self, *, sub: SubCommand, options: Mapping[str, Any], **kwargs: Any):
        super().__init__(**kwargs)
        self.sub = sub
        for name, value in options.items():
            self.set(name, value)

    def res_modal(self, data: Any) -> InteractionResponse:
        """Open a modal; ``data`` is a modal descriptor or a builder with ``to_dict``."""
        return _modal_response(data)


class ComponentContext(MessageContext[EventT]):
    def __init__(self, *, custom_id: CustomIdToken, **kwargs: Any):
        super().__init__(**kwargs)
        self.custom_id = custom_id.payload
        self.set("custom_id", custom_id.payload)

    @property
    def values(self) -> list[str]:
        """Selected values for select-menu components."""
        return extract_component_values(self.envelope)

    def res_update(self, data: MessageData = None) -> InteractionResponse:
        """Edit the message the component is attached to."""
        return self._message(data, InteractionResponseType.UPDATE_MESSAGE)

    def res_defer_update(
        self: SelfT, handler: Optional[Continuation[SelfT]] = None
    ) -> InteractionResponse:
        """Acknowledge now and edit the original message later, without a loading state."""
        self._schedule(handler)
        return InteractionResponse(InteractionResponseType.DEFERRED_UPDATE_MESSAGE)

    def res_modal(self, data: Any) -> InteractionResponse:
        return _modal_response(data)


class ModalContext(MessageContext[EventT]):
    def __init__(
        self, *, custom_id: CustomIdToken, values: Mapping[str, Any], **kwargs: Any
    ):
        super().__init__(**kwargs)
        self.custom_id = custom_id.payload
        self.set("custom_id", custom_id.payload)
        for name, value in values.items():
            self.set(name, value)


class AutocompleteContext(InteractionContext[EventT]):
    def __init__(
        self,
        *,
        sub: SubCommand,
        options: Mapping[str, Any],
        focused: Optional[dict[str, Any]],
        **kwargs: Any,
    ):
        super().__init__(**kwargs)
        self.sub = sub
        self.focused = focused
        for name, value in options.items():
            self.set(name, value)

    def res_autocomplete(self, choices: Any) -> InteractionResponse:
        return InteractionResponse(
            InteractionResponseType.AUTOCOMPLETE_RESULT,
            prepare_autocomplete_data(choices),
        )


class CronContext(BaseContext[str]):
    @property
    def cron(self) -> str:
        return self.event
