from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Protocol, Sequence, Union, runtime_checkable

from starlette.responses import JSONResponse

from ...core.logging_utils import log_event
from .constants import DISCORD_MAX_AUTOCOMPLETE_CHOICES, InteractionResponseType

logger = logging.getLogger(__name__)


@runtime_checkable
class SupportsToDict(Protocol):
    """Conversion hook implemented by payload builders."""

    def to_dict(self) -> Any: ...


MessageData = Union[str, Mapping[str, Any], SupportsToDict, None]


def to_plain(value: Any) -> Any:
    if isinstance(value, SupportsToDict):
        return value.to_dict()
    return value


def prepare_message_data(data: MessageData) -> dict[str, Any]:
    """Normalize handler message input into a plain callback data dict."""
    if data is None:
        return {}
    if isinstance(data, str):
        return {"content": data}
    plain = to_plain(data)
    if not isinstance(plain, Mapping):
        raise TypeError(f"message data must be a mapping, got {type(plain).__name__}")
    prepared = dict(plain)
    if "components" in prepared:
        components = to_plain(prepared["components"])
        if isinstance(components, Sequence) and not isinstance(components, str):
            components = [to_plain(item) for item in components]
        prepared["components"] = components
    embeds = prepared.get("embeds")
    if isinstance(embeds, Sequence) and not isinstance(embeds, str):
        prepared["embeds"] = [to_plain(embed) for embed in embeds]
    return prepared


def prepare_autocomplete_data(choices: Any) -> dict[str, Any]:
    plain = to_plain(choices)
    if isinstance(plain, Mapping):
        items = plain.get("choices") or []
    else:
        items = plain or []
    normalized = [to_plain(item) for item in items]
    if len(normalized) > DISCORD_MAX_AUTOCOMPLETE_CHOICES:
        log_event(
            logger,
            logging.WARNING,
            "discord.autocomplete.choices_truncated",
            received=len(normalized),
            limit=DISCORD_MAX_AUTOCOMPLETE_CHOICES,
        )
        normalized = normalized[:DISCORD_MAX_AUTOCOMPLETE_CHOICES]
    return {"choices": normalized}


@dataclass(frozen=True)
class InteractionResponse:
    """Synchronous reply to one interaction; serialized as the HTTP body."""

    type: InteractionResponseType
    data: Optional[dict[str, Any]] = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"type": int(self.type)}
        if self.data is not None and self.type != InteractionResponseType.PONG:
            payload["data"] = self.data
        return payload

    def to_response(self) -> JSONResponse:
        return JSONResponse(self.to_dict())


PONG = InteractionResponse(InteractionResponseType.PONG)
