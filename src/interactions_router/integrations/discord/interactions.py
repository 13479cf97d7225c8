from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping, Optional, Union

from .constants import AUTOCOMPLETE_OPTION_TYPES, InteractionType, OptionType
from .errors import DiscordProtocolError


def _as_id(value: object) -> str | None:
    if value is None:
        return None
    token = str(value).strip()
    return token or None


def _interaction_type(value: object) -> Union[InteractionType, int]:
    if isinstance(value, bool) or not isinstance(value, int):
        return 0
    try:
        return InteractionType(value)
    except ValueError:
        return value


@dataclass(frozen=True)
class InteractionEnvelope:
    """Immutable view of the decoded request body."""

    type: Union[InteractionType, int]
    id: Optional[str]
    token: Optional[str]
    data: Optional[Mapping[str, Any]]
    payload: Mapping[str, Any] = field(repr=False, compare=False)

    @classmethod
    def from_payload(cls, payload: Any) -> "InteractionEnvelope":
        raw = payload if isinstance(payload, dict) else {}
        data = raw.get("data")
        return cls(
            type=_interaction_type(raw.get("type")),
            id=_as_id(raw.get("id")),
            token=_as_id(raw.get("token")),
            data=MappingProxyType(data) if isinstance(data, dict) else None,
            payload=MappingProxyType(raw),
        )

    def require_data(self) -> Mapping[str, Any]:
        if self.data is None:
            raise DiscordProtocolError("data")
        return self.data


@dataclass(frozen=True)
class SubCommand:
    group: str = ""
    command: str = ""

    @property
    def path(self) -> str:
        return " ".join(part for part in (self.group, self.command) if part)


def _option_list(value: object) -> list[dict[str, Any]]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, dict)]


def extract_command_name(envelope: InteractionEnvelope) -> str:
    data = envelope.require_data()
    name = data.get("name")
    if not isinstance(name, str) or not name:
        raise DiscordProtocolError("data.name")
    return name.casefold()


def extract_sub_command_and_options(
    data: Optional[Mapping[str, Any]],
) -> tuple[SubCommand, list[dict[str, Any]]]:
    """Peel sub-command group/sub-command levels off an option tree.

    Returns the sub-command path and the remaining leaf options.
    """
    if data is None:
        return SubCommand(), []
    options = _option_list(data.get("options"))
    group = ""
    command = ""
    if options and options[0].get("type") == OptionType.SUB_COMMAND_GROUP:
        group = str(options[0].get("name") or "")
        options = _option_list(options[0].get("options"))
    if options and options[0].get("type") == OptionType.SUB_COMMAND:
        command = str(options[0].get("name") or "")
        options = _option_list(options[0].get("options"))
    return SubCommand(group=group, command=command), options


def flatten_options(options: list[dict[str, Any]]) -> dict[str, Any]:
    parsed: dict[str, Any] = {}
    for item in options:
        name = item.get("name")
        if not isinstance(name, str) or not name:
            continue
        parsed[name] = item.get("value")
    return parsed


def extract_focused_option(
    options: list[dict[str, Any]],
) -> Optional[dict[str, Any]]:
    """Return the focused leaf option; if several claim focus, the last one wins."""
    focused: Optional[dict[str, Any]] = None
    for item in options:
        if item.get("focused") and item.get("type") in AUTOCOMPLETE_OPTION_TYPES:
            focused = item
    return focused


def extract_component_custom_id(envelope: InteractionEnvelope) -> str:
    data = envelope.require_data()
    custom_id = data.get("custom_id")
    if not isinstance(custom_id, str):
        raise DiscordProtocolError("data.custom_id")
    return custom_id


def extract_component_values(envelope: InteractionEnvelope) -> list[str]:
    if envelope.data is None:
        return []
    values = envelope.data.get("values")
    if not isinstance(values, list):
        return []
    return [str(v) for v in values if isinstance(v, (str, int, float))]


def extract_modal_values(envelope: InteractionEnvelope) -> dict[str, Any]:
    """Flatten every action row of a modal submission into ``custom_id -> value``."""
    data = envelope.require_data()
    values: dict[str, Any] = {}
    for row in _option_list(data.get("components")):
        for component in _option_list(row.get("components")):
            custom_id = component.get("custom_id")
            if isinstance(custom_id, str) and custom_id:
                values[custom_id] = component.get("value")
    return values


def extract_message_id(envelope: InteractionEnvelope) -> Optional[str]:
    message = envelope.payload.get("message")
    if not isinstance(message, dict):
        return None
    return _as_id(message.get("id"))


def extract_channel_id(envelope: InteractionEnvelope) -> Optional[str]:
    return _as_id(envelope.payload.get("channel_id"))


def extract_guild_id(envelope: InteractionEnvelope) -> Optional[str]:
    return _as_id(envelope.payload.get("guild_id"))


def extract_user_id(envelope: InteractionEnvelope) -> Optional[str]:
    member = envelope.payload.get("member")
    if isinstance(member, dict):
        member_user = member.get("user")
        if isinstance(member_user, dict):
            user_id = _as_id(member_user.get("id"))
            if user_id:
                return user_id
    user = envelope.payload.get("user")
    if isinstance(user, dict):
        return _as_id(user.get("id"))
    return None
