from __future__ import annotations

from typing import Optional

from ...core.exceptions import PermanentError, RouterError, TransientError


class DiscordError(RouterError):
    """Base Discord integration error."""


class DiscordConfigError(DiscordError, PermanentError):
    """A required credential or setting is missing."""

    recoverable = PermanentError.recoverable
    severity = PermanentError.severity

    def __init__(self, name: str, *, user_message: Optional[str] = None) -> None:
        if user_message is None:
            user_message = "Server misconfigured."
        super().__init__(f"{name} is not configured", user_message=user_message)
        self.name = name


class DiscordProtocolError(DiscordError, PermanentError):
    """A required field is absent from an inbound interaction."""

    recoverable = PermanentError.recoverable
    severity = PermanentError.severity

    def __init__(self, field: str, *, user_message: Optional[str] = None) -> None:
        if user_message is None:
            user_message = "Malformed interaction."
        super().__init__(f"interaction is missing {field}", user_message=user_message)
        self.field = field


class DiscordRoutingError(DiscordError, PermanentError):
    """No handler matched and no catch-all is registered."""

    recoverable = PermanentError.recoverable
    severity = PermanentError.severity

    def __init__(self, key: str, *, user_message: Optional[str] = None) -> None:
        if user_message is None:
            user_message = "No handler for this interaction."
        super().__init__(f"no handler registered for {key!r}", user_message=user_message)
        self.key = key


class DiscordTransportError(DiscordError, TransientError):
    """An outbound follow-up call failed at the network layer."""

    def __init__(self, message: str, *, user_message: Optional[str] = None) -> None:
        if user_message is None:
            user_message = "Discord API unreachable."
        super().__init__(message, user_message=user_message)
