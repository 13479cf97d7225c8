"""Shared error taxonomy.

Integration packages compose these bases so boundary handlers can decide on
status codes and retry behavior without knowing the concrete error type.
"""

from __future__ import annotations

from typing import Optional


class RouterError(Exception):
    """Base error for the interactions router."""

    recoverable: bool = False
    severity: str = "error"

    def __init__(self, message: str, *, user_message: Optional[str] = None) -> None:
        super().__init__(message)
        self.user_message = user_message


class TransientError(RouterError):
    """Failure that may succeed if the same operation is retried later."""

    recoverable = True
    severity = "warning"


class PermanentError(RouterError):
    """Failure that will not go away by retrying."""

    recoverable = False
    severity = "error"


class ConfigError(PermanentError):
    """Invalid or missing configuration."""
