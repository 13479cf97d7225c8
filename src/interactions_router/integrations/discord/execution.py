from __future__ import annotations

import logging
from typing import Any, Awaitable, Mapping, Optional

from ...core.logging_utils import log_event
from .bindings import bindings_scope

logger = logging.getLogger(__name__)


class ExecutionContext:
    """Per-request holder for detached continuations.

    Work registered with :meth:`wait_until` is not awaited by the handler; the
    host calls :meth:`drain` once the response has been sent (Starlette runs it
    as a background task, and uvicorn waits for it on graceful shutdown).
    Failures are logged and never propagate out of :meth:`drain`.
    """

    def __init__(
        self,
        *,
        bindings: Optional[Mapping[str, Any]] = None,
        logger: logging.Logger = logger,
    ) -> None:
        self._pending: list[Awaitable[Any]] = []
        self._bindings = bindings
        self._logger = logger

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def bind(self, bindings: Optional[Mapping[str, Any]]) -> None:
        self._bindings = bindings

    def wait_until(self, awaitable: Awaitable[Any]) -> None:
        self._pending.append(awaitable)

    async def drain(self) -> None:
        while self._pending:
            awaitable = self._pending.pop(0)
            with bindings_scope(self._bindings):
                try:
                    await awaitable
                except Exception as exc:
                    log_event(
                        self._logger,
                        logging.ERROR,
                        "discord.continuation.failed",
                        exc=exc,
                    )
