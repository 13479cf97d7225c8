from __future__ import annotations

import contextvars
from contextlib import contextmanager
from types import MappingProxyType
from typing import Any, Iterator, Mapping, Optional

_EMPTY: Mapping[str, Any] = MappingProxyType({})

_current_bindings: contextvars.ContextVar[Optional[Mapping[str, Any]]] = (
    contextvars.ContextVar("discord_interaction_bindings", default=None)
)


def get_bindings() -> Mapping[str, Any]:
    """Bindings of the interaction being handled by the current task.

    Useful for helpers called from a handler that were not handed the context.
    Each request task sees only its own bindings.
    """
    bindings = _current_bindings.get()
    return bindings if bindings is not None else _EMPTY


@contextmanager
def bindings_scope(bindings: Optional[Mapping[str, Any]]) -> Iterator[None]:
    token = _current_bindings.set(bindings)
    try:
        yield
    finally:
        _current_bindings.reset(token)
