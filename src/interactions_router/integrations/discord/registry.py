from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Generic, Iterator, Optional, Pattern, TypeVar, Union

from .errors import DiscordRoutingError

H = TypeVar("H")

CATCH_ALL_KEY = ""


@dataclass(frozen=True)
class ExactKey:
    value: str

    def matches(self, key: str) -> bool:
        return self.value == key


@dataclass(frozen=True)
class PatternKey:
    pattern: Pattern[str]

    def matches(self, key: str) -> bool:
        return self.pattern.search(key) is not None


RegistryKey = Union[ExactKey, PatternKey]
KeyLike = Union[str, Pattern[str]]


def as_registry_key(key: KeyLike) -> RegistryKey:
    if isinstance(key, str):
        return ExactKey(key)
    if isinstance(key, re.Pattern):
        return PatternKey(key)
    raise TypeError(f"handler key must be a str or compiled pattern, got {key!r}")


def _public_key(key: RegistryKey) -> KeyLike:
    return key.value if isinstance(key, ExactKey) else key.pattern


class HandlerRegistry(Generic[H]):
    """Ordered exact/pattern keyed handler table.

    Lookup order is exact literal, then the first pattern (in registration
    order) whose ``search`` succeeds, then the ``""`` catch-all.
    """

    def __init__(self, category: str = "handler") -> None:
        self.category = category
        self._entries: dict[RegistryKey, H] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[tuple[KeyLike, H]]:
        for key, handler in list(self._entries.items()):
            yield _public_key(key), handler

    def __contains__(self, key: object) -> bool:
        if not isinstance(key, (str, re.Pattern)):
            return False
        return as_registry_key(key) in self._entries

    def set(self, key: KeyLike, handler: H) -> None:
        # Overwriting keeps the original position; dict assignment preserves it.
        self._entries[as_registry_key(key)] = handler

    def get(self, key: str) -> Optional[H]:
        return self._entries.get(ExactKey(key))

    def match(self, key: str) -> Optional[H]:
        for registry_key, handler in self._entries.items():
            if isinstance(registry_key, PatternKey) and registry_key.matches(key):
                return handler
        return None

    def merge(self, other: "HandlerRegistry[H]") -> None:
        for key, handler in other:
            self.set(key, handler)

    def resolve(self, key: str) -> H:
        handler = self.get(key)
        if handler is None:
            handler = self.match(key)
        if handler is None:
            handler = self.get(CATCH_ALL_KEY)
        if handler is None:
            raise DiscordRoutingError(f"{self.category}:{key}")
        return handler
