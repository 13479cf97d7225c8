from __future__ import annotations

import re

import pytest

from interactions_router.integrations.discord.errors import DiscordRoutingError
from interactions_router.integrations.discord.registry import HandlerRegistry


def _registry() -> HandlerRegistry[str]:
    registry: HandlerRegistry[str] = HandlerRegistry("command")
    registry.set("ping", "exact")
    registry.set(re.compile(r"^task-"), "pattern")
    registry.set("", "catch-all")
    return registry


def test_resolve_prefers_exact_then_pattern_then_catch_all() -> None:
    registry = _registry()
    assert registry.resolve("ping") == "exact"
    assert registry.resolve("task-7") == "pattern"
    assert registry.resolve("other") == "catch-all"


def test_resolve_on_empty_registry_raises_routing_error() -> None:
    registry: HandlerRegistry[str] = HandlerRegistry("component")
    with pytest.raises(DiscordRoutingError) as excinfo:
        registry.resolve("anything")
    assert excinfo.value.key == "component:anything"


def test_get_is_exact_only_and_match_is_pattern_only() -> None:
    registry = _registry()
    assert registry.get("task-7") is None
    assert registry.match("ping") is None
    assert registry.match("task-1") == "pattern"


def test_exact_beats_earlier_pattern() -> None:
    registry: HandlerRegistry[str] = HandlerRegistry()
    registry.set(re.compile("ping"), "pattern")
    registry.set("ping", "exact")
    assert registry.resolve("ping") == "exact"


def test_first_registered_pattern_wins() -> None:
    registry: HandlerRegistry[str] = HandlerRegistry()
    registry.set(re.compile("^a"), "first")
    registry.set(re.compile("^ab"), "second")
    assert registry.resolve("abc") == "first"


def test_merge_overwrites_in_place_and_appends_new_entries() -> None:
    destination: HandlerRegistry[str] = HandlerRegistry()
    destination.set("a", "a1")
    destination.set("b", "b1")
    source: HandlerRegistry[str] = HandlerRegistry()
    source.set("c", "c2")
    source.set("a", "a2")

    destination.merge(source)

    assert list(destination) == [("a", "a2"), ("b", "b1"), ("c", "c2")]


def test_set_rejects_unsupported_key_types() -> None:
    registry: HandlerRegistry[str] = HandlerRegistry()
    with pytest.raises(TypeError):
        registry.set(42, "nope")  # type: ignore[arg-type]


def test_contains_and_len() -> None:
    registry = _registry()
    assert len(registry) == 3
    assert "ping" in registry
    assert re.compile(r"^task-") in registry
    assert "missing" not in registry
