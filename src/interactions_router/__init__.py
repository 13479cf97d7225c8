"""Signed Discord interaction webhooks routed to registered handlers."""

from .integrations.discord import (
    AutocompleteContext,
    CommandContext,
    ComponentContext,
    CronContext,
    DiscordInteractionsApp,
    ExecutionContext,
    InteractionResponse,
    ModalContext,
    decode_custom_id,
    encode_custom_id,
    get_bindings,
)
from .surfaces.web import create_app

__all__ = [
    "AutocompleteContext",
    "CommandContext",
    "ComponentContext",
    "CronContext",
    "DiscordInteractionsApp",
    "ExecutionContext",
    "InteractionResponse",
    "ModalContext",
    "create_app",
    "decode_custom_id",
    "encode_custom_id",
    "get_bindings",
]
