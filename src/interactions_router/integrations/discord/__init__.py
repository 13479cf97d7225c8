"""Discord interactions webhook routing."""

from .bindings import get_bindings
from .config import (
    DiscordEnv,
    DiscordInteractionsConfig,
    DiscordInteractionsConfigError,
    FollowupConfig,
)
from .constants import (
    DISCORD_API_BASE_URL,
    DISCORD_FLAG_EPHEMERAL,
    DISCORD_MAX_AUTOCOMPLETE_CHOICES,
    InteractionResponseType,
    InteractionType,
)
from .context import (
    AutocompleteContext,
    CommandContext,
    ComponentContext,
    CronContext,
    ModalContext,
)
from .custom_id import CustomIdToken, decode_custom_id, encode_custom_id
from .dispatcher import DiscordInteractionsApp
from .errors import (
    DiscordConfigError,
    DiscordError,
    DiscordProtocolError,
    DiscordRoutingError,
    DiscordTransportError,
)
from .execution import ExecutionContext
from .interactions import InteractionEnvelope, SubCommand
from .rate_limit import RateLimitController, RateLimitSnapshot
from .registry import HandlerRegistry
from .responses import InteractionResponse, SupportsToDict
from .rest import DiscordFollowupClient, FileAttachment
from .verify import verify_signature

__all__ = [
    "DISCORD_API_BASE_URL",
    "DISCORD_FLAG_EPHEMERAL",
    "DISCORD_MAX_AUTOCOMPLETE_CHOICES",
    "AutocompleteContext",
    "CommandContext",
    "ComponentContext",
    "CronContext",
    "CustomIdToken",
    "DiscordConfigError",
    "DiscordEnv",
    "DiscordError",
    "DiscordFollowupClient",
    "DiscordInteractionsApp",
    "DiscordInteractionsConfig",
    "DiscordInteractionsConfigError",
    "DiscordProtocolError",
    "DiscordRoutingError",
    "DiscordTransportError",
    "ExecutionContext",
    "FileAttachment",
    "FollowupConfig",
    "HandlerRegistry",
    "InteractionEnvelope",
    "InteractionResponse",
    "InteractionResponseType",
    "InteractionType",
    "ModalContext",
    "RateLimitController",
    "RateLimitSnapshot",
    "SubCommand",
    "SupportsToDict",
    "decode_custom_id",
    "encode_custom_id",
    "get_bindings",
    "verify_signature",
]
