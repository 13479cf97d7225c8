from __future__ import annotations

from enum import IntEnum

DISCORD_API_BASE_URL = "https://discord.com/api/v10"

SIGNATURE_HEADER = "x-signature-ed25519"
TIMESTAMP_HEADER = "x-signature-timestamp"

HEALTH_TEXT = "discord interactions router is running"

# Message flag that limits visibility to the invoking user.
DISCORD_FLAG_EPHEMERAL = 1 << 6

# Discord hard limit for autocomplete suggestions.
DISCORD_MAX_AUTOCOMPLETE_CHOICES = 25

CUSTOM_ID_SEPARATOR = ";"

BINDING_APPLICATION_ID = "DISCORD_APPLICATION_ID"
BINDING_TOKEN = "DISCORD_TOKEN"
BINDING_PUBLIC_KEY = "DISCORD_PUBLIC_KEY"

# Follow-up pacing defaults.
DEFAULT_LOW_WATER_MARK = 3
DEFAULT_UNIT_SECONDS = 0.5
DEFAULT_RETRY_AFTER_SECONDS = 60.0


class InteractionType(IntEnum):
    PING = 1
    APPLICATION_COMMAND = 2
    MESSAGE_COMPONENT = 3
    AUTOCOMPLETE = 4
    MODAL_SUBMIT = 5


class InteractionResponseType(IntEnum):
    PONG = 1
    CHANNEL_MESSAGE = 4
    DEFERRED_CHANNEL_MESSAGE = 5
    DEFERRED_UPDATE_MESSAGE = 6
    UPDATE_MESSAGE = 7
    AUTOCOMPLETE_RESULT = 8
    MODAL = 9


class OptionType(IntEnum):
    SUB_COMMAND = 1
    SUB_COMMAND_GROUP = 2
    STRING = 3
    INTEGER = 4
    BOOLEAN = 5
    USER = 6
    CHANNEL = 7
    ROLE = 8
    MENTIONABLE = 9
    NUMBER = 10
    ATTACHMENT = 11


AUTOCOMPLETE_OPTION_TYPES = frozenset(
    {OptionType.STRING, OptionType.INTEGER, OptionType.NUMBER}
)
