from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, Optional

from .constants import (
    BINDING_APPLICATION_ID,
    BINDING_PUBLIC_KEY,
    BINDING_TOKEN,
    DEFAULT_LOW_WATER_MARK,
    DEFAULT_RETRY_AFTER_SECONDS,
    DEFAULT_UNIT_SECONDS,
    DISCORD_API_BASE_URL,
)
from .errors import DiscordConfigError

DEFAULT_FOLLOWUP_TIMEOUT_SECONDS = 10.0


class DiscordInteractionsConfigError(Exception):
    """Raised when the discord section of the config file is invalid."""


@dataclass(frozen=True)
class DiscordEnv:
    """Credentials resolved for one request."""

    application_id: Optional[str] = None
    token: Optional[str] = None
    public_key: Optional[str] = None

    @classmethod
    def from_bindings(
        cls,
        bindings: Optional[Mapping[str, Any]],
        *,
        public_key_env: str = BINDING_PUBLIC_KEY,
        app_id_env: str = BINDING_APPLICATION_ID,
        token_env: str = BINDING_TOKEN,
    ) -> "DiscordEnv":
        source = bindings or {}
        return cls(
            application_id=_clean(source.get(app_id_env)),
            token=_clean(source.get(token_env)),
            public_key=_clean(source.get(public_key_env)),
        )

    def overlay(self, overrides: "DiscordEnv") -> "DiscordEnv":
        """Return a copy with every value set on ``overrides`` taking precedence."""
        return DiscordEnv(
            application_id=overrides.application_id or self.application_id,
            token=overrides.token or self.token,
            public_key=overrides.public_key or self.public_key,
        )

    def require_application_id(self) -> str:
        if not self.application_id:
            raise DiscordConfigError(BINDING_APPLICATION_ID)
        return self.application_id

    def require_public_key(self) -> str:
        if not self.public_key:
            raise DiscordConfigError(BINDING_PUBLIC_KEY)
        return self.public_key


DiscordEnvFactory = Callable[[Optional[Mapping[str, Any]]], DiscordEnv]


@dataclass(frozen=True)
class FollowupConfig:
    low_water_mark: int = DEFAULT_LOW_WATER_MARK
    unit_seconds: float = DEFAULT_UNIT_SECONDS
    default_retry_after_seconds: float = DEFAULT_RETRY_AFTER_SECONDS
    timeout_seconds: float = DEFAULT_FOLLOWUP_TIMEOUT_SECONDS


@dataclass(frozen=True)
class DiscordInteractionsConfig:
    public_key_env: str = BINDING_PUBLIC_KEY
    app_id_env: str = BINDING_APPLICATION_ID
    token_env: str = BINDING_TOKEN
    api_base_url: str = DISCORD_API_BASE_URL
    followup: FollowupConfig = field(default_factory=FollowupConfig)

    @classmethod
    def from_raw(cls, raw: Any) -> "DiscordInteractionsConfig":
        cfg: dict[str, Any] = raw if isinstance(raw, dict) else {}
        public_key_env = _env_name(cfg, "public_key_env", BINDING_PUBLIC_KEY)
        app_id_env = _env_name(cfg, "app_id_env", BINDING_APPLICATION_ID)
        token_env = _env_name(cfg, "token_env", BINDING_TOKEN)

        api_base_url = str(cfg.get("api_base_url", DISCORD_API_BASE_URL)).strip()
        if not api_base_url.startswith(("http://", "https://")):
            raise DiscordInteractionsConfigError(
                "discord.api_base_url must be an http(s) URL"
            )

        followup_raw = cfg.get("followup")
        followup_cfg = followup_raw if isinstance(followup_raw, dict) else {}
        followup = FollowupConfig(
            low_water_mark=_parse_non_negative_int_or_default(
                followup_cfg.get("low_water_mark"),
                default=DEFAULT_LOW_WATER_MARK,
                key="discord.followup.low_water_mark",
            ),
            unit_seconds=_parse_non_negative_float_or_default(
                followup_cfg.get("unit_seconds"),
                default=DEFAULT_UNIT_SECONDS,
                key="discord.followup.unit_seconds",
            ),
            default_retry_after_seconds=_parse_non_negative_float_or_default(
                followup_cfg.get("default_retry_after_seconds"),
                default=DEFAULT_RETRY_AFTER_SECONDS,
                key="discord.followup.default_retry_after_seconds",
            ),
            timeout_seconds=_parse_non_negative_float_or_default(
                followup_cfg.get("timeout_seconds"),
                default=DEFAULT_FOLLOWUP_TIMEOUT_SECONDS,
                key="discord.followup.timeout_seconds",
            ),
        )
        return cls(
            public_key_env=public_key_env,
            app_id_env=app_id_env,
            token_env=token_env,
            api_base_url=api_base_url.rstrip("/"),
            followup=followup,
        )

    def env_factory(self) -> DiscordEnvFactory:
        def build(bindings: Optional[Mapping[str, Any]]) -> DiscordEnv:
            return DiscordEnv.from_bindings(
                bindings,
                public_key_env=self.public_key_env,
                app_id_env=self.app_id_env,
                token_env=self.token_env,
            )

        return build


def _clean(value: Any) -> Optional[str]:
    if value is None:
        return None
    token = str(value).strip()
    return token or None


def _env_name(cfg: dict[str, Any], key: str, default: str) -> str:
    value = str(cfg.get(key, default)).strip()
    if not value:
        raise DiscordInteractionsConfigError(f"discord.{key} must be non-empty")
    return value


def _parse_non_negative_int_or_default(value: Any, *, default: int, key: str) -> int:
    if value is None:
        return default
    if isinstance(value, bool):
        raise DiscordInteractionsConfigError(f"{key} must be an integer")
    try:
        parsed = int(value)
    except (TypeError, ValueError) as exc:
        raise DiscordInteractionsConfigError(f"{key} must be an integer") from exc
    if parsed < 0:
        raise DiscordInteractionsConfigError(f"{key} must be >= 0")
    return parsed


def _parse_non_negative_float_or_default(
    value: Any, *, default: float, key: str
) -> float:
    if value is None:
        return default
    if isinstance(value, bool):
        raise DiscordInteractionsConfigError(f"{key} must be a number")
    try:
        parsed = float(value)
    except (TypeError, ValueError) as exc:
        raise DiscordInteractionsConfigError(f"{key} must be a number") from exc
    if parsed < 0:
        raise DiscordInteractionsConfigError(f"{key} must be >= 0")
    return parsed
