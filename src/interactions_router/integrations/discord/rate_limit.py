from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Mapping, Optional

import httpx

from ...core.logging_utils import log_event
from .constants import (
    DEFAULT_LOW_WATER_MARK,
    DEFAULT_RETRY_AFTER_SECONDS,
    DEFAULT_UNIT_SECONDS,
)

logger = logging.getLogger(__name__)


def _parse_float(value: Optional[str]) -> Optional[float]:
    if value is None:
        return None
    try:
        return float(value)
    except ValueError:
        return None


def _parse_int(value: Optional[str]) -> Optional[int]:
    parsed = _parse_float(value)
    return int(parsed) if parsed is not None else None


@dataclass(frozen=True)
class RateLimitSnapshot:
    remaining: Optional[int] = None
    limit: Optional[int] = None
    reset_after_seconds: Optional[float] = None
    retry_after_seconds: Optional[float] = None
    is_global: bool = False
    bucket: Optional[str] = None
    scope: Optional[str] = None

    @classmethod
    def from_headers(cls, headers: Mapping[str, str]) -> "RateLimitSnapshot":
        return cls(
            remaining=_parse_int(headers.get("X-RateLimit-Remaining")),
            limit=_parse_int(headers.get("X-RateLimit-Limit")),
            reset_after_seconds=_parse_float(headers.get("X-RateLimit-Reset-After")),
            retry_after_seconds=_parse_float(headers.get("Retry-After")),
            is_global=(headers.get("X-RateLimit-Global") or "").lower() == "true",
            bucket=headers.get("X-RateLimit-Bucket"),
            scope=headers.get("X-RateLimit-Scope"),
        )


class RateLimitController:
    """Paces one chain of outbound calls using the last response's headers.

    State lives on the instance, so concurrent chains do not coordinate.
    """

    def __init__(
        self,
        *,
        low_water_mark: int = DEFAULT_LOW_WATER_MARK,
        unit_seconds: float = DEFAULT_UNIT_SECONDS,
        default_retry_after_seconds: float = DEFAULT_RETRY_AFTER_SECONDS,
    ) -> None:
        self._low_water_mark = low_water_mark
        self._unit_seconds = unit_seconds
        self._default_retry_after = default_retry_after_seconds
        self._status_code: Optional[int] = None
        self._snapshot: Optional[RateLimitSnapshot] = None

    @property
    def snapshot(self) -> Optional[RateLimitSnapshot]:
        return self._snapshot

    def observe(self, response: httpx.Response) -> RateLimitSnapshot:
        self._status_code = response.status_code
        self._snapshot = RateLimitSnapshot.from_headers(response.headers)
        return self._snapshot

    def delay_seconds(self) -> float:
        snapshot = self._snapshot
        if snapshot is None:
            return 0.0
        if self._status_code == 429:
            retry_after = snapshot.retry_after_seconds
            if retry_after is None:
                retry_after = self._default_retry_after
            return max(retry_after, 0.0)
        if snapshot.remaining is None:
            return 0.0
        return max((self._low_water_mark - snapshot.remaining) * self._unit_seconds, 0.0)

    async def wait(self) -> float:
        delay = self.delay_seconds()
        if delay <= 0:
            return 0.0
        if self._status_code == 429:
            log_event(
                logger,
                logging.WARNING,
                "discord.followup.rate_limited",
                sleep_seconds=delay,
                bucket=self._snapshot.bucket if self._snapshot else None,
                is_global=self._snapshot.is_global if self._snapshot else None,
            )
        await asyncio.sleep(delay)
        return delay
