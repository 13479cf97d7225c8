from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Optional, Sequence, Union

import httpx

from ...core.logging_utils import log_event
from .config import FollowupConfig
from .constants import DISCORD_API_BASE_URL
from .errors import DiscordTransportError
from .rate_limit import RateLimitController

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FileAttachment:
    name: str
    data: bytes
    content_type: Optional[str] = None


Attachments = Union[FileAttachment, Sequence[FileAttachment], None]


def _normalize_files(files: Attachments) -> list[FileAttachment]:
    if files is None:
        return []
    if isinstance(files, FileAttachment):
        return [files]
    return list(files)


class DiscordFollowupClient:
    """Webhook calls addressed by interaction token.

    The interaction token authenticates these calls, so no bot authorization
    header is sent. Passing the same ``rate_limit`` controller to successive
    calls paces them as one chain; without it each call starts unpaced.
    """

    def __init__(
        self,
        *,
        base_url: str = DISCORD_API_BASE_URL,
        followup: FollowupConfig = FollowupConfig(),
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=followup.timeout_seconds,
            transport=transport,
        )
        self._followup = followup

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "DiscordFollowupClient":
        return self

    async def __aexit__(self, *_exc_info: object) -> None:
        await self.close()

    def rate_limit_controller(self) -> RateLimitController:
        """Fresh pacing state configured from this client's follow-up settings."""
        return RateLimitController(
            low_water_mark=self._followup.low_water_mark,
            unit_seconds=self._followup.unit_seconds,
            default_retry_after_seconds=self._followup.default_retry_after_seconds,
        )

    async def _request(
        self,
        method: str,
        path: str,
        *,
        payload: Optional[dict[str, Any]] = None,
        files: Attachments = None,
        retry: int = 0,
        rate_limit: Optional[RateLimitController] = None,
    ) -> httpx.Response:
        attachments = _normalize_files(files)
        controller = rate_limit
        if controller is None:
            controller = self.rate_limit_controller()
        attempt = 0

        while True:
            await controller.wait()
            request_kwargs: dict[str, Any] = {}
            if attachments:
                request_kwargs["data"] = {"payload_json": json.dumps(payload or {})}
                request_kwargs["files"] = [
                    (f"files[{index}]", (item.name, item.data, item.content_type))
                    for index, item in enumerate(attachments)
                ]
            elif payload is not None:
                request_kwargs["json"] = payload
            try:
                response = await self._client.request(method, path, **request_kwargs)
            except httpx.HTTPError as exc:
                log_event(
                    logger,
                    logging.WARNING,
                    "discord.followup.network_error",
                    method=method,
                    attempt=attempt,
                    exc=exc,
                )
                raise DiscordTransportError(
                    f"Discord follow-up network error for {method}: {exc}"
                ) from exc

            controller.observe(response)
            if response.status_code == 429 and attempt < retry:
                attempt += 1
                log_event(
                    logger,
                    logging.INFO,
                    "discord.followup.retry",
                    method=method,
                    attempt=attempt,
                    max_retries=retry,
                )
                continue
            if response.status_code >= 400:
                log_event(
                    logger,
                    logging.WARNING,
                    "discord.followup.failed",
                    method=method,
                    status=response.status_code,
                    body_preview=(response.text or "").strip().replace("\n", " ")[:200],
                )
            return response

    async def create_followup_message(
        self,
        *,
        application_id: str,
        interaction_token: str,
        payload: dict[str, Any],
        files: Attachments = None,
        retry: int = 0,
        rate_limit: Optional[RateLimitController] = None,
    ) -> httpx.Response:
        return await self._request(
            "POST",
            f"/webhooks/{application_id}/{interaction_token}",
            payload=payload,
            files=files,
            retry=retry,
            rate_limit=rate_limit,
        )

    async def delete_followup_message(
        self,
        *,
        application_id: str,
        interaction_token: str,
        message_id: str,
        retry: int = 0,
        rate_limit: Optional[RateLimitController] = None,
    ) -> httpx.Response:
        return await self._request(
            "DELETE",
            f"/webhooks/{application_id}/{interaction_token}/messages/{message_id}",
            retry=retry,
            rate_limit=rate_limit,
        )
