from __future__ import annotations

import functools
import json
from typing import Any

import httpx
import pytest

from interactions_router.integrations.discord import rate_limit
from interactions_router.integrations.discord.config import DiscordEnv
from interactions_router.integrations.discord.context import (
    AutocompleteContext,
    CommandContext,
    ComponentContext,
)
from interactions_router.integrations.discord.custom_id import CustomIdToken
from interactions_router.integrations.discord.errors import (
    DiscordConfigError,
    DiscordProtocolError,
)
from interactions_router.integrations.discord.execution import ExecutionContext
from interactions_router.integrations.discord.interactions import (
    InteractionEnvelope,
    SubCommand,
)
from interactions_router.integrations.discord.rest import (
    DiscordFollowupClient,
    FileAttachment,
)


class _Recorder:
    def __init__(
        self, status_code: int = 200, headers: dict[str, str] | None = None
    ) -> None:
        self.requests: list[httpx.Request] = []
        self.status_code = status_code
        self.headers = headers or {}

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(
            self.status_code, headers=self.headers, json={"id": "msg-1"}
        )

    def factory(self) -> Any:
        return functools.partial(
            DiscordFollowupClient, transport=httpx.MockTransport(self)
        )


class _Embed:
    def __init__(self, title: str) -> None:
        self.title = title

    def to_dict(self) -> dict[str, Any]:
        return {"title": self.title}


def _envelope(**overrides: Any) -> InteractionEnvelope:
    payload: dict[str, Any] = {
        "type": 2,
        "id": "inter-1",
        "token": "tok-1",
        "data": {"name": "ping"},
    }
    payload.update(overrides)
    return InteractionEnvelope.from_payload(payload)


def _command_ctx(
    *,
    execution_ctx: ExecutionContext | None = None,
    discord: DiscordEnv | None = None,
    recorder: _Recorder | None = None,
    envelope: InteractionEnvelope | None = None,
) -> CommandContext:
    kwargs: dict[str, Any] = {}
    if recorder is not None:
        kwargs["followup_client_factory"] = recorder.factory()
    return CommandContext(
        sub=SubCommand(),
        options={"item": "sword"},
        event=None,
        env={"REGION": "eu"},
        execution_ctx=execution_ctx,
        discord=discord or DiscordEnv(application_id="app-1"),
        envelope=envelope or _envelope(),
        key="ping",
        **kwargs,
    )


def _component_ctx(**kwargs: Any) -> ComponentContext:
    return ComponentContext(
        custom_id=CustomIdToken("vote", "yes"),
        event=None,
        env=None,
        execution_ctx=kwargs.get("execution_ctx"),
        discord=DiscordEnv(application_id="app-1"),
        envelope=_envelope(
            type=3,
            data={"custom_id": "vote;yes", "values": ["a", "b"]},
            message={"id": "origin-7"},
        ),
        key="vote",
        **({"followup_client_factory": kwargs["factory"]} if "factory" in kwargs else {}),
    )


def test_res_wraps_string_content() -> None:
    ctx = _command_ctx()
    assert ctx.res("hi").to_dict() == {"type": 4, "data": {"content": "hi"}}


def test_res_converts_builders_and_embeds() -> None:
    ctx = _command_ctx()

    response = ctx.res({"content": "x", "embeds": [_Embed("one"), {"title": "two"}]})

    assert response.to_dict()["data"]["embeds"] == [{"title": "one"}, {"title": "two"}]


def test_ephemeral_sets_flag_and_can_be_cleared() -> None:
    ctx = _command_ctx()

    assert ctx.ephemeral().res("secret").to_dict()["data"] == {
        "flags": 64,
        "content": "secret",
    }
    assert ctx.ephemeral(False).res("open").to_dict()["data"] == {"content": "open"}


def test_var_returns_copy_and_get_defaults() -> None:
    ctx = _command_ctx()
    snapshot = ctx.var
    snapshot["item"] = "shield"

    assert ctx.get("item") == "sword"
    assert ctx.get("missing", "fallback") == "fallback"
    ctx.set("extra", 1)
    assert ctx.var == {"item": "sword", "extra": 1}


def test_env_and_interaction_are_exposed() -> None:
    ctx = _command_ctx()
    assert ctx.env["REGION"] == "eu"
    assert ctx.interaction["id"] == "inter-1"


def test_execution_ctx_without_host_raises() -> None:
    ctx = _command_ctx()
    with pytest.raises(RuntimeError):
        _ = ctx.execution_ctx


@pytest.mark.anyio
async def test_res_defer_schedules_one_continuation() -> None:
    execution_ctx = ExecutionContext()
    ctx = _command_ctx(execution_ctx=execution_ctx)
    ran: list[str] = []

    async def later(c: CommandContext) -> None:
        ran.append(c.get("item"))

    response = ctx.ephemeral().res_defer(later)

    assert response.to_dict() == {"type": 5, "data": {"flags": 64}}
    assert execution_ctx.pending_count == 1
    assert ran == []

    await execution_ctx.drain()
    assert ran == ["sword"]


def test_res_defer_without_handler_schedules_nothing() -> None:
    execution_ctx = ExecutionContext()
    ctx = _command_ctx(execution_ctx=execution_ctx)

    assert ctx.res_defer().to_dict() == {"type": 5, "data": {}}
    assert execution_ctx.pending_count == 0


def test_res_modal_accepts_builder() -> None:
    class _Modal:
        def to_dict(self) -> dict[str, Any]:
            return {"custom_id": "feedback;", "title": "Feedback", "components": []}

    response = _command_ctx().res_modal(_Modal())

    assert response.to_dict() == {
        "type": 9,
        "data": {"custom_id": "feedback;", "title": "Feedback", "components": []},
    }


def test_component_responses() -> None:
    ctx = _component_ctx()

    assert ctx.custom_id == "yes"
    assert ctx.values == ["a", "b"]
    assert ctx.res_update("edited").to_dict() == {"type": 7, "data": {"content": "edited"}}
    assert ctx.res_modal({"title": "t"}).to_dict() == {"type": 9, "data": {"title": "t"}}


@pytest.mark.anyio
async def test_res_defer_update_has_no_data() -> None:
    execution_ctx = ExecutionContext()
    ctx = _component_ctx(execution_ctx=execution_ctx)

    async def later(c: ComponentContext) -> None:
        return None

    assert ctx.res_defer_update(later).to_dict() == {"type": 6}
    assert execution_ctx.pending_count == 1
    await execution_ctx.drain()


def test_autocomplete_truncates_to_limit() -> None:
    ctx = AutocompleteContext(
        sub=SubCommand(),
        options={},
        focused=None,
        event=None,
        env=None,
        execution_ctx=None,
        discord=DiscordEnv(),
        envelope=_envelope(type=4),
        key="ping",
    )
    choices = [{"name": str(i), "value": str(i)} for i in range(30)]

    body = ctx.res_autocomplete({"choices": choices}).to_dict()

    assert body["type"] == 8
    assert len(body["data"]["choices"]) == 25
    assert body["data"]["choices"][0] == {"name": "0", "value": "0"}


@pytest.mark.anyio
async def test_followup_posts_to_webhook() -> None:
    recorder = _Recorder()
    ctx = _command_ctx(recorder=recorder)

    response = await ctx.ephemeral().followup("done")

    assert response.status_code == 200
    (request,) = recorder.requests
    assert request.method == "POST"
    assert request.url.path == "/api/v10/webhooks/app-1/tok-1"
    assert json.loads(request.content) == {"flags": 64, "content": "done"}
    assert "authorization" not in request.headers


@pytest.mark.anyio
async def test_followup_with_files_uses_multipart() -> None:
    recorder = _Recorder()
    ctx = _command_ctx(recorder=recorder)

    await ctx.followup(
        {"content": "report"},
        files=[FileAttachment("report.txt", b"hello", "text/plain")],
    )

    (request,) = recorder.requests
    assert request.headers["content-type"].startswith("multipart/form-data")
    body = request.content
    assert b'name="payload_json"' in body
    assert b'{"content": "report"}' in body
    assert b'name="files[0]"; filename="report.txt"' in body
    assert b"hello" in body


@pytest.mark.anyio
async def test_followup_requires_application_id() -> None:
    recorder = _Recorder()
    ctx = _command_ctx(recorder=recorder, discord=DiscordEnv())

    with pytest.raises(DiscordConfigError) as excinfo:
        await ctx.followup("done")

    assert excinfo.value.name == "DISCORD_APPLICATION_ID"
    assert recorder.requests == []


@pytest.mark.anyio
async def test_followup_requires_token() -> None:
    ctx = _command_ctx(recorder=_Recorder(), envelope=_envelope(token=None))
    with pytest.raises(DiscordProtocolError):
        await ctx.followup("done")


@pytest.mark.anyio
async def test_followup_delete_defaults_to_origin_message() -> None:
    recorder = _Recorder(status_code=204)
    ctx = _component_ctx(factory=recorder.factory())

    response = await ctx.followup_delete()

    assert response.status_code == 204
    (request,) = recorder.requests
    assert request.method == "DELETE"
    assert request.url.path == "/api/v10/webhooks/app-1/tok-1/messages/origin-7"


@pytest.mark.anyio
async def test_followup_delete_explicit_message() -> None:
    recorder = _Recorder(status_code=204)
    ctx = _command_ctx(recorder=recorder)

    await ctx.followup_delete("msg-9")

    assert recorder.requests[0].url.path.endswith("/messages/msg-9")


@pytest.mark.anyio
async def test_followup_delete_without_target_is_protocol_error() -> None:
    ctx = _command_ctx(recorder=_Recorder())
    with pytest.raises(DiscordProtocolError):
        await ctx.followup_delete()


@pytest.mark.anyio
async def test_sync_continuation_runs_only_when_drained() -> None:
    execution_ctx = ExecutionContext()
    ctx = _command_ctx(execution_ctx=execution_ctx)
    ran: list[str] = []

    def later(c: CommandContext) -> None:
        ran.append(c.get("item"))

    response = ctx.res_defer(later)

    assert response.to_dict() == {"type": 5, "data": {}}
    assert ran == []

    await execution_ctx.drain()
    assert ran == ["sword"]


@pytest.mark.anyio
async def test_followups_from_one_context_share_pacing(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    sleeps: list[float] = []

    async def fake_sleep(delay: float) -> None:
        sleeps.append(delay)

    monkeypatch.setattr(rate_limit.asyncio, "sleep", fake_sleep)

    recorder = _Recorder(headers={"X-RateLimit-Remaining": "1"})
    ctx = _command_ctx(recorder=recorder)

    await ctx.followup("first")
    assert sleeps == []

    await ctx.followup("second")
    assert sleeps == [1.0]
    assert len(recorder.requests) == 2
