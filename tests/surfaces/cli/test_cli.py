from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterator

import pytest
import sample_bot
from typer.testing import CliRunner

from interactions_router.surfaces.cli import cli
from interactions_router.surfaces.cli.cli import app

runner = CliRunner()


@pytest.fixture(autouse=True)
def _reset_state() -> Iterator[None]:
    sample_bot.fired.clear()
    yield
    router_logger = logging.getLogger("interactions_router")
    for handler in list(router_logger.handlers):
        handler.close()
        router_logger.removeHandler(handler)
    router_logger.__dict__.pop("_interactions_router_configured", None)


def test_version_flag() -> None:
    result = runner.invoke(app, ["--version"])

    assert result.exit_code == 0
    assert result.output.strip() == f"interactions-router {cli.__version__}"


def test_cron_fires_matching_handler(tmp_path: Path) -> None:
    result = runner.invoke(
        app,
        ["cron", "0 9 * * *", "--app", "sample_bot:interactions", "--config", str(tmp_path)],
    )

    assert result.exit_code == 0, result.output
    assert "Cron trigger '0 9 * * *' handled." in result.output
    assert sample_bot.fired == ["0 9 * * *"]


def test_cron_without_match_exits_nonzero(tmp_path: Path) -> None:
    result = runner.invoke(
        app,
        ["cron", "*/5 * * * *", "--app", "sample_bot:interactions", "--config", str(tmp_path)],
    )

    assert result.exit_code == 1
    assert sample_bot.fired == []


def test_unknown_app_exits_nonzero(tmp_path: Path) -> None:
    result = runner.invoke(
        app,
        ["cron", "0 9 * * *", "--app", "sample_bot:missing", "--config", str(tmp_path)],
    )

    assert result.exit_code == 1


def test_invalid_config_exits_nonzero(tmp_path: Path) -> None:
    (tmp_path / "interactions.yml").write_text(
        "discord:\n  api_base_url: nope\n", encoding="utf-8"
    )

    result = runner.invoke(
        app,
        ["cron", "0 9 * * *", "--app", "sample_bot:interactions", "--config", str(tmp_path)],
    )

    assert result.exit_code == 1


def test_serve_runs_uvicorn_with_config(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    calls: dict[str, object] = {}

    def fake_run(asgi_app: object, **kwargs: object) -> None:
        calls["app"] = asgi_app
        calls.update(kwargs)

    monkeypatch.setattr(cli.uvicorn, "run", fake_run)
    (tmp_path / "interactions.yml").write_text(
        "server:\n  port: 9100\n", encoding="utf-8"
    )

    result = runner.invoke(
        app,
        ["serve", "--app", "sample_bot:interactions", "--config", str(tmp_path)],
    )

    assert result.exit_code == 0, result.output
    assert calls["host"] == "127.0.0.1"
    assert calls["port"] == 9100
    assert calls["access_log"] is False
