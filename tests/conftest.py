"""Test harness configuration.

This repo uses a `src/` layout. Ensure tests always import the in-repo code
even when an older installed copy is on the path.
"""

from __future__ import annotations

import sys
import time
from dataclasses import dataclass
from pathlib import Path

import pytest

DEFAULT_NON_INTEGRATION_TIMEOUT_SECONDS = 60


def pytest_configure() -> None:
    repo_root = Path(__file__).resolve().parents[1]
    src_path = str(repo_root / "src")
    if sys.path[:1] != [src_path] and src_path not in sys.path:
        sys.path.insert(0, src_path)
    fixtures_path = str(Path(__file__).resolve().parent / "fixtures")
    if fixtures_path not in sys.path:
        sys.path.append(fixtures_path)


def pytest_collection_modifyitems(
    session: pytest.Session, config: pytest.Config, items: list[pytest.Item]
) -> None:
    """Apply a default per-test timeout (inert without `pytest-timeout`)."""
    _ = session, config
    for item in items:
        if item.get_closest_marker("integration") is not None:
            continue
        item.add_marker(pytest.mark.timeout(DEFAULT_NON_INTEGRATION_TIMEOUT_SECONDS))


@dataclass(frozen=True)
class SigningKey:
    private_key: object
    public_key_hex: str

    def sign(self, body: bytes, timestamp: str) -> str:
        return self.private_key.sign(timestamp.encode("utf-8") + body).hex()  # type: ignore[attr-defined]

    def headers(self, body: bytes, timestamp: str | None = None) -> dict[str, str]:
        stamp = timestamp or str(int(time.time()))
        return {
            "x-signature-ed25519": self.sign(body, stamp),
            "x-signature-timestamp": stamp,
        }


@pytest.fixture()
def signing_key() -> SigningKey:
    from cryptography.hazmat.primitives import serialization
    from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey

    private_key = Ed25519PrivateKey.generate()
    public_bytes = private_key.public_key().public_bytes(
        encoding=serialization.Encoding.Raw,
        format=serialization.PublicFormat.Raw,
    )
    return SigningKey(private_key=private_key, public_key_hex=public_bytes.hex())
