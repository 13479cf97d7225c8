from __future__ import annotations

from dataclasses import dataclass

from .constants import CUSTOM_ID_SEPARATOR


@dataclass(frozen=True)
class CustomIdToken:
    namespace: str
    payload: str


def encode_custom_id(namespace: str, payload: str = "") -> str:
    if CUSTOM_ID_SEPARATOR in namespace:
        raise ValueError(
            f"custom id namespace must not contain {CUSTOM_ID_SEPARATOR!r}: {namespace!r}"
        )
    return f"{namespace}{CUSTOM_ID_SEPARATOR}{payload}"


def decode_custom_id(raw: str) -> CustomIdToken:
    namespace, _, payload = raw.partition(CUSTOM_ID_SEPARATOR)
    return CustomIdToken(namespace=namespace, payload=payload)
