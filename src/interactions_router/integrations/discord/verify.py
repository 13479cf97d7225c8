from __future__ import annotations

import logging
from typing import Optional, Union

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PublicKey

logger = logging.getLogger(__name__)


def verify_signature(
    body: Union[bytes, str],
    signature: Optional[str],
    timestamp: Optional[str],
    public_key: str,
) -> bool:
    """Check an Ed25519 signature over ``timestamp + body``.

    Returns False instead of raising on any malformed input so callers can
    reject the request without inspecting why.
    """
    if not signature or not timestamp or not public_key:
        return False
    raw_body = body.encode("utf-8") if isinstance(body, str) else body
    try:
        key = Ed25519PublicKey.from_public_bytes(bytes.fromhex(public_key))
        key.verify(bytes.fromhex(signature), timestamp.encode("utf-8") + raw_body)
    except InvalidSignature:
        return False
    except ValueError:
        logger.debug("Rejecting request with malformed signature or key")
        return False
    return True
