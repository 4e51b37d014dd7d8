"""
Identity key (pseudonym) helpers.

Identity keys are opaque byte strings used only as lookup keys. Equality is
byte-exact; the external form is lowercase hex.
"""

from __future__ import annotations

from backend_shadowintel.core.exceptions import ConfigurationError
from backend_shadowintel.intel_logging import get_logger

logger = get_logger(__name__)


def identity_key_hex(identity_key: bytes | bytearray | str) -> str:
    """Return the lowercase hex form of an identity key; hex strings pass through lowercased."""
    if isinstance(identity_key, str):
        return identity_key.lower()
    return bytes(identity_key).hex()


def parse_identity_key(value: str) -> bytes:
    """Parse a hex identity key; raise ConfigurationError on malformed input."""
    raw = (value or "").strip()
    if raw.startswith(("0x", "0X")):
        raw = raw[2:]
    if not raw:
        logger.warning("identity_key_invalid", reason="empty")
        raise ConfigurationError("identity key must be non-empty hex", value=value)
    try:
        return bytes.fromhex(raw)
    except ValueError as e:
        logger.warning("identity_key_invalid", reason="not_hex", length=len(raw))
        raise ConfigurationError("identity key is not valid hex", value=value) from e
