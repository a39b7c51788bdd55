"""
Capsule identifiers.

Ids are random bytes rendered as lowercase hex. The bytes come from a
SecureRandomSource so tests can plug in a deterministic source while
production uses the operating system CSPRNG.
"""

import re
import secrets
from abc import ABC, abstractmethod

DEFAULT_ID_BYTES = 32
MIN_ID_BYTES = 16
MAX_ID_BYTES = 64

_ID_PATTERN = re.compile(rf"(?:[0-9a-f]{{2}}){{{MIN_ID_BYTES},{MAX_ID_BYTES}}}")


class SecureRandomSource(ABC):
    """Produces random bytes for capsule ids."""

    @abstractmethod
    def random_bytes(self, n: int) -> bytes:
        """Return exactly `n` random bytes."""


class SystemRandomSource(SecureRandomSource):
    """Random source backed by the `secrets` module."""

    def random_bytes(self, n: int) -> bytes:
        return secrets.token_bytes(n)


def generate_id(
    source: SecureRandomSource,
    n_bytes: int = DEFAULT_ID_BYTES,
) -> str:
    """
    Generate a capsule id.

    Args:
        source: Where the random bytes come from
        n_bytes: Number of random bytes (16 to 64)

    Returns:
        Lowercase hex string of length 2 * n_bytes
    """
    if not MIN_ID_BYTES <= n_bytes <= MAX_ID_BYTES:
        msg = f"Capsule ids need {MIN_ID_BYTES} to {MAX_ID_BYTES} random bytes, got {n_bytes}"
        raise ValueError(msg)
    raw = source.random_bytes(n_bytes)
    if len(raw) != n_bytes:
        msg = f"Random source returned {len(raw)} bytes, expected {n_bytes}"
        raise ValueError(msg)
    return raw.hex()


def is_valid_capsule_id(value: object) -> bool:
    """
    Check that `value` has the shape of an id produced by generate_id.

    Any length from MIN_ID_BYTES to MAX_ID_BYTES is accepted, so ids stay
    valid when the configured id length changes.
    """
    if not isinstance(value, str):
        return False
    return _ID_PATTERN.fullmatch(value) is not None
