"""Identifier normalization, validation and generation."""
import base64
import os
import re

from .exceptions import InvalidSecretId

MIN_ID_LEN = 3
MAX_ID_LEN = 64

_ID_PATTERN = re.compile(r"[a-z0-9][a-z0-9_-]{2,63}")

RESERVED_IDS = frozenset({
    "list", "add", "rm", "connect", "exec", "run", "doctor", "secret",
    "config", "push", "pull", "xfer", "test", "ui", "agent",
})


def normalize_id(candidate: str) -> str:
    """Lower-case an identifier."""
    return candidate.lower()


def validate_id(candidate: str) -> None:
    """Validate an identifier.

    Raises:
        InvalidSecretId: If the id is empty, too short/long, reserved, or
            contains characters outside ``[a-z0-9_-]``.
    """
    if not candidate:
        raise InvalidSecretId(candidate, "empty")
    if len(candidate) < MIN_ID_LEN:
        raise InvalidSecretId(candidate, f"shorter than {MIN_ID_LEN} characters")
    if len(candidate) > MAX_ID_LEN:
        raise InvalidSecretId(candidate, f"longer than {MAX_ID_LEN} characters")
    if candidate in RESERVED_IDS:
        raise InvalidSecretId(candidate, "reserved word")
    if not _ID_PATTERN.fullmatch(candidate):
        raise InvalidSecretId(candidate, "invalid format")


def is_valid_id(candidate: str) -> bool:
    try:
        validate_id(candidate)
    except InvalidSecretId:
        return False
    return True


def generate_id(prefix: str) -> str:
    """Generate a random id: ``prefix`` + 8 lowercase base32 characters."""
    while True:
        suffix = base64.b32encode(os.urandom(5)).decode("ascii").lower()
        candidate = f"{prefix}{suffix}"
        if is_valid_id(candidate):
            return candidate
