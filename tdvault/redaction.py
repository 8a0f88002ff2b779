"""
Redaction — Masking rules for every path that might display a secret.

Any preview, dry-run rendering, log record or error message that could carry
a revealed value goes through :func:`redact` / :func:`mask_args`, so that
only the mask token ever reaches a screen or a log sink.
"""
import logging
from typing import Any, Iterable

MASK = "********"


def _active(secrets: Iterable[str]) -> list[str]:
    # longest first so a secret containing another is masked whole
    return sorted({s for s in secrets if s}, key=len, reverse=True)


def redact(text: str, secrets: Iterable[str], mask: str = MASK) -> str:
    """Replace every occurrence of every non-empty secret with ``mask``."""
    for secret in _active(secrets):
        text = text.replace(secret, mask)
    return text


def mask_args(args: Iterable[str], secrets: Iterable[str], mask: str = MASK) -> list[str]:
    """Apply :func:`redact` to each argument of an argument list."""
    active = _active(secrets)
    return [redact(str(arg), active, mask) for arg in args]


class RedactingFilter(logging.Filter):
    """Logging filter that scrubs registered secret values from records.

    The record's message is rendered, redacted and frozen (``args`` cleared)
    before any handler formats it. Exception text and stack info are
    redacted as well.

    Example:
        >>> handler.addFilter(RedactingFilter(["hunter2"]))
    """

    def __init__(self, secrets: Iterable[str] = (), mask: str = MASK, name: str = ""):
        super().__init__(name)
        self._secrets: set[str] = {s for s in secrets if s}
        self._mask = mask

    def add(self, secret: str) -> None:
        """Register another value to scrub."""
        if secret:
            self._secrets.add(secret)

    def discard(self, secret: str) -> None:
        self._secrets.discard(secret)

    def clear(self) -> None:
        self._secrets.clear()

    def __repr__(self) -> str:
        return f"<RedactingFilter secrets={len(self._secrets)}>"

    def _scrub(self, value: Any) -> str:
        return redact(str(value), self._secrets, self._mask)

    def filter(self, record: logging.LogRecord) -> bool:
        """Redact the record in place; never drops it."""
        if not self._secrets:
            return True
        record.msg = self._scrub(record.getMessage())
        record.args = None
        if record.exc_info and record.exc_info[1] is not None:
            record.exc_text = self._scrub(
                logging.Formatter().formatException(record.exc_info)
            )
            record.exc_info = None
        if record.stack_info:
            record.stack_info = self._scrub(record.stack_info)
        return True
