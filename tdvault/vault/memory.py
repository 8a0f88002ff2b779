"""
Wipe-on-drop buffers for passphrases, derived keys and revealed plaintext.

Python gives no guarantee that memory is scrubbed when an object is freed,
and immutable ``bytes``/``str`` copies cannot be overwritten at all. The
buffers here hold their own copy in a ``bytearray`` and zero it on
``wipe()``, on context-manager exit, and on garbage collection. This is
best-effort: copies created by callers or by C extensions are out of reach.
"""
import hmac
from typing import Union

BytesLike = Union[bytes, bytearray, memoryview, str]


class SecretBytes:
    """Mutable byte buffer that zeroes itself when released.

    ``repr`` and ``str`` never expose the content.
    """

    __slots__ = ("_buf",)

    def __init__(self, data: BytesLike):
        if isinstance(data, str):
            data = data.encode("utf-8")
        self._buf = bytearray(data)

    @classmethod
    def coerce(cls, value: "SecretBytes | BytesLike") -> "SecretBytes":
        """Return ``value`` as a SecretBytes, copying if needed."""
        if isinstance(value, cls):
            return value
        return cls(value)

    @property
    def wiped(self) -> bool:
        return not any(self._buf)

    def view(self) -> memoryview:
        """Zero-copy read-only view over the buffer."""
        return memoryview(self._buf).toreadonly()

    def __bytes__(self) -> bytes:
        return bytes(self._buf)

    def decode(self, encoding: str = "utf-8") -> str:
        return self._buf.decode(encoding)

    def wipe(self) -> None:
        """Overwrite the buffer with zeros."""
        for i in range(len(self._buf)):
            self._buf[i] = 0

    def __len__(self) -> int:
        return len(self._buf)

    def __enter__(self) -> "SecretBytes":
        return self

    def __exit__(self, *exc) -> None:
        self.wipe()

    def __del__(self):
        try:
            self.wipe()
        except AttributeError:
            # __init__ never completed
            pass

    def __repr__(self) -> str:
        return f"<SecretBytes len={len(self._buf)}>"

    __str__ = __repr__

    def __eq__(self, other) -> bool:
        # constant time
        if isinstance(other, SecretBytes):
            return hmac.compare_digest(self._buf, other._buf)
        if isinstance(other, (bytes, bytearray)):
            return hmac.compare_digest(self._buf, other)
        return NotImplemented

    __hash__ = None
