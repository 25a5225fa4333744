"""Base class and errors for generated struct types."""

import io
import struct
from typing import BinaryIO, Self

_FINGERPRINT = struct.Struct(">Q")


class SerializationError(RuntimeError):
    """Raised when serialization or deserialization fails."""


class EncodeError(SerializationError):
    """Raised when an instance cannot be encoded as declared."""


class DecodeError(SerializationError):
    """Raised when input is malformed or truncated."""


class Struct:
    """Base class for generated struct types.

    Generated subclasses are dataclasses implementing encode(), decode(),
    size() and fingerprint(). This class adds byte-string helpers and
    fingerprint-prefixed message framing on top of them.

    Example:
        @dataclass
        class Point(Struct):
            x: float = 0.0
            y: float = 0.0

            def encode(self, out: BinaryIO) -> None:
                _codec.write_double(out, self.x)
                _codec.write_double(out, self.y)
            ...
    """

    @classmethod
    def fingerprint(cls) -> int:
        """Structural fingerprint of this type. Generated code overrides this."""
        raise NotImplementedError("fingerprint() must be implemented by generated code")

    def encode(self, out: BinaryIO) -> None:
        """Write this struct to a binary stream. Generated code overrides this."""
        raise NotImplementedError("encode() must be implemented by generated code")

    @classmethod
    def decode(cls, src: BinaryIO) -> Self:
        """Read one struct from a binary stream. Generated code overrides this."""
        raise NotImplementedError("decode() must be implemented by generated code")

    def size(self) -> int:
        """Number of bytes encode() writes. Generated code overrides this."""
        raise NotImplementedError("size() must be implemented by generated code")

    def pack(self) -> bytes:
        """Encode this struct to bytes."""
        buf = io.BytesIO()
        self.encode(buf)
        return buf.getvalue()

    @classmethod
    def unpack(cls, data: bytes | bytearray | memoryview) -> Self:
        """Decode a struct that occupies all of ``data``."""
        src = io.BytesIO(data)
        value = cls.decode(src)
        remaining = len(data) - src.tell()
        if remaining:
            raise DecodeError(f"{remaining} trailing bytes after {cls.__name__}")
        return value

    def encode_message(self) -> bytes:
        """Encode this struct prefixed with its type's fingerprint."""
        buf = io.BytesIO()
        buf.write(_FINGERPRINT.pack(self.fingerprint()))
        self.encode(buf)
        return buf.getvalue()

    @classmethod
    def decode_message(cls, data: bytes | bytearray | memoryview) -> Self:
        """Decode a fingerprint-prefixed message, rejecting other types."""
        if len(data) < _FINGERPRINT.size:
            raise DecodeError("Message is shorter than a fingerprint")
        (fingerprint,) = _FINGERPRINT.unpack_from(data)
        if fingerprint != cls.fingerprint():
            raise DecodeError(
                f"Fingerprint mismatch for {cls.__name__}: "
                f"expected {cls.fingerprint():#018x}, got {fingerprint:#018x}"
            )
        return cls.unpack(memoryview(data)[_FINGERPRINT.size :])
