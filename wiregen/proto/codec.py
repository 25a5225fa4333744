"""Primitive wire codec shared by all generated struct types.

All values are big-endian. Strings are written as an int32 byte count
(including the terminator), the UTF-8 bytes, and a NUL terminator.
"""

import struct
from typing import Any, BinaryIO

from .serialization import DecodeError, EncodeError

_INT8 = struct.Struct(">b")
_INT16 = struct.Struct(">h")
_INT32 = struct.Struct(">i")
_INT64 = struct.Struct(">q")
_BYTE = struct.Struct(">B")
_FLOAT = struct.Struct(">f")
_DOUBLE = struct.Struct(">d")


def _write(out: BinaryIO, fmt: struct.Struct, value: Any, type_name: str) -> None:
    try:
        data = fmt.pack(value)
    except struct.error as e:
        raise EncodeError(f"Cannot encode {value!r} as {type_name}: {e}") from e
    out.write(data)


def _read_exact(src: BinaryIO, size: int, what: str) -> bytes:
    data = src.read(size)
    if len(data) != size:
        raise DecodeError(f"Truncated input reading {what}: expected {size} bytes, got {len(data)}")
    return data


def _read(src: BinaryIO, fmt: struct.Struct, type_name: str) -> Any:
    return fmt.unpack(_read_exact(src, fmt.size, type_name))[0]


def write_int8(out: BinaryIO, value: int) -> None:
    _write(out, _INT8, value, "int8_t")


def write_int16(out: BinaryIO, value: int) -> None:
    _write(out, _INT16, value, "int16_t")


def write_int32(out: BinaryIO, value: int) -> None:
    _write(out, _INT32, value, "int32_t")


def write_int64(out: BinaryIO, value: int) -> None:
    _write(out, _INT64, value, "int64_t")


def write_byte(out: BinaryIO, value: int) -> None:
    _write(out, _BYTE, value, "byte")


def write_float(out: BinaryIO, value: float) -> None:
    _write(out, _FLOAT, value, "float")


def write_double(out: BinaryIO, value: float) -> None:
    _write(out, _DOUBLE, value, "double")


def write_boolean(out: BinaryIO, value: bool) -> None:
    _write(out, _INT8, 1 if value else 0, "boolean")


def write_string(out: BinaryIO, value: str) -> None:
    if not isinstance(value, str):
        raise EncodeError(f"Cannot encode {value!r} as string")
    data = value.encode("utf-8")
    write_int32(out, len(data) + 1)
    out.write(data)
    out.write(b"\x00")


def read_int8(src: BinaryIO) -> int:
    return _read(src, _INT8, "int8_t")


def read_int16(src: BinaryIO) -> int:
    return _read(src, _INT16, "int16_t")


def read_int32(src: BinaryIO) -> int:
    return _read(src, _INT32, "int32_t")


def read_int64(src: BinaryIO) -> int:
    return _read(src, _INT64, "int64_t")


def read_byte(src: BinaryIO) -> int:
    return _read(src, _BYTE, "byte")


def read_float(src: BinaryIO) -> float:
    return _read(src, _FLOAT, "float")


def read_double(src: BinaryIO) -> float:
    return _read(src, _DOUBLE, "double")


def read_boolean(src: BinaryIO) -> bool:
    value = _read(src, _INT8, "boolean")
    if value not in (0, 1):
        raise DecodeError(f"Booleans must be encoded as 0 or 1, got {value}")
    return value == 1


def read_string(src: BinaryIO) -> str:
    length = read_int32(src)
    if length < 1:
        raise DecodeError(f"Invalid string length {length}")
    data = _read_exact(src, length, "string")
    if data[-1] != 0:
        raise DecodeError("Expected null terminator")
    try:
        return data[:-1].decode("utf-8")
    except UnicodeDecodeError as e:
        raise DecodeError(f"Invalid UTF-8 in string: {e}") from e


def string_size(value: str) -> int:
    """Encoded size of a string."""
    return _INT32.size + len(value.encode("utf-8")) + 1
