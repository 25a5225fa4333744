"""Structural fingerprints for struct types.

A fingerprint is a 64-bit hash of a struct's field shape: member names,
primitive type markers, and dimension modes and sizes. Every backend
publishes the same value for the same schema, so a receiver can reject
messages produced from a different version of a type.

The mixing arithmetic runs on signed 64-bit two's complement values with
wraparound and arithmetic right shifts. Python integers are unbounded, so
every step is folded back into the signed 64-bit range.
"""

from collections.abc import Mapping

from .types import Member, Struct, TypeName

HASH_SEED = 0x12345678

_MASK64 = (1 << 64) - 1


class TypeModelError(RuntimeError):
    """Raised when the type model is inconsistent."""


def _to_int64(value: int) -> int:
    value &= _MASK64
    if value >= 1 << 63:
        value -= 1 << 64
    return value


def _to_int8(value: int) -> int:
    value &= 0xFF
    if value >= 0x80:
        value -= 0x100
    return value


def hash_update(v: int, c: int) -> int:
    """Mix one signed byte into the running hash."""
    return _to_int64(((v << 8) ^ (v >> 55)) + _to_int8(c))


def hash_string_update(v: int, s: str) -> int:
    """Mix a length-prefixed string into the running hash."""
    data = s.encode("utf-8")
    v = hash_update(v, len(data))
    for c in data:
        v = hash_update(v, c)
    return v


def _hash_member(v: int, member: Member) -> int:
    v = hash_string_update(v, member.name)

    # Compound types contribute through their own fingerprint, so a renamed
    # struct type keeps the hash of the types that embed it.
    if member.type.is_primitive:
        v = hash_string_update(v, member.type.short_name)

    v = hash_update(v, len(member.dimensions))
    for dim in member.dimensions:
        v = hash_update(v, int(dim.mode))
        v = hash_string_update(v, dim.size)
    return v


def base_hash(struct: Struct) -> int:
    """Hash of a struct's own declaration, as a signed 64-bit value.

    The struct's name is deliberately left out.
    """
    v = HASH_SEED
    for member in struct.members:
        v = _hash_member(v, member)
    return v


def rotate(h: int) -> int:
    """Apply the published-value transform to a mixed hash."""
    h &= _MASK64
    return ((h << 1) + ((h >> 63) & 1)) & _MASK64


class FingerprintEngine:
    """Compute fingerprints for structs addressed by full type name."""

    def __init__(self, structs: Mapping[str, Struct]):
        self.structs = structs
        self._cache: dict[str, int] = {}

    def _lookup(self, full_name: str) -> Struct:
        try:
            return self.structs[full_name]
        except KeyError:
            raise TypeModelError(f"Unknown type {full_name}") from None

    def mixed_hash(self, struct: Struct, parents: tuple[str, ...] = ()) -> int:
        """Base hash plus the mixed hashes of referenced structs.

        A type already on ``parents`` contributes 0, which ends recursion
        for self-referential and mutually recursive types.
        """
        full_name = struct.name.full_name
        if full_name in parents:
            return 0

        path = (*parents, full_name)
        v = base_hash(struct)
        for ref in struct.referenced_types():
            v = _to_int64(v + self.mixed_hash(self._lookup(ref.full_name), path))
        return v

    def fingerprint(self, name: str | TypeName) -> int:
        """Return the published unsigned 64-bit fingerprint."""
        if isinstance(name, TypeName):
            name = name.full_name
        if name not in self._cache:
            struct = self._lookup(name)
            self._cache[name] = rotate(self.mixed_hash(struct))
        return self._cache[name]
