"""Static size analysis for struct types."""

from dataclasses import dataclass
from enum import StrEnum, auto

from .model import TypeModel
from .shapes import plan_shape
from .types import Member, TypeName

# Primitive type sizes in bytes
PRIMITIVE_SIZES: dict[str, int] = {
    "int8_t": 1,
    "int16_t": 2,
    "int32_t": 4,
    "int64_t": 8,
    "byte": 1,
    "float": 4,
    "double": 8,
    "boolean": 1,
}

# int32 length prefix plus the terminator of an empty string
MIN_STRING_SIZE = 5


class SizeKind(StrEnum):
    """Classification of size characteristics."""

    FIXED = auto()  # Every instance encodes to the same number of bytes
    VARIABLE = auto()  # Depends on runtime lengths or string contents


@dataclass(frozen=True)
class SizeInfo:
    """Size information for a type or struct."""

    min_size: int
    max_size: int | None  # None means unbounded
    kind: SizeKind

    @property
    def is_fixed(self) -> bool:
        return self.kind == SizeKind.FIXED


@dataclass(frozen=True)
class StructSizeInfo:
    """Complete size information for a struct."""

    name: str
    size: SizeInfo


_EMPTY = SizeInfo(0, 0, SizeKind.FIXED)


class SizeCalculator:
    """Calculate encoded sizes for the types of a model."""

    def __init__(self, model: TypeModel):
        self.model = model
        self._cache: dict[str, SizeInfo] = {}
        self._in_progress: set[str] = set()

    def calc_type_size(self, t: TypeName) -> SizeInfo:
        """Calculate size for a primitive or struct type."""
        if t.is_primitive:
            if t.short_name == "string":
                return SizeInfo(MIN_STRING_SIZE, None, SizeKind.VARIABLE)
            size = PRIMITIVE_SIZES[t.short_name]
            return SizeInfo(size, size, SizeKind.FIXED)
        return self.calc_struct_size(t.full_name).size

    def calc_member_size(self, member: Member) -> SizeInfo:
        """Calculate size for a struct member (handles arrays)."""
        plan = plan_shape(member)
        if not plan.is_fully_fixed:
            # A runtime axis may hold no elements at all
            return SizeInfo(0, None, SizeKind.VARIABLE)

        elem_size = self.calc_type_size(member.type)
        count = plan.fixed_element_count
        max_size = elem_size.max_size * count if elem_size.max_size is not None else None
        kind = elem_size.kind if count else SizeKind.FIXED
        return SizeInfo(elem_size.min_size * count, max_size if count else 0, kind)

    def calc_struct_size(self, name: str) -> StructSizeInfo:
        """Calculate size for a struct (with caching).

        A struct that contains itself through fixed axes only cannot be
        finite; the nested occurrence is measured as empty and the result
        reported as variable.
        """
        if name in self._cache:
            return StructSizeInfo(name, self._cache[name])
        if name in self._in_progress:
            return StructSizeInfo(name, SizeInfo(0, None, SizeKind.VARIABLE))

        self._in_progress.add(name)
        try:
            total_min = 0
            total_max: int | None = 0
            overall_kind = SizeKind.FIXED

            for member in self.model.get(name).members:
                size = self.calc_member_size(member)

                total_min += size.min_size
                if total_max is not None and size.max_size is not None:
                    total_max += size.max_size
                else:
                    total_max = None

                if size.kind == SizeKind.VARIABLE:
                    overall_kind = SizeKind.VARIABLE
        finally:
            self._in_progress.discard(name)

        struct_size = SizeInfo(total_min, total_max, overall_kind)
        self._cache[name] = struct_size

        return StructSizeInfo(name, struct_size)

    def fixed_width(self, t: TypeName) -> int | None:
        """Encoded size of a type whose size never varies, else None."""
        size = self.calc_type_size(t)
        return size.min_size if size.is_fixed else None


def calculate_sizes(model: TypeModel) -> dict[str, StructSizeInfo]:
    """Calculate size information for every struct of a model."""
    calc = SizeCalculator(model)
    return {s.name.full_name: calc.calc_struct_size(s.name.full_name) for s in model}
