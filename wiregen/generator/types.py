"""Type definitions produced by schema parsing and consumed by code generation."""

from dataclasses import dataclass, field
from enum import IntEnum

from dataclasses_json import DataClassJsonMixin

PRIMITIVE_TYPES = frozenset(
    [
        "int8_t",
        "int16_t",
        "int32_t",
        "int64_t",
        "byte",
        "float",
        "double",
        "string",
        "boolean",
    ]
)

# Types that may size a runtime array dimension
ARRAY_SIZE_TYPES = frozenset(["int8_t", "int16_t", "int32_t", "int64_t"])

# Types that may be declared as constants
CONSTANT_TYPES = frozenset(["int8_t", "int16_t", "int32_t", "int64_t", "float", "double"])


@dataclass(frozen=True)
class TypeName(DataClassJsonMixin):
    """A reference to a primitive or struct type.

    Primitive types have an empty package.
    """

    package: str
    short_name: str

    @classmethod
    def parse(cls, name: str, package: str = "") -> "TypeName":
        """Build a type name from dotted text.

        Unqualified struct names resolve against ``package``.
        """
        if name in PRIMITIVE_TYPES:
            return cls("", name)
        if "." in name:
            pkg, _, short = name.rpartition(".")
            return cls(pkg, short)
        return cls(package, name)

    @property
    def full_name(self) -> str:
        if self.package:
            return f"{self.package}.{self.short_name}"
        return self.short_name

    @property
    def is_primitive(self) -> bool:
        return not self.package and self.short_name in PRIMITIVE_TYPES

    def __str__(self) -> str:
        return self.full_name


class DimensionMode(IntEnum):
    """How the element count of an array axis is known."""

    FIXED = 0  # literal size known when the schema is compiled
    RUNTIME = 1  # size read from a sibling member


@dataclass
class Dimension(DataClassJsonMixin):
    """One axis of an array member.

    ``size`` holds the literal schema text: an integer literal for fixed
    axes, the name of the sizing member for runtime axes.
    """

    mode: DimensionMode
    size: str

    @classmethod
    def parse(cls, text: str) -> "Dimension":
        try:
            int(text, 0)
        except ValueError:
            return cls(DimensionMode.RUNTIME, text)
        return cls(DimensionMode.FIXED, text)

    @property
    def is_fixed(self) -> bool:
        return self.mode == DimensionMode.FIXED

    @property
    def fixed_size(self) -> int:
        if not self.is_fixed:
            raise ValueError(f"Dimension '{self.size}' is not fixed")
        return int(self.size, 0)


@dataclass
class Member(DataClassJsonMixin):
    """A field of a struct. An empty dimension list means a scalar."""

    name: str
    type: TypeName
    dimensions: list[Dimension] = field(default_factory=list)
    comment: str | None = None

    @property
    def is_array(self) -> bool:
        return bool(self.dimensions)


@dataclass
class Constant(DataClassJsonMixin):
    """A named compile-time value. Never encoded on the wire."""

    name: str
    type: str
    value: str
    comment: str | None = None

    @property
    def is_float(self) -> bool:
        return self.type in ("float", "double")

    def numeric_value(self) -> int | float:
        """The literal as a number of the constant's type.

        Float constants may be written as integer or hex literals.
        """
        if not self.is_float:
            return int(self.value, 0)
        try:
            return float(self.value)
        except ValueError:
            return float(int(self.value, 0))


@dataclass
class Struct(DataClassJsonMixin):
    """A struct type definition.

    Members are kept in declaration order, which is also wire order.
    ``fingerprint`` is assigned when the struct joins a TypeModel.
    """

    name: TypeName
    members: list[Member] = field(default_factory=list)
    constants: list[Constant] = field(default_factory=list)
    comment: str | None = None
    source_file: str | None = None
    fingerprint: int = 0

    def find_member(self, name: str) -> Member | None:
        for member in self.members:
            if member.name == name:
                return member
        return None

    def referenced_types(self) -> list[TypeName]:
        """Distinct non-primitive member types, in first-occurrence order."""
        seen: list[TypeName] = []
        for member in self.members:
            if not member.type.is_primitive and member.type not in seen:
                seen.append(member.type)
        return seen


def primitive_types() -> list[str]:
    """Return a list of primitive type names."""
    return sorted(PRIMITIVE_TYPES)


def is_primitive(t: TypeName) -> bool:
    """Check if a type is a primitive type."""
    return t.is_primitive
