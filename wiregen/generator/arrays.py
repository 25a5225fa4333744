"""Encode, decode and size emission for members of any array shape.

The emitters here walk a member's ShapePlan outermost axis first and produce
one nested loop per axis. Everything language specific (loop syntax,
subscripts, length checks, leaf codec calls) comes from a LoopSyntax
supplied by the backend, so every backend traverses elements in the same
order and therefore writes the same bytes.
"""

from abc import ABC, abstractmethod

from .shapes import Axis, ShapePlan, plan_shape
from .types import Member, TypeName


class LoopSyntax(ABC):
    """Target-language fragments used by the array emitters."""

    indent_unit = "    "
    # Fixed-width members are measured from their declared counts alone
    multiply_declared_counts = True

    def indent(self, lines: list[str]) -> list[str]:
        return [self.indent_unit + line if line else line for line in lines]

    def index_var(self, depth: int) -> str:
        return f"i{depth}"

    @abstractmethod
    def subscript(self, place: str, index: str) -> str:
        """Expression for one element of ``place``."""

    @abstractmethod
    def loop(self, var: str, count: str, body: list[str]) -> list[str]:
        """A counted loop around ``body``."""

    @abstractmethod
    def field_ref(self, name: str) -> str:
        """Expression reading a member of the struct being encoded."""

    @abstractmethod
    def local_ref(self, name: str) -> str:
        """Name of the local holding a member while decoding."""

    @abstractmethod
    def loop_count(self, count_ref: str) -> str:
        """Convert a runtime count expression into a loop bound."""

    @abstractmethod
    def check_fixed_length(self, member: Member, place: str, axis: Axis) -> list[str]:
        """Reject a fixed-size container holding the wrong number of elements."""

    @abstractmethod
    def check_encode_count(self, member: Member, place: str, count_ref: str) -> list[str]:
        """Reject a declared length that exceeds the elements available."""

    @abstractmethod
    def check_decode_count(self, member: Member, count_ref: str) -> list[str]:
        """Reject a decoded length that cannot size an array."""

    @abstractmethod
    def allocate(self, place: str, axis: Axis, count: str) -> list[str]:
        """Create the container for one axis before it is filled."""

    @abstractmethod
    def element(self, place: str, index: str, depth: int) -> tuple[list[str], str, list[str]]:
        """Lines before, place of, and lines after one decoded element."""

    @abstractmethod
    def declare_local(self, member: Member, plan: ShapePlan) -> list[str]:
        """Declare the local an array member is decoded into."""

    @abstractmethod
    def encode_leaf(self, t: TypeName, place: str) -> list[str]:
        """Encode one scalar or nested struct."""

    @abstractmethod
    def decode_leaf(self, t: TypeName, place: str) -> list[str]:
        """Decode one scalar or nested struct into ``place``."""

    @abstractmethod
    def decode_scalar(self, member: Member) -> list[str]:
        """Decode a member with no dimensions into its local."""

    @abstractmethod
    def fixed_width(self, t: TypeName) -> int | None:
        """Encoded size of a type if it never varies, else None."""

    @abstractmethod
    def size_leaf(self, t: TypeName, place: str) -> str:
        """Expression for the encoded size of one variable-width leaf."""

    @abstractmethod
    def size_count(self, count: str, place: str) -> str:
        """Loop bound used while measuring an axis."""

    @abstractmethod
    def check_size_fixed_length(self, member: Member, place: str, axis: Axis) -> list[str]:
        """Length check performed while measuring a fixed axis."""

    @abstractmethod
    def check_size_count(self, member: Member, place: str, count_ref: str) -> list[str]:
        """Length check performed while measuring a runtime axis."""

    @abstractmethod
    def size_add(self, expr: str) -> str:
        """Statement adding ``expr`` to the running size."""

    def product(self, constant: int, factors: list[str]) -> str:
        if constant == 0:
            return "0"
        terms = [str(constant)] if constant != 1 or not factors else []
        terms.extend(factors)
        return " * ".join(terms)


def encode_member(syntax: LoopSyntax, member: Member) -> list[str]:
    """Emit the statements encoding ``member``."""
    plan = plan_shape(member)
    return _encode_axes(syntax, member, plan.axes, 0, syntax.field_ref(member.name))


def _encode_axes(
    syntax: LoopSyntax, member: Member, axes: tuple[Axis, ...], depth: int, place: str
) -> list[str]:
    if depth == len(axes):
        return syntax.encode_leaf(member.type, place)

    axis = axes[depth]
    var = syntax.index_var(depth)
    if axis.fixed:
        lines = syntax.check_fixed_length(member, place, axis)
        count = str(axis.size)
    else:
        count_ref = syntax.field_ref(str(axis.field))
        lines = syntax.check_encode_count(member, place, count_ref)
        count = syntax.loop_count(count_ref)

    body = _encode_axes(syntax, member, axes, depth + 1, syntax.subscript(place, var))
    return lines + syntax.loop(var, count, body)


def decode_member(syntax: LoopSyntax, member: Member) -> list[str]:
    """Emit the statements decoding ``member`` into its local.

    Runtime counts come from locals decoded earlier, so members must be
    decoded in declaration order.
    """
    plan = plan_shape(member)
    if plan.is_scalar:
        return syntax.decode_scalar(member)

    place = syntax.local_ref(member.name)
    return syntax.declare_local(member, plan) + _decode_axes(syntax, member, plan.axes, 0, place)


def _decode_axes(
    syntax: LoopSyntax, member: Member, axes: tuple[Axis, ...], depth: int, place: str
) -> list[str]:
    if depth == len(axes):
        return syntax.decode_leaf(member.type, place)

    axis = axes[depth]
    var = syntax.index_var(depth)
    if axis.fixed:
        lines: list[str] = []
        count = str(axis.size)
    else:
        count_ref = syntax.local_ref(str(axis.field))
        lines = syntax.check_decode_count(member, count_ref)
        count = syntax.loop_count(count_ref)

    lines += syntax.allocate(place, axis, count)
    before, element, after = syntax.element(place, var, depth)
    body = _decode_axes(syntax, member, axes, depth + 1, element)
    return lines + syntax.loop(var, count, before + body + after)


def size_member(syntax: LoopSyntax, member: Member) -> list[str]:
    """Emit the statements adding the encoded size of ``member``.

    Fixed-width leaves are measured as a product of axis counts; other
    leaves are summed over the same traversal encoding performs. When the
    syntax clamps counts, only the axes below the last clamped one are
    folded into the product.
    """
    plan = plan_shape(member)
    width = syntax.fixed_width(member.type)
    place = syntax.field_ref(member.name)
    if width is not None and syntax.multiply_declared_counts:
        constant = width
        factors: list[str] = []
        for axis in plan.axes:
            if axis.fixed:
                constant *= axis.size or 0
            else:
                factors.append(syntax.loop_count(syntax.field_ref(str(axis.field))))
        return [syntax.size_add(syntax.product(constant, factors))]

    return _size_axes(syntax, member, plan.axes, 0, place, width)


def _exact_axes(axes: tuple[Axis, ...]) -> bool:
    return all(axis.fixed and not axis.dynamic for axis in axes)


def _size_axes(
    syntax: LoopSyntax,
    member: Member,
    axes: tuple[Axis, ...],
    depth: int,
    place: str,
    width: int | None,
) -> list[str]:
    if width is not None and _exact_axes(axes[depth:]):
        constant = width
        for axis in axes[depth:]:
            constant *= axis.size or 0
        return [syntax.size_add(str(constant))]
    if depth == len(axes):
        return [syntax.size_add(syntax.size_leaf(member.type, place))]

    axis = axes[depth]
    var = syntax.index_var(depth)
    if axis.fixed:
        lines = syntax.check_size_fixed_length(member, place, axis)
        count = syntax.size_count(str(axis.size), place)
    else:
        count_ref = syntax.field_ref(str(axis.field))
        lines = syntax.check_size_count(member, place, count_ref)
        count = syntax.size_count(syntax.loop_count(count_ref), place)

    if width is not None and _exact_axes(axes[depth + 1 :]):
        constant = width
        for inner in axes[depth + 1 :]:
            constant *= inner.size or 0
        return lines + [syntax.size_add(syntax.product(constant, [count]))]

    body = _size_axes(syntax, member, axes, depth + 1, syntax.subscript(place, var), width)
    return lines + syntax.loop(var, count, body)
