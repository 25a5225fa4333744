"""Array shape planning for struct members."""

from dataclasses import dataclass

from .types import Member


@dataclass(frozen=True)
class Axis:
    """One array axis, outermost first.

    Fixed axes carry ``size``; runtime axes carry the name of the sibling
    member holding the element count. ``dynamic`` tells declaration
    generators whether this axis needs a growable container.
    """

    fixed: bool
    size: int | None
    field: str | None
    dynamic: bool

    @property
    def count_text(self) -> str:
        """The element count as schema text."""
        return str(self.size) if self.fixed else str(self.field)


@dataclass(frozen=True)
class ShapePlan:
    """Nesting plan for one member, consumed by declaration and codec emitters."""

    axes: tuple[Axis, ...]

    @property
    def is_scalar(self) -> bool:
        return not self.axes

    @property
    def is_fully_fixed(self) -> bool:
        return all(axis.fixed for axis in self.axes)

    @property
    def first_runtime_axis(self) -> int | None:
        for i, axis in enumerate(self.axes):
            if not axis.fixed:
                return i
        return None

    @property
    def runtime_fields(self) -> list[str]:
        return [axis.field for axis in self.axes if axis.field is not None]

    @property
    def fixed_element_count(self) -> int:
        """Number of leaves of a fully fixed member."""
        if not self.is_fully_fixed:
            raise ValueError("Member has runtime-sized axes")
        count = 1
        for axis in self.axes:
            count *= axis.size or 0
        return count


def plan_shape(member: Member) -> ShapePlan:
    """Compute the axis plan of a member.

    A member that is fixed at every axis is fixed-capacity throughout. Once
    a runtime axis appears, it and every axis nested inside it are dynamic,
    even when those inner axes have fixed sizes.
    """
    axes: list[Axis] = []
    dynamic = False
    for dim in member.dimensions:
        if dim.is_fixed:
            axes.append(Axis(fixed=True, size=dim.fixed_size, field=None, dynamic=dynamic))
        else:
            dynamic = True
            axes.append(Axis(fixed=False, size=None, field=dim.size, dynamic=True))
    return ShapePlan(tuple(axes))
