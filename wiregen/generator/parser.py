"""Schema parser using Lark."""

import math
import os
import sys
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any, TypeVar

from lark import Lark, Token
from lark.exceptions import UnexpectedInput
from lark.visitors import Transformer

from .model import TypeModel
from .types import (
    ARRAY_SIZE_TYPES,
    CONSTANT_TYPES,
    Constant,
    Dimension,
    Member,
    Struct,
    TypeName,
)

_g_parser: Lark | None = None

# Value ranges of integer constant types
_INT_RANGES = {
    "int8_t": (-(2**7), 2**7 - 1),
    "int16_t": (-(2**15), 2**15 - 1),
    "int32_t": (-(2**31), 2**31 - 1),
    "int64_t": (-(2**63), 2**63 - 1),
}

# Largest finite single precision value
FLOAT32_MAX = 3.4028234663852886e38


class ValidationError(RuntimeError):
    """Raised when schema validation fails."""


@dataclass
class _Doc:
    value: str


@dataclass
class _Package:
    value: str


@dataclass
class _TypeRef:
    value: str


@dataclass
class _MemberDecl:
    name: str
    dimensions: list[Dimension]


@dataclass
class _MemberGroup:
    type: str
    members: list[_MemberDecl]
    comment: str | None


@dataclass
class _ConstItem:
    name: str
    value: str


@dataclass
class _ConstGroup:
    type: str
    items: list[_ConstItem]
    comment: str | None


@dataclass
class _StructDecl:
    name: str
    groups: list[_MemberGroup | _ConstGroup]
    comment: str | None


TFilter = TypeVar("TFilter", bound=object)


def _filter(args: list[Any], class_type: type[TFilter]) -> list[TFilter]:
    return [v for v in args if isinstance(v, class_type)]


def _find_one(args: list[Any], class_type: type[object]) -> Any:
    filtered = _filter(args, class_type)
    if len(filtered) == 0:
        return None
    if len(filtered) > 1:
        raise RuntimeError(f"Found more than one {class_type}")

    if hasattr(filtered[0], "value"):
        return filtered[0].value
    return filtered[0]


def _names(args: list[Any]) -> list[str]:
    return [str(v) for v in args if isinstance(v, Token)]


def _clean_doc(text: str) -> str:
    """Strip comment delimiters and leading asterisks from a doc comment."""
    body = text[3:-2]
    lines = []
    for line in body.splitlines():
        line = line.strip()
        if line.startswith("*"):
            line = line[1:].strip()
        lines.append(line)
    return "\n".join(lines).strip()


class TreeTransformer(Transformer):
    """Transform parse tree into schema declarations."""

    def doc(self, args: list[Any]) -> _Doc:
        return _Doc(value=_clean_doc(str(args[0])))

    def package(self, args: list[Any]) -> _Package:
        return _Package(value=str(args[0]))

    def type_ref(self, args: list[Any]) -> _TypeRef:
        return _TypeRef(value=str(args[0]))

    def dimension(self, args: list[Any]) -> Dimension:
        return Dimension.parse(str(args[0]))

    def member(self, args: list[Any]) -> _MemberDecl:
        return _MemberDecl(name=_names(args)[0], dimensions=_filter(args, Dimension))

    def member_group(self, args: list[Any]) -> _MemberGroup:
        return _MemberGroup(
            type=_find_one(args, _TypeRef),
            members=_filter(args, _MemberDecl),
            comment=_find_one(args, _Doc),
        )

    def const_item(self, args: list[Any]) -> _ConstItem:
        name, value = _names(args)
        return _ConstItem(name=name, value=value)

    def const_group(self, args: list[Any]) -> _ConstGroup:
        return _ConstGroup(
            type=_names(args)[0],
            items=_filter(args, _ConstItem),
            comment=_find_one(args, _Doc),
        )

    def struct(self, args: list[Any]) -> _StructDecl:
        return _StructDecl(
            name=_names(args)[0],
            groups=[v for v in args if isinstance(v, (_MemberGroup, _ConstGroup))],
            comment=_find_one(args, _Doc),
        )


def _build_struct(decl: _StructDecl, package: str, source_file: str | None) -> Struct:
    struct = Struct(
        name=TypeName(package, decl.name),
        comment=decl.comment,
        source_file=source_file,
    )
    for group in decl.groups:
        if isinstance(group, _MemberGroup):
            member_type = TypeName.parse(group.type, package)
            for m in group.members:
                struct.members.append(
                    Member(
                        name=m.name,
                        type=member_type,
                        dimensions=m.dimensions,
                        comment=group.comment,
                    )
                )
        else:
            for item in group.items:
                struct.constants.append(
                    Constant(name=item.name, type=group.type, value=item.value, comment=group.comment)
                )
    return struct


def _validate_constant(struct: Struct, const: Constant) -> None:
    where = f"{struct.name.full_name}.{const.name}"
    if const.type not in CONSTANT_TYPES:
        raise ValidationError(f"{where}: constants of type {const.type} are not supported")

    if const.type in _INT_RANGES:
        try:
            value = int(const.value, 0)
        except ValueError:
            raise ValidationError(f"{where}: invalid integer literal {const.value}") from None
        low, high = _INT_RANGES[const.type]
        if not low <= value <= high:
            raise ValidationError(f"{where}: {const.value} is out of range for {const.type}")
    else:
        try:
            value = const.numeric_value()
        except (ValueError, OverflowError):
            raise ValidationError(f"{where}: invalid number {const.value}") from None
        limit = FLOAT32_MAX if const.type == "float" else sys.float_info.max
        if not math.isfinite(value) or abs(value) > limit:
            raise ValidationError(f"{where}: {const.value} is out of range for {const.type}")


def validate(structs: Iterable[Struct]) -> None:
    """Validate parsed struct declarations."""
    for struct in structs:
        names: set[str] = set()
        for member in struct.members:
            where = f"{struct.name.full_name}.{member.name}"
            if member.name in names:
                raise ValidationError(f"{where}: duplicate member name")

            for dim in member.dimensions:
                if dim.is_fixed:
                    if dim.fixed_size < 0:
                        raise ValidationError(f"{where}: negative array size {dim.size}")
                    continue

                # Runtime sizes must be decoded before the array that uses them
                if dim.size not in names:
                    raise ValidationError(
                        f"{where}: array size '{dim.size}' must be a member declared earlier"
                    )
                size_member = struct.find_member(dim.size)
                if (
                    size_member is None
                    or size_member.is_array
                    or size_member.type.full_name not in ARRAY_SIZE_TYPES
                ):
                    raise ValidationError(
                        f"{where}: array size '{dim.size}' must be a scalar integer member"
                    )

            names.add(member.name)

        const_names: set[str] = set()
        for const in struct.constants:
            if const.name in const_names:
                raise ValidationError(
                    f"{struct.name.full_name}.{const.name}: duplicate constant name"
                )
            if const.name in names:
                raise ValidationError(
                    f"{struct.name.full_name}.{const.name}: constant has the name of a member"
                )
            const_names.add(const.name)
            _validate_constant(struct, const)


def parse(text: str, source_file: str | None = None) -> list[Struct]:
    """Parse a schema file into struct definitions."""
    global _g_parser

    if not _g_parser:
        with open(f"{os.path.dirname(__file__)}/schema.lark", encoding="utf-8") as f:
            grammar = f.read()

        _g_parser = Lark(grammar)

    try:
        tree = _g_parser.parse(text)
    except UnexpectedInput as e:
        where = source_file or "<schema>"
        raise ValidationError(f"{where}:{e.line}:{e.column}: syntax error") from e

    items = TreeTransformer().transform(tree).children

    package = _find_one(items, _Package) or ""
    structs = [_build_struct(decl, package, source_file) for decl in _filter(items, _StructDecl)]

    validate(structs)

    return structs


def load_model(paths: Iterable[str]) -> TypeModel:
    """Parse schema files into one type model."""
    structs: list[Struct] = []
    for path in paths:
        with open(path, encoding="utf-8") as f:
            structs.extend(parse(f.read(), source_file=path))
    return TypeModel(structs)
