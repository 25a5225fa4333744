"""Python code generator."""

import keyword

from jinja2 import Environment, PackageLoader

from .arrays import LoopSyntax, decode_member, encode_member, size_member
from .backend import GENERATED_MARKER, Backend, register
from .model import TypeModel
from .naming import NameCollisionError, module_name, package_parts, type_identifier
from .shapes import Axis, ShapePlan, plan_shape
from .sizes import SizeCalculator
from .types import Member, Struct, TypeName

env = Environment(
    loader=PackageLoader("wiregen.generator", "templates"),
    trim_blocks=True,
    lstrip_blocks=True,
    keep_trailing_newline=True,
    line_comment_prefix="%%",
    line_statement_prefix="%",
)

template = env.get_template("python.py.j2")

# Map schema types to Python type annotations
PRIMITIVE_TYPE_MAP = {
    "int8_t": "int",
    "int16_t": "int",
    "int32_t": "int",
    "int64_t": "int",
    "byte": "int",
    "float": "float",
    "double": "float",
    "string": "str",
    "boolean": "bool",
}

# Map schema types to the function suffix used in wiregen.proto.codec
CODEC_NAMES = {
    "int8_t": "int8",
    "int16_t": "int16",
    "int32_t": "int32",
    "int64_t": "int64",
    "byte": "byte",
    "float": "float",
    "double": "double",
    "string": "string",
    "boolean": "boolean",
}

DEFAULT_VALUES = {
    "int": "0",
    "float": "0.0",
    "str": '""',
    "bool": "False",
}

# Attributes of generated classes, and module-level names the class body
# uses, that members and constants must not shadow
RESERVED_NAMES = frozenset(
    [
        "BinaryIO",
        "ClassVar",
        "DecodeError",
        "EncodeError",
        "Struct",
        "_FINGERPRINT",
        "_codec",
        "dataclass",
        "decode",
        "decode_message",
        "encode",
        "encode_message",
        "field",
        "fingerprint",
        "pack",
        "size",
        "unpack",
    ]
)


class PythonSyntax(LoopSyntax):
    """Python fragments for the array emitters."""

    def __init__(self, backend: "PythonBackend", sizes: SizeCalculator, owner: TypeName):
        self.backend = backend
        self.sizes = sizes
        self.owner = owner

    def _leaf_type(self, t: TypeName) -> str:
        return self.backend.annotation_for(t, self.owner)

    def index_var(self, depth: int) -> str:
        return f"_i{depth}"

    def subscript(self, place: str, index: str) -> str:
        return f"{place}[{index}]"

    def loop(self, var: str, count: str, body: list[str]) -> list[str]:
        return [f"for {var} in range({count}):", *self.indent(body)]

    def field_ref(self, name: str) -> str:
        return f"self.{self.backend.field_identifier(name)}"

    def local_ref(self, name: str) -> str:
        return f"v_{name}"

    def loop_count(self, count_ref: str) -> str:
        return count_ref

    def check_fixed_length(self, member: Member, place: str, axis: Axis) -> list[str]:
        size = axis.size
        return [
            f"if len({place}) != {size}:",
            f'    raise EncodeError(f"{member.name}: expected {size} elements, got {{len({place})}}")',
        ]

    def check_encode_count(self, member: Member, place: str, count_ref: str) -> list[str]:
        return [
            f"if {count_ref} < 0:",
            f'    raise EncodeError(f"{member.name}: declared length {{{count_ref}}} is negative")',
            f"if {count_ref} > len({place}):",
            "    raise EncodeError(",
            f'        f"{member.name}: declared length {{{count_ref}}} exceeds available elements "',
            f'        f"({{len({place})}})"',
            "    )",
        ]

    def check_decode_count(self, member: Member, count_ref: str) -> list[str]:
        return [
            f"if {count_ref} < 0:",
            f'    raise DecodeError(f"{member.name}: invalid length {{{count_ref}}}")',
        ]

    def allocate(self, place: str, axis: Axis, count: str) -> list[str]:
        return [f"{place} = []"]

    def element(self, place: str, index: str, depth: int) -> tuple[list[str], str, list[str]]:
        item = f"_e{depth}"
        return [], item, [f"{place}.append({item})"]

    def declare_local(self, member: Member, plan: ShapePlan) -> list[str]:
        return []

    def encode_leaf(self, t: TypeName, place: str) -> list[str]:
        if t.is_primitive:
            return [f"_codec.write_{CODEC_NAMES[t.short_name]}(out, {place})"]
        return [f"{place}.encode(out)"]

    def decode_leaf(self, t: TypeName, place: str) -> list[str]:
        if t.is_primitive:
            return [f"{place} = _codec.read_{CODEC_NAMES[t.short_name]}(src)"]
        return [f"{place} = {self._leaf_type(t)}.decode(src)"]

    def decode_scalar(self, member: Member) -> list[str]:
        return self.decode_leaf(member.type, self.local_ref(member.name))

    def fixed_width(self, t: TypeName) -> int | None:
        return self.sizes.fixed_width(t)

    def size_leaf(self, t: TypeName, place: str) -> str:
        if t.is_primitive:
            return f"_codec.string_size({place})"
        return f"{place}.size()"

    def size_count(self, count: str, place: str) -> str:
        return count

    def check_size_fixed_length(self, member: Member, place: str, axis: Axis) -> list[str]:
        return self.check_fixed_length(member, place, axis)

    def check_size_count(self, member: Member, place: str, count_ref: str) -> list[str]:
        return self.check_encode_count(member, place, count_ref)

    def size_add(self, expr: str) -> str:
        return f"n += {expr}"


def _comment_lines(comment: str | None) -> list[str]:
    if not comment:
        return []
    return [line.rstrip() for line in comment.strip().splitlines()]


def _docstring(comment: str | None, indent: str) -> list[str]:
    lines = [line.replace('"""', '\\"\\"\\"') for line in _comment_lines(comment)]
    if not lines:
        return []
    if len(lines) == 1:
        return [f'{indent}"""{lines[0]}"""']
    return [
        f'{indent}"""{lines[0]}',
        *(f"{indent}{line}" if line else "" for line in lines[1:]),
        f'{indent}"""',
    ]


@register("python")
class PythonBackend(Backend):
    """Generate one dataclass module per struct and an __init__.py per package."""

    file_extension = ".py"
    aggregate_file_name = "__init__.py"
    keywords = frozenset(keyword.kwlist) | RESERVED_NAMES

    def __init__(self, runtime_import: str = "wiregen.proto"):
        self.runtime_import = runtime_import

    def module_alias(self, t: TypeName) -> str:
        """Module-level name a referencing module binds ``t``'s module to."""
        alias = f"_{module_name(t.short_name)}"
        if alias == "_codec":
            return "_codec_"
        return alias

    def annotation_for(self, t: TypeName, owner: TypeName | None = None) -> str:
        """Type expression for ``t`` inside the module generated for ``owner``.

        Other structs are reached through their module so that structs
        referring to each other do not need each other's class at import time.
        """
        if t.is_primitive:
            return PRIMITIVE_TYPE_MAP[t.short_name]
        ident = type_identifier(t.short_name)
        if owner is None or t == owner:
            return ident
        return f"{self.module_alias(t)}.{ident}"

    def declare_type(self, member: Member, owner: TypeName | None = None) -> str:
        """Map a member to a Python type annotation."""
        annotation = self.annotation_for(member.type, owner)
        for _ in member.dimensions:
            annotation = f"list[{annotation}]"
        return annotation

    def declare_default(self, member: Member, owner: TypeName | None = None) -> str:
        """Right-hand side of a dataclass field declaration.

        Fixed axes are pre-filled with default elements; dynamic axes start
        empty. Struct elements are built lazily, after every module has loaded.
        """
        plan = plan_shape(member)
        leaf = self.annotation_for(member.type, owner)
        leaf_default = DEFAULT_VALUES.get(leaf, f"{leaf}()")

        if plan.is_scalar:
            if member.type.is_primitive:
                return leaf_default
            return f"field(default_factory=lambda: {leaf_default})"

        value = self._default_value(plan.axes, leaf_default, member.type.is_primitive)
        if value == "[]":
            return "field(default_factory=list)"
        return f"field(default_factory=lambda: {value})"

    def _default_value(self, axes: tuple[Axis, ...], leaf: str, immutable_leaf: bool) -> str:
        axis = axes[0]
        if axis.dynamic:
            return "[]"
        if len(axes) == 1 and immutable_leaf:
            return f"[{leaf}] * {axis.size}"
        inner = leaf if len(axes) == 1 else self._default_value(axes[1:], leaf, immutable_leaf)
        return f"[{inner} for _ in range({axis.size})]"

    def _imports(self, struct: Struct) -> list[str]:
        imports: list[str] = []
        aliases: dict[str, str] = {}
        for ref in struct.referenced_types():
            if ref == struct.name:
                continue
            alias = self.module_alias(ref)
            other = aliases.setdefault(alias, ref.full_name)
            if other != ref.full_name:
                raise NameCollisionError(
                    f"{struct.name.full_name} references '{other}' and '{ref.full_name}', "
                    f"which both map to module '{alias}'"
                )
            module = module_name(ref.short_name)
            if ref.package:
                package = ".".join(package_parts(ref.package))
                imports.append(f"from {package} import {module} as {alias}")
            else:
                imports.append(f"import {module} as {alias}")
        return imports

    def render_struct(self, model: TypeModel, struct: Struct) -> str:
        syntax = PythonSyntax(self, SizeCalculator(model), struct.name)
        body = "    " * 2

        encode_lines: list[str] = []
        decode_lines: list[str] = []
        size_lines: list[str] = []
        args: list[str] = []
        fields = []
        for member in struct.members:
            ident = self.field_identifier(member.name)
            fields.append(
                {
                    "name": ident,
                    "annotation": self.declare_type(member, struct.name),
                    "default": self.declare_default(member, struct.name),
                    "comment_lines": _comment_lines(member.comment),
                }
            )
            encode_lines += encode_member(syntax, member)
            decode_lines += decode_member(syntax, member)
            size_lines += size_member(syntax, member)
            args.append(f"{ident}={syntax.local_ref(member.name)}")

        constants = [
            {
                "name": self.field_identifier(const.name),
                "annotation": PRIMITIVE_TYPE_MAP[const.type],
                "value": repr(const.numeric_value()),
                "comment_lines": _comment_lines(const.comment),
            }
            for const in struct.constants
        ]

        struct_size = syntax.sizes.calc_struct_size(struct.name.full_name).size
        fixed_size = struct_size.min_size if struct_size.is_fixed else None

        code = "\n".join(encode_lines + decode_lines + size_lines)
        runtime_names = ["Struct"]
        if "DecodeError(" in code:
            runtime_names.insert(0, "DecodeError")
        if "EncodeError(" in code:
            runtime_names.insert(-1, "EncodeError")

        return template.render(
            marker=GENERATED_MARKER,
            full_name=struct.name.full_name,
            name=self.type_identifier(struct),
            doc_lines=_docstring(struct.comment, "    "),
            runtime_import=self.runtime_import,
            runtime_names=runtime_names,
            uses_codec="_codec." in code,
            uses_field=any(f["default"].startswith("field(") for f in fields),
            imports=self._imports(struct),
            constants=constants,
            fields=fields,
            fingerprint=f"0x{struct.fingerprint:016x}",
            encode_lines=[body + line for line in encode_lines],
            decode_lines=[body + line for line in decode_lines],
            size_lines=[body + line for line in size_lines],
            fixed_size=fixed_size,
            ctor_args=", ".join(args),
        )

    def aggregate_header(self) -> str:
        return f"# {GENERATED_MARKER}\n"

    def aggregate_entry(self, struct: Struct) -> str:
        ident = self.type_identifier(struct)
        return f"from .{module_name(struct.name.short_name)} import {ident} as {ident}\n"

    def subpackage_entry(self, name: str) -> str:
        return f"from . import {name} as {name}\n"
