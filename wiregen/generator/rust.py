"""Rust code generator."""

from jinja2 import Environment, PackageLoader

from .arrays import LoopSyntax, decode_member, encode_member, size_member
from .backend import GENERATED_MARKER, Backend, register
from .model import TypeModel
from .naming import NameCollisionError, module_name, package_parts, type_identifier
from .shapes import Axis, ShapePlan, plan_shape
from .sizes import SizeCalculator
from .types import Constant, Member, Struct, TypeName

env = Environment(
    loader=PackageLoader("wiregen.generator", "templates"),
    trim_blocks=True,
    lstrip_blocks=True,
    keep_trailing_newline=True,
    line_comment_prefix="%%",
    line_statement_prefix="%",
)

template = env.get_template("rust.rs.j2")

PRIMITIVE_TYPE_MAP = {
    "int8_t": "i8",
    "int16_t": "i16",
    "int32_t": "i32",
    "int64_t": "i64",
    "byte": "u8",
    "float": "f32",
    "double": "f64",
    "string": "String",
    "boolean": "bool",
}

RUST_KEYWORDS = frozenset(
    [
        "as",
        "async",
        "await",
        "break",
        "const",
        "continue",
        "dyn",
        "else",
        "enum",
        "extern",
        "false",
        "fn",
        "for",
        "if",
        "impl",
        "in",
        "let",
        "loop",
        "match",
        "mod",
        "move",
        "mut",
        "pub",
        "ref",
        "return",
        "static",
        "struct",
        "trait",
        "true",
        "type",
        "unsafe",
        "use",
        "where",
        "while",
        "abstract",
        "become",
        "box",
        "do",
        "final",
        "macro",
        "override",
        "priv",
        "try",
        "typeof",
        "unsized",
        "virtual",
        "yield",
    ]
)

# Keywords that have no raw identifier form
NON_RAW_KEYWORDS = frozenset(["self", "Self", "super", "crate"])


class RustSyntax(LoopSyntax):
    """Rust fragments for the array emitters."""

    multiply_declared_counts = False

    def __init__(self, backend: "RustBackend", sizes: SizeCalculator):
        self.backend = backend
        self.sizes = sizes

    def _error(self, kind: str, message: str) -> list[str]:
        return [f'    return Err(Error::new(ErrorKind::{kind}, "{message}"));']

    def subscript(self, place: str, index: str) -> str:
        return f"{place}[{index}]"

    def loop(self, var: str, count: str, body: list[str]) -> list[str]:
        return [f"for {var} in 0..{count} {{", *self.indent(body), "}"]

    def field_ref(self, name: str) -> str:
        return f"self.{self.backend.field_identifier(name)}"

    def local_ref(self, name: str) -> str:
        return f"v_{name}"

    def loop_count(self, count_ref: str) -> str:
        return f"({count_ref} as usize)"

    def check_fixed_length(self, member: Member, place: str, axis: Axis) -> list[str]:
        if not axis.dynamic:
            # GenericArray length is part of the type
            return []
        return [
            f"if {place}.len() != {axis.size} {{",
            *self._error("InvalidInput", f"{member.name}: expected {axis.size} elements"),
            "}",
        ]

    def check_encode_count(self, member: Member, place: str, count_ref: str) -> list[str]:
        return [
            f"if {count_ref} < 0 || {self.loop_count(count_ref)} > {place}.len() {{",
            *self._error(
                "InvalidInput", f"{member.name}: declared length exceeds available elements"
            ),
            "}",
        ]

    def check_decode_count(self, member: Member, count_ref: str) -> list[str]:
        return [
            f"if {count_ref} < 0 {{",
            *self._error("InvalidData", f"{member.name}: invalid length"),
            "}",
        ]

    def allocate(self, place: str, axis: Axis, count: str) -> list[str]:
        if not axis.dynamic:
            return []
        return [f"{place}.resize_with({count}, Default::default);"]

    def element(self, place: str, index: str, depth: int) -> tuple[list[str], str, list[str]]:
        return [], self.subscript(place, index), []

    def declare_local(self, member: Member, plan: ShapePlan) -> list[str]:
        local = self.local_ref(member.name)
        return [f"let mut {local}: {self.backend.declare_type(member)} = Default::default();"]

    def encode_leaf(self, t: TypeName, place: str) -> list[str]:
        return [f"{place}.encode(buffer)?;"]

    def decode_leaf(self, t: TypeName, place: str) -> list[str]:
        return [f"{place} = Message::decode(buffer)?;"]

    def decode_scalar(self, member: Member) -> list[str]:
        local = self.local_ref(member.name)
        return [f"let {local}: {self.backend.declare_type(member)} = Message::decode(buffer)?;"]

    def fixed_width(self, t: TypeName) -> int | None:
        return self.sizes.fixed_width(t)

    def size_leaf(self, t: TypeName, place: str) -> str:
        return f"{place}.size()"

    def size_count(self, count: str, place: str) -> str:
        return f"std::cmp::min({count}, {place}.len())"

    def check_size_fixed_length(self, member: Member, place: str, axis: Axis) -> list[str]:
        return []

    def check_size_count(self, member: Member, place: str, count_ref: str) -> list[str]:
        return []

    def size_add(self, expr: str) -> str:
        return f"size += {expr};"


def _comment_lines(comment: str | None) -> list[str]:
    if not comment:
        return []
    return [line.rstrip() for line in comment.strip().splitlines()]


def constant_literal(const: Constant) -> str:
    """A constant as a Rust literal of its declared type."""
    return repr(const.numeric_value())


@register("rust")
class RustBackend(Backend):
    """Generate one module per struct and a mod.rs per package."""

    file_extension = ".rs"
    aggregate_file_name = "mod.rs"
    keywords = RUST_KEYWORDS
    raw_identifier_prefix = "r#"
    rebuild_trigger = "cargo:rerun-if-changed={path}"

    def __init__(self, runtime_crate: str = "wiregen"):
        self.runtime_crate = runtime_crate

    def field_identifier(self, name: str) -> str:
        if name in NON_RAW_KEYWORDS:
            return f"{name}_"
        return super().field_identifier(name)

    def map_type(self, t: TypeName) -> str:
        if t.is_primitive:
            return PRIMITIVE_TYPE_MAP[t.short_name]
        return type_identifier(t.short_name)

    def declare_type(self, member: Member) -> str:
        """Map a member to a Rust type.

        Fixed-capacity axes become GenericArray, dynamic axes Vec.
        """
        declared = self.map_type(member.type)
        for axis in reversed(plan_shape(member).axes):
            if axis.dynamic:
                declared = f"Vec<{declared}>"
            else:
                declared = f"GenericArray<{declared}, typenum::U{axis.size}>"
        return declared

    def _imports(self, struct: Struct) -> list[str]:
        own = self.type_identifier(struct)
        names: dict[str, str] = {own: struct.name.full_name}
        imports: list[str] = []
        for ref in struct.referenced_types():
            if ref == struct.name:
                continue
            ident = type_identifier(ref.short_name)
            other = names.setdefault(ident, ref.full_name)
            if other != ref.full_name:
                raise NameCollisionError(
                    f"{struct.name.full_name} references '{other}' and '{ref.full_name}', "
                    f"which both map to '{ident}'"
                )
            imports.append("::".join(["crate", *package_parts(ref.package), ident]))
        return imports

    def render_struct(self, model: TypeModel, struct: Struct) -> str:
        syntax = RustSyntax(self, SizeCalculator(model))
        body = "    " * 2

        encode_lines: list[str] = []
        decode_lines: list[str] = []
        size_lines: list[str] = []
        fields = []
        for member in struct.members:
            fields.append(
                {
                    "name": self.field_identifier(member.name),
                    "local": syntax.local_ref(member.name),
                    "type": self.declare_type(member),
                    "comment_lines": _comment_lines(member.comment),
                }
            )
            encode_lines += encode_member(syntax, member)
            decode_lines += decode_member(syntax, member)
            size_lines += size_member(syntax, member)

        constants = [
            {
                "name": self.field_identifier(const.name),
                "type": PRIMITIVE_TYPE_MAP[const.type],
                "value": constant_literal(const),
                "comment_lines": _comment_lines(const.comment),
            }
            for const in struct.constants
        ]

        declarations = " ".join(f["type"] for f in fields)
        code = "\n".join(encode_lines + decode_lines)

        return template.render(
            marker=GENERATED_MARKER,
            name=self.type_identifier(struct),
            doc_lines=_comment_lines(struct.comment),
            runtime_crate=self.runtime_crate,
            uses_errors="Error::new" in code,
            uses_generic_array="GenericArray<" in declarations,
            imports=self._imports(struct),
            constants=constants,
            fields=fields,
            fingerprint=f"0x{struct.fingerprint:016x}",
            encode_lines=[body + line for line in encode_lines],
            decode_lines=[body + line for line in decode_lines],
            size_lines=[body + line for line in size_lines],
        )

    def aggregate_header(self) -> str:
        return f"// {GENERATED_MARKER}\n"

    def aggregate_entry(self, struct: Struct) -> str:
        module = module_name(struct.name.short_name)
        return f"mod {module};\npub use self::{module}::{self.type_identifier(struct)};\n"

    def subpackage_entry(self, name: str) -> str:
        return f"pub mod {name};\n"
