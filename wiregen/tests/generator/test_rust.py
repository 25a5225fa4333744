"""Tests for the Rust backend."""

import pytest

from wiregen.generator import TypeModel, get_backend, parse
from wiregen.generator.naming import NameCollisionError

SCHEMA = """
package geo.shapes;

/** A point in the plane. */
struct point_t {
    const int32_t MAX = 10;
    double x, y;
}

struct path_t {
    int32_t n;
    point_t points[n];
    int32_t grid[2][3];
    string tags[n][2];
    int8_t type;
}
"""


def render(name, schema=SCHEMA):
    model = TypeModel(parse(schema))
    return get_backend("rust").render_struct(model, model.get(name))


def describe_declarations():
    def starts_with_marker(expect):
        code = render("geo.shapes.point_t")
        expect(code.startswith("// GENERATED CODE - DO NOT EDIT\n")) == True

    def derives_struct(expect):
        code = render("geo.shapes.point_t")
        expect("/// A point in the plane.\n#[derive(Clone, Debug, Default, PartialEq)]" in code) == True
        expect("pub struct Point {\n    pub x: f64,\n    pub y: f64,\n}" in code) == True

    def declares_constants(expect):
        code = render("geo.shapes.point_t")
        expect("    pub const MAX: i32 = 10;" in code) == True

    def maps_array_shapes(expect):
        code = render("geo.shapes.path_t")
        expect("    pub points: Vec<Point>," in code) == True
        expect("    pub grid: GenericArray<GenericArray<i32, typenum::U3>, typenum::U2>," in code) == True
        expect("    pub tags: Vec<Vec<String>>," in code) == True

    def escapes_keywords(expect):
        code = render("geo.shapes.path_t")
        expect("    pub r#type: i8," in code) == True

    def imports_referenced_types(expect):
        code = render("geo.shapes.path_t")
        expect("use crate::geo::shapes::Point;" in code) == True
        expect("use wiregen::generic_array::{typenum, GenericArray};" in code) == True
        expect("use wiregen::Message;" in code) == True

    def skips_unused_imports(expect):
        code = render("geo.shapes.point_t")
        expect("generic_array" in code) == False
        expect("use std::io::{Read, Result, Write};" in code) == True

    def publishes_fingerprint(expect):
        model = TypeModel(parse(SCHEMA))
        point = model.get("geo.shapes.point_t")
        code = get_backend("rust").render_struct(model, point)
        expect(f"        0x{point.fingerprint:016x}\n" in code) == True


def describe_encode():
    def checks_declared_length(expect):
        code = render("geo.shapes.path_t")
        expect("        if self.n < 0 || (self.n as usize) > self.points.len() {" in code) == True
        expect("ErrorKind::InvalidInput" in code) == True

    def loops_over_runtime_axis(expect):
        code = render("geo.shapes.path_t")
        loop = (
            "        for i0 in 0..(self.n as usize) {\n"
            "            self.points[i0].encode(buffer)?;\n"
            "        }\n"
        )
        expect(loop in code) == True

    def checks_fixed_axes_inside_dynamic_axes(expect):
        code = render("geo.shapes.path_t")
        expect("            if self.tags[i0].len() != 2 {" in code) == True
        expect("if self.grid.len()" in code) == False


def describe_decode():
    def decodes_counts_first(expect):
        code = render("geo.shapes.path_t")
        count = code.index("let v_n: i32 = Message::decode(buffer)?;")
        points = code.index("let mut v_points: Vec<Point> = Default::default();")
        expect(count < points) == True

    def rejects_negative_lengths(expect):
        code = render("geo.shapes.path_t")
        check = (
            "        if v_n < 0 {\n"
            '            return Err(Error::new(ErrorKind::InvalidData, "points: invalid length"));\n'
            "        }\n"
        )
        expect(check in code) == True

    def resizes_dynamic_axes(expect):
        code = render("geo.shapes.path_t")
        expect("        v_points.resize_with((v_n as usize), Default::default);" in code) == True
        expect("            v_tags[i0].resize_with(2, Default::default);" in code) == True

    def builds_struct_from_locals(expect):
        code = render("geo.shapes.path_t")
        expect("        Ok(Path {\n            n: v_n,\n            points: v_points," in code) == True


def describe_identifiers():
    def decodes_into_prefixed_locals(expect):
        code = render("s", "struct s { int32_t buffer; int32_t other; }")
        expect("        let v_buffer: i32 = Message::decode(buffer)?;\n" in code) == True
        expect("        let v_other: i32 = Message::decode(buffer)?;\n" in code) == True
        expect("            buffer: v_buffer,\n" in code) == True

    def reads_counts_from_decoded_locals(expect):
        code = render("s", "struct s { int32_t i0; int32_t m[2][i0]; }")
        expect("        for i0 in 0..2 {\n            if v_i0 < 0 {\n" in code) == True
        loop = (
            "            v_m[i0].resize_with((v_i0 as usize), Default::default);\n"
            "            for i1 in 0..(v_i0 as usize) {\n"
        )
        expect(loop in code) == True

    def renames_names_without_raw_form(expect):
        code = render("s", "struct s { int32_t self; int32_t crate; }")
        expect("    pub self_: i32,\n    pub crate_: i32,\n" in code) == True
        expect("            self_: v_self,\n" in code) == True


def describe_constants():
    def writes_float_literals(expect):
        code = render(
            "s", "struct s { const double PI = 3; const float F = 0x10, G = -2.5e3; }"
        )
        expect("    pub const PI: f64 = 3.0;" in code) == True
        expect("    pub const F: f32 = 16.0;" in code) == True
        expect("    pub const G: f32 = -2500.0;" in code) == True

    def writes_decimal_integers(expect):
        code = render("s", "struct s { const int32_t X = +5, Y = 0x1F; const int8_t Z = -0x80; }")
        expect("    pub const X: i32 = 5;" in code) == True
        expect("    pub const Y: i32 = 31;" in code) == True
        expect("    pub const Z: i8 = -128;" in code) == True

    def escapes_keyword_names(expect):
        code = render("s", "struct s { const int32_t type = 1; }")
        expect("    pub const r#type: i32 = 1;" in code) == True


def describe_size():
    def multiplies_fixed_widths(expect):
        code = render("geo.shapes.path_t")
        expect("        size += 16 * std::cmp::min((self.n as usize), self.points.len());" in code) == True
        expect("        size += 24;" in code) == True

    def sums_variable_width_leaves(expect):
        code = render("geo.shapes.path_t")
        expect("for i0 in 0..std::cmp::min((self.n as usize), self.tags.len()) {" in code) == True
        expect("size += self.tags[i0][i1].size();" in code) == True

    def clamps_nested_runtime_axes(expect):
        code = render("s", "struct s { int32_t n; int32_t m[n][2][n]; }")
        nested = (
            "        for i0 in 0..std::cmp::min((self.n as usize), self.m.len()) {\n"
            "            for i1 in 0..std::cmp::min(2, self.m[i0].len()) {\n"
            "                size += 4 * std::cmp::min((self.n as usize), self.m[i0][i1].len());\n"
            "            }\n"
            "        }\n"
        )
        expect(nested in code) == True
        expect("(self.n as usize) * " in code) == False

    def empty_struct_has_zero_size(expect):
        code = render("empty_t", "struct empty_t {}")
        expect("    fn size(&self) -> usize {\n        0\n    }" in code) == True


def describe_manifest():
    def registers_struct(expect):
        model = TypeModel(parse(SCHEMA))
        entry = get_backend("rust").aggregate_entry(model.get("geo.shapes.point_t"))
        expect(entry) == "mod point_t;\npub use self::point_t::Point;\n"

    def rejects_colliding_imports(expect):
        model = TypeModel(
            parse("package a; struct thing_t { int32_t v; }")
            + parse("package b; struct thing { int32_t v; }")
            + parse("package c; struct user { a.thing_t x; b.thing y; }")
        )
        with pytest.raises(NameCollisionError):
            get_backend("rust").render_struct(model, model.get("c.user"))
