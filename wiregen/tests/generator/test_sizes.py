"""Tests for size calculation."""

from wiregen.generator import TypeModel, parse
from wiregen.generator.sizes import SizeCalculator, SizeKind, calculate_sizes
from wiregen.generator.types import TypeName


def sizes(schema):
    return calculate_sizes(TypeModel(parse(schema)))


def describe_primitive_sizes():
    def calculates_fixed_primitives(expect):
        info = sizes(
            """
            struct fixed {
                int8_t a;
                int32_t b;
                double c;
            }
            """
        )
        expect(info["fixed"].size.min_size) == 13  # 1 + 4 + 8
        expect(info["fixed"].size.max_size) == 13
        expect(info["fixed"].size.kind) == SizeKind.FIXED

    def calculates_bool_and_byte_size(expect):
        info = sizes("struct flags { boolean a; boolean b; byte c; }")
        expect(info["flags"].size.min_size) == 3
        expect(info["flags"].size.is_fixed) == True

    def empty_struct_has_no_size(expect):
        info = sizes("struct empty {}")
        expect(info["empty"].size.min_size) == 0
        expect(info["empty"].size.max_size) == 0


def describe_string_sizes():
    def string_is_unbounded(expect):
        info = sizes("struct named { string name; }")
        expect(info["named"].size.min_size) == 5
        expect(info["named"].size.max_size) == None
        expect(info["named"].size.kind) == SizeKind.VARIABLE


def describe_array_sizes():
    def multiplies_fixed_axes(expect):
        info = sizes("struct grid { int32_t grid[2][3]; }")
        expect(info["grid"].size.min_size) == 24
        expect(info["grid"].size.is_fixed) == True

    def runtime_axis_is_variable(expect):
        info = sizes("struct list { int16_t n; double values[n][4]; }")
        expect(info["list"].size.min_size) == 2
        expect(info["list"].size.max_size) == None
        expect(info["list"].size.kind) == SizeKind.VARIABLE

    def zero_length_axis_is_fixed(expect):
        info = sizes("struct none { string names[0]; }")
        expect(info["none"].size.min_size) == 0
        expect(info["none"].size.kind) == SizeKind.FIXED


def describe_nested_sizes():
    def adds_nested_struct_sizes(expect):
        info = sizes(
            """
            struct point { double x; double y; }
            struct segment { point a; point b; int8_t color; }
            """
        )
        expect(info["segment"].size.min_size) == 33
        expect(info["segment"].size.is_fixed) == True

    def self_reference_is_variable(expect):
        info = sizes("struct node { int32_t n; node children[n]; }")
        expect(info["node"].size.min_size) == 4
        expect(info["node"].size.kind) == SizeKind.VARIABLE

    def fixed_width_of_types(expect):
        model = TypeModel(parse("struct p { double x; } struct s { string t; }"))
        calc = SizeCalculator(model)
        expect(calc.fixed_width(TypeName("", "int64_t"))) == 8
        expect(calc.fixed_width(TypeName("", "p"))) == 8
        expect(calc.fixed_width(TypeName("", "string"))) == None
        expect(calc.fixed_width(TypeName("", "s"))) == None
