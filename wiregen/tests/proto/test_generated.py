"""Tests for generated Python struct types"""

import importlib
import io
import itertools
import struct

import pytest
from pytest import raises

from wiregen.generator import GeneratorOptions, TypeModel, generate, get_backend, parse
from wiregen.proto import DecodeError, EncodeError

SCHEMA = """
package PKG;

struct point_t {
    double x, y;
}

struct path_t {
    int32_t count;
    point_t points[count];
}

struct grid_t {
    int32_t grid[2][3];
}

struct node_t {
    int32_t n;
    node_t children[n];
    string name;
}

struct mixed_t {
    const int32_t LIMIT = 3;

    int8_t a;
    int16_t b;
    int64_t c;
    byte d;
    float e;
    boolean f;
    string g;
    int32_t from;
    int16_t rows;
    int8_t cols;
    string names[rows];
    double matrix[rows][cols];
    point_t corners[2][rows];
    byte blob[0];
}
"""

_packages = itertools.count()


def generate_package(tmp_path, monkeypatch, schema):
    package = f"generated_{next(_packages)}"
    model = TypeModel(parse(schema.replace("PKG", package)))
    generate(model, get_backend("python"), GeneratorOptions(str(tmp_path)))
    monkeypatch.syspath_prepend(str(tmp_path))
    return importlib.import_module(package)


@pytest.fixture
def gen(tmp_path, monkeypatch):
    return generate_package(tmp_path, monkeypatch, SCHEMA)


def roundtrip(value):
    packed = value.pack()
    assert value.size() == len(packed)
    return type(value).unpack(packed)


def describe_point_and_path():
    def encodes_point(expect, gen):
        point = gen.Point(x=1.5, y=-2.0)
        expect(point.pack()) == bytes.fromhex("3ff8000000000000c000000000000000")
        expect(point.size()) == 16
        expect(roundtrip(point)) == point

    def encodes_path_with_declared_count(expect, gen):
        points = [gen.Point(x=1.0, y=2.0), gen.Point(x=3.0, y=4.0), gen.Point(x=5.0, y=6.0)]
        path = gen.Path(count=3, points=points)
        packed = path.pack()
        expect(len(packed)) == 4 + 3 * 16
        expect(packed[:4]) == b"\x00\x00\x00\x03"
        expect(roundtrip(path)) == path

    def rejects_count_beyond_points(expect, gen):
        points = [gen.Point(), gen.Point(), gen.Point()]
        path = gen.Path(count=5, points=points)
        with raises(EncodeError) as exc:
            path.pack()
        expect("exceeds available elements" in str(exc.value)) == True

    def rejects_negative_count(expect, gen):
        with raises(EncodeError):
            gen.Path(count=-1).pack()

    def writes_only_declared_elements(expect, gen):
        path = gen.Path(count=1, points=[gen.Point(x=1.0), gen.Point(x=2.0)])
        expect(len(path.pack())) == 20
        expect(path.size()) == 20
        expect(gen.Path.unpack(path.pack()).points) == [gen.Point(x=1.0)]

    def handles_zero_length(expect, gen):
        path = gen.Path()
        expect(path.pack()) == b"\x00\x00\x00\x00"
        expect(roundtrip(path)) == gen.Path(count=0, points=[])

    def rejects_negative_length_on_decode(expect, gen):
        with raises(DecodeError):
            gen.Path.unpack(b"\xff\xff\xff\xff")

    def rejects_truncated_input(expect, gen):
        packed = gen.Path(count=1, points=[gen.Point(x=1.0, y=2.0)]).pack()
        with raises(DecodeError):
            gen.Path.unpack(packed[:-1])

    def rejects_trailing_bytes(expect, gen):
        with raises(DecodeError):
            gen.Point.unpack(gen.Point().pack() + b"\x00")


def describe_grid():
    def encodes_row_major(expect, gen):
        grid = gen.Grid(grid=[[1, 2, 3], [4, 5, 6]])
        packed = grid.pack()
        expect(len(packed)) == 24
        expect(list(struct.unpack(">6i", packed))) == [1, 2, 3, 4, 5, 6]
        expect(roundtrip(grid)) == grid

    def defaults_to_zeros(expect, gen):
        expect(gen.Grid().grid) == [[0, 0, 0], [0, 0, 0]]

    def default_rows_are_independent(expect, gen):
        grid = gen.Grid()
        grid.grid[0][0] = 7
        expect(grid.grid[1][0]) == 0

    def rejects_wrong_length(expect, gen):
        with raises(EncodeError):
            gen.Grid(grid=[[1, 2, 3]]).pack()
        with raises(EncodeError):
            gen.Grid(grid=[[1, 2, 3], [4, 5]]).pack()


def describe_recursive_types():
    def roundtrips_tree(expect, gen):
        leaf = gen.Node(name="leaf")
        branch = gen.Node(n=1, children=[leaf], name="branch")
        root = gen.Node(n=2, children=[branch, gen.Node()], name="root")
        expect(roundtrip(root)) == root


def describe_mixed_types():
    def roundtrips_every_primitive_and_shape(expect, gen):
        value = gen.Mixed(
            a=-5,
            b=1234,
            c=-(2**40),
            d=200,
            e=0.5,
            f=True,
            g="héllo",
            from_=7,
            rows=2,
            cols=3,
            names=["a", "bc"],
            matrix=[[1.0, 2.0, 3.0], [4.0, 5.0, 6.0]],
            corners=[
                [gen.Point(x=1.0), gen.Point(y=1.0)],
                [gen.Point(x=0.25), gen.Point(y=0.75)],
            ],
        )
        expect(roundtrip(value)) == value

    def roundtrips_defaults(expect, gen):
        value = gen.Mixed()
        expect(value.corners) == [[], []]
        expect(value.blob) == []
        expect(roundtrip(value)) == value

    def exposes_constants(expect, gen):
        expect(gen.Mixed.LIMIT) == 3

    def size_checks_declared_lengths(expect, gen):
        with raises(EncodeError):
            gen.Mixed(rows=2, names=["only one"]).size()


def describe_messages():
    def publishes_known_fingerprints(expect, gen):
        expect(gen.Point.fingerprint()) == 0xA4B2A25C6168910B
        expect(gen.Path.fingerprint()) == 0x015F0EBB09AD61E8
        expect(gen.Grid.fingerprint()) == 0xF642597C58085F2E

    def prefixes_fingerprint(expect, gen):
        point = gen.Point(x=1.0, y=2.0)
        message = point.encode_message()
        expect(message[:8]) == (0xA4B2A25C6168910B).to_bytes(8, "big")
        expect(gen.Point.decode_message(message)) == point

    def rejects_other_types(expect, gen):
        message = gen.Point().encode_message()
        with raises(DecodeError) as exc:
            gen.Path.decode_message(message)
        expect("Fingerprint mismatch" in str(exc.value)) == True

    def rejects_short_messages(expect, gen):
        with raises(DecodeError):
            gen.Point.decode_message(b"\x00\x01")

    def decodes_from_stream(expect, gen):
        src = io.BytesIO(gen.Point(x=1.0).pack() + gen.Point(y=2.0).pack())
        expect(gen.Point.decode(src)) == gen.Point(x=1.0)
        expect(gen.Point.decode(src)) == gen.Point(y=2.0)


A_DECL = "struct a_t { int32_t n; b_t items[n]; string label; }\n"
B_DECL = "struct b_t { int32_t n; a_t items[n]; a_t pair[2]; }\n"
HOLDER_DECL = "struct holder_t { b_t b; }\n"

MUTUAL_SCHEMA = "package PKG;\n" + A_DECL + B_DECL + HOLDER_DECL


def describe_mutually_recursive_types():
    def imports_package(expect, tmp_path, monkeypatch):
        pkg = generate_package(tmp_path, monkeypatch, MUTUAL_SCHEMA)
        expect(pkg.B().pair) == [pkg.A(), pkg.A()]
        expect(pkg.Holder().b) == pkg.B()

    def imports_either_module_first(expect, tmp_path, monkeypatch):
        schema = "package PKG;\n" + HOLDER_DECL + B_DECL + A_DECL
        pkg = generate_package(tmp_path, monkeypatch, schema)
        expect(pkg.B().pair) == [pkg.A(), pkg.A()]
        expect(pkg.Holder().b.pair[0]) == pkg.A()

    def roundtrips_nested_values(expect, tmp_path, monkeypatch):
        pkg = generate_package(tmp_path, monkeypatch, MUTUAL_SCHEMA)
        inner = pkg.B(n=1, items=[pkg.A(label="leaf")])
        value = pkg.A(n=2, items=[inner, pkg.B()], label="root")
        expect(roundtrip(value)) == value
        expect(pkg.A.decode_message(value.encode_message())) == value


RESERVED_SCHEMA = """
package PKG;

struct names_t {
    const int32_t class = 1, size = 3;
    const double PI = 3;
    int32_t field;
    int32_t n;
    int32_t a[n];
    boolean ClassVar;
}
"""


def describe_reserved_names():
    def keeps_constants(expect, tmp_path, monkeypatch):
        pkg = generate_package(tmp_path, monkeypatch, RESERVED_SCHEMA)
        expect(pkg.Names.class_) == 1
        expect(pkg.Names.size_) == 3
        expect(pkg.Names.PI) == 3.0

    def roundtrips_escaped_members(expect, tmp_path, monkeypatch):
        pkg = generate_package(tmp_path, monkeypatch, RESERVED_SCHEMA)
        value = pkg.Names(field_=9, n=2, a=[4, 5], ClassVar_=True)
        expect(value.size()) == 4 + 4 + 8 + 1
        expect(roundtrip(value)) == value
