"""Command-line interface for wiregen code generation."""

from __future__ import annotations

import json
import sys

import click
from lark.exceptions import LarkError
from rich.console import Console
from rich.table import Table

from wiregen.generator import BACKENDS, get_backend, load_model
from wiregen.generator.emitter import Generator, GeneratorOptions
from wiregen.generator.fingerprint import TypeModelError
from wiregen.generator.model import TypeModel
from wiregen.generator.naming import GenerationError, NameCollisionError
from wiregen.generator.parser import ValidationError
from wiregen.generator.sizes import StructSizeInfo, calculate_sizes

# Exit status when files cannot be written
EXIT_IO_ERROR = 3


def _load(schemas: tuple[str, ...]) -> TypeModel:
    try:
        return load_model(schemas)
    except OSError as e:
        print(f"Cannot read schema {e.filename}: {e.strerror}")
        sys.exit(1)
    except (ValidationError, TypeModelError, LarkError) as e:
        print(f"Error: {e}")
        sys.exit(1)


@click.group()
def cli() -> None:
    """wiregen message code generator."""


@cli.command()
@click.option(
    "--language", "-l", required=True, help=f"Target language ({', '.join(sorted(BACKENDS))})"
)
@click.option("--output", "-o", "output_root", default=".", help="Output root directory")
@click.option(
    "--lazy", is_flag=True, default=False, help="Skip files newer than their schema"
)
@click.option(
    "--diagnostics",
    is_flag=True,
    default=False,
    help="Print a rebuild-trigger line per generated or removed file",
)
@click.option(
    "--runtime-import",
    "runtime_import",
    default="wiregen.proto",
    help="Import path of the runtime used by generated Python code",
)
@click.argument("schemas", nargs=-1, required=True, type=click.Path(dir_okay=False))
def gen(
    language: str,
    output_root: str,
    lazy: bool,
    diagnostics: bool,
    runtime_import: str,
    schemas: tuple[str, ...],
) -> None:
    """Generate code from schema files."""
    if language == "python":
        backend = get_backend(language, runtime_import=runtime_import)
    elif language in BACKENDS:
        backend = get_backend(language)
    else:
        print(f"Unknown language: {language}")
        sys.exit(1)

    model = _load(schemas)
    options = GeneratorOptions(output_root=output_root, diagnostics=diagnostics, lazy=lazy)

    try:
        Generator(model, backend, options).run()
    except NameCollisionError as e:
        print(f"Error: {e}")
        sys.exit(1)
    except GenerationError as e:
        print(f"Error: {e}")
        sys.exit(EXIT_IO_ERROR)


@cli.command()
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
@click.argument("schemas", nargs=-1, required=True, type=click.Path(dir_okay=False))
def info(output_json: bool, schemas: tuple[str, ...]) -> None:
    """Display structs, fingerprints and encoded sizes."""
    model = _load(schemas)
    size_info = calculate_sizes(model)

    if output_json:
        _output_json(model, size_info)
    else:
        _output_plain(model, size_info)


def _format_size(size: int | None) -> str:
    """Format a size value, handling None for unbounded."""
    return "unbounded" if size is None else str(size)


def _output_json(model: TypeModel, size_info: dict[str, StructSizeInfo]) -> None:
    """Output the model and sizes as JSON."""
    data = model.to_dict()
    data["sizes"] = {
        name: {
            "min_size": struct_info.size.min_size,
            "max_size": struct_info.size.max_size,
            "kind": struct_info.size.kind.value,
        }
        for name, struct_info in size_info.items()
    }
    print(json.dumps(data, indent=2))


def _output_plain(model: TypeModel, size_info: dict[str, StructSizeInfo]) -> None:
    """Output the struct table using rich text formatting."""
    console = Console()

    console.print("[bold cyan]Structs[/bold cyan]")
    table = Table(show_header=True, box=None, padding=(0, 2, 0, 0))
    table.add_column("Name", style="white")
    table.add_column("Fingerprint", style="green")
    table.add_column("Members", justify="right")
    table.add_column("Size", style="yellow", justify="right")
    table.add_column("Kind", style="dim")

    for struct in model:
        name = struct.name.full_name
        size = size_info[name].size
        if size.min_size == size.max_size:
            size_str = f"{size.min_size} bytes"
        else:
            size_str = f"{size.min_size}-{_format_size(size.max_size)} bytes"

        table.add_row(
            name,
            f"0x{struct.fingerprint:016x}",
            str(len(struct.members)),
            size_str,
            size.kind.value,
        )

    console.print(table)


def main() -> None:
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
