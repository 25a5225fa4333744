"""Write the generated code for a type model to disk."""

import os
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path

from .backend import Backend
from .model import TypeModel
from .naming import GenerationError, check_collisions, package_parts, package_path


@dataclass
class GeneratorOptions:
    output_root: str = "."
    diagnostics: bool = False
    lazy: bool = False


def needs_generation(source_file: str | None, output_file: str | os.PathLike[str]) -> bool:
    """True unless output_file exists and is newer than source_file."""
    if source_file is None:
        return True
    try:
        output_mtime = os.path.getmtime(output_file)
        source_mtime = os.path.getmtime(source_file)
    except FileNotFoundError:
        return True
    return source_mtime >= output_mtime


@contextmanager
def _io_errors(path: Path) -> Iterator[None]:
    try:
        yield
    except OSError as e:
        raise GenerationError(f"{path}: {e.strerror or e}") from e


class Generator:
    """Generate one file per struct and one manifest per package.

    A run is two passes: ``clear`` rebuilds every manifest from scratch,
    then ``populate`` writes the struct files and appends their manifest
    entries.
    """

    def __init__(
        self, model: TypeModel, backend: Backend, options: GeneratorOptions | None = None
    ):
        self.model = model
        self.backend = backend
        self.options = options or GeneratorOptions()
        self.root = Path(self.options.output_root)

    def manifest_path(self, package: str) -> Path:
        return self.root / package_path(package) / self.backend.aggregate_file_name

    def packages(self) -> dict[str, list[str]]:
        """Packages that get a manifest, mapped to their direct sub-packages.

        Every package holding a struct gets one, as do its ancestors. The
        output root only gets one when it holds structs itself.
        """
        packages: dict[str, list[str]] = {}
        root_has_structs = False
        for struct in self.model:
            parts = package_parts(struct.name.package)
            packages.setdefault(".".join(parts), [])
            root_has_structs = root_has_structs or not parts
            for depth in range(len(parts) - 1, -1, -1):
                children = packages.setdefault(".".join(parts[:depth]), [])
                if parts[depth] not in children:
                    children.append(parts[depth])

        if not root_has_structs:
            packages.pop("", None)
        return packages

    def _diagnostic(self, path: Path) -> None:
        if self.options.diagnostics:
            print(self.backend.rebuild_trigger.format(path=path))

    def _make_dirs(self, path: Path) -> None:
        with _io_errors(path):
            path.mkdir(parents=True, exist_ok=True)

    def _write(self, path: Path, content: str, mode: str = "w") -> None:
        with _io_errors(path):
            with open(path, mode, encoding="utf-8") as f:
                f.write(content)

    def clear(self) -> None:
        """Replace every manifest with one holding only the marker and sub-packages."""
        for package, children in self.packages().items():
            path = self.manifest_path(package)
            self._make_dirs(path.parent)
            if path.exists():
                with _io_errors(path):
                    path.unlink()
                self._diagnostic(path)

            content = self.backend.aggregate_header()
            content += "".join(self.backend.subpackage_entry(child) for child in children)
            self._write(path, content)

    def populate(self) -> list[Path]:
        """Write each struct's file and register it in its package manifest.

        Returns the files written; in lazy mode files newer than their
        schema are left untouched and not returned.
        """
        written: list[Path] = []
        for struct in self.model:
            path = self.root / self.backend.struct_path(struct)
            self._make_dirs(path.parent)

            if not self.options.lazy or needs_generation(struct.source_file, path):
                content = self.backend.render_struct(self.model, struct)
                self._write(path, content)
                self._diagnostic(path)
                written.append(path)

            manifest = self.manifest_path(struct.name.package)
            self._write(manifest, self.backend.aggregate_entry(struct), mode="a")

        return written

    def run(self) -> list[Path]:
        check_collisions(self.model, self.backend.field_identifier)
        self.clear()
        return self.populate()


def generate(
    model: TypeModel, backend: Backend, options: GeneratorOptions | None = None
) -> list[Path]:
    """Generate code for every struct in the model."""
    return Generator(model, backend, options).run()
