"""The code generator capability implemented by each target language."""

from abc import ABC, abstractmethod
from collections.abc import Callable
from pathlib import PurePath

from .model import TypeModel
from .naming import escape_identifier, struct_path, type_identifier
from .types import Struct

GENERATED_MARKER = "GENERATED CODE - DO NOT EDIT"


class Backend(ABC):
    """A generator for one target language.

    Backends hold no state shared between structs; the orchestrator asks
    for one struct's file and one manifest entry at a time.
    """

    name: str = ""
    file_extension: str = ""
    aggregate_file_name: str = ""
    keywords: frozenset[str] = frozenset()
    raw_identifier_prefix: str | None = None
    rebuild_trigger = "rerun-if-changed={path}"

    def type_identifier(self, struct: Struct) -> str:
        return type_identifier(struct.name.short_name)

    def field_identifier(self, name: str) -> str:
        return escape_identifier(name, self.keywords, self.raw_identifier_prefix)

    def struct_path(self, struct: Struct) -> PurePath:
        return struct_path(struct.name, self.file_extension)

    @abstractmethod
    def render_struct(self, model: TypeModel, struct: Struct) -> str:
        """Full contents of a struct's generated file."""

    @abstractmethod
    def aggregate_header(self) -> str:
        """Contents of a freshly cleared package manifest."""

    @abstractmethod
    def aggregate_entry(self, struct: Struct) -> str:
        """Manifest lines registering a struct of the package."""

    @abstractmethod
    def subpackage_entry(self, name: str) -> str:
        """Manifest lines registering a child package."""


BACKENDS: dict[str, Callable[..., Backend]] = {}


def register(name: str) -> Callable[[type[Backend]], type[Backend]]:
    """Class decorator adding a backend to BACKENDS."""

    def decorator(cls: type[Backend]) -> type[Backend]:
        cls.name = name
        BACKENDS[name] = cls
        return cls

    return decorator


def get_backend(name: str, **options: object) -> Backend:
    try:
        factory = BACKENDS[name]
    except KeyError:
        raise KeyError(f"Unknown language: {name}") from None
    return factory(**options)
