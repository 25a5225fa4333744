"""Identifier and module path transformations for generated code."""

from collections.abc import Callable, Iterable
from pathlib import PurePath

from .types import Struct, TypeName

TYPE_SUFFIX = "_t"


class GenerationError(RuntimeError):
    """Raised when code generation cannot complete."""


class NameCollisionError(GenerationError):
    """Raised when distinct schema names map to one generated name."""


def to_camel_case(name: str) -> str:
    """Capitalize the character after each underscore and drop underscores.

    Characters that are not preceded by an underscore keep their case.
    """
    result: list[str] = []
    capitalize_next = True
    for c in name:
        if c == "_":
            capitalize_next = True
        elif capitalize_next:
            result.append(c.upper())
            capitalize_next = False
        else:
            result.append(c)
    return "".join(result)


def type_identifier(short_name: str) -> str:
    """Map a schema type name to a type identifier: ``gps_fix_t`` -> ``GpsFix``."""
    if short_name.endswith(TYPE_SUFFIX) and len(short_name) > len(TYPE_SUFFIX):
        short_name = short_name[: -len(TYPE_SUFFIX)]
    return to_camel_case(short_name)


def module_name(short_name: str) -> str:
    """File stem of the module holding a struct."""
    return short_name.lower()


def package_parts(package: str) -> list[str]:
    return [part for part in package.split(".") if part]


def package_path(package: str) -> PurePath:
    """One directory per dotted package component."""
    return PurePath(*package_parts(package))


def struct_path(name: TypeName, extension: str) -> PurePath:
    """Path of a struct's file relative to the output root."""
    return package_path(name.package) / f"{module_name(name.short_name)}{extension}"


def escape_identifier(name: str, keywords: Iterable[str], raw_prefix: str | None = None) -> str:
    """Make a schema name usable as an identifier.

    Keywords get ``raw_prefix`` prepended when the language has raw
    identifiers, otherwise a trailing underscore.
    """
    if name not in keywords:
        return name
    if raw_prefix:
        return f"{raw_prefix}{name}"
    return f"{name}_"


def _check_unique(
    items: Iterable[str], transform: Callable[[str], str], scope: str, kind: str
) -> None:
    seen: dict[str, str] = {}
    for item in items:
        mapped = transform(item)
        if mapped in seen:
            raise NameCollisionError(
                f"{kind} '{seen[mapped]}' and '{item}' in {scope} both map to '{mapped}'"
            )
        seen[mapped] = item


def check_collisions(structs: Iterable[Struct], field_identifier: Callable[[str], str]) -> None:
    """Reject schema names that collide once transformed.

    Type identifiers and module names must be unique per package and must not
    clash with a sub-package. Members and constants share one namespace per
    struct, so their identifiers must be unique together.
    """
    by_package: dict[str, list[Struct]] = {}
    for struct in structs:
        by_package.setdefault(struct.name.package, []).append(struct)
        _check_unique(
            [*(m.name for m in struct.members), *(c.name for c in struct.constants)],
            field_identifier,
            struct.name.full_name,
            "Names",
        )

    subpackages: dict[str, set[str]] = {}
    for package in by_package:
        parts = package_parts(package)
        for i in range(len(parts)):
            subpackages.setdefault(".".join(parts[:i]), set()).add(parts[i])

    for package, members in by_package.items():
        scope = f"package '{package}'" if package else "the root package"
        names = [s.name.short_name for s in members]
        _check_unique(names, type_identifier, scope, "Types")
        _check_unique(names, module_name, scope, "Types")
        for name in names:
            if module_name(name) in subpackages.get(package, ()):
                raise NameCollisionError(
                    f"Type '{name}' in {scope} has the module name of a sub-package"
                )
