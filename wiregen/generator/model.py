"""The type model: every struct discovered in a compilation unit."""

from collections.abc import Iterator
from dataclasses import dataclass, field

from dataclasses_json import DataClassJsonMixin

from .fingerprint import FingerprintEngine, TypeModelError
from .types import Struct


@dataclass
class TypeModel(DataClassJsonMixin):
    """An ordered arena of structs addressed by full type name.

    Members refer to other structs by TypeName only, so recursive and
    mutually recursive types need no owning references. Building a model
    checks that every referenced struct exists and stores each struct's
    fingerprint.
    """

    structs: list[Struct] = field(default_factory=list)

    def __post_init__(self) -> None:
        self._index: dict[str, Struct] = {}
        for struct in self.structs:
            full_name = struct.name.full_name
            if full_name in self._index:
                raise TypeModelError(f"Duplicate definition of type {full_name}")
            self._index[full_name] = struct

        for struct in self.structs:
            for ref in struct.referenced_types():
                if ref.full_name not in self._index:
                    raise TypeModelError(
                        f"{struct.name.full_name} references unknown type {ref.full_name}"
                    )

        engine = FingerprintEngine(self._index)
        for struct in self.structs:
            struct.fingerprint = engine.fingerprint(struct.name)

    def __iter__(self) -> Iterator[Struct]:
        return iter(self.structs)

    def __len__(self) -> int:
        return len(self.structs)

    def __contains__(self, full_name: object) -> bool:
        return full_name in self._index

    def get(self, full_name: str) -> Struct:
        try:
            return self._index[full_name]
        except KeyError:
            raise TypeModelError(f"Unknown type {full_name}") from None

    def packages(self) -> list[str]:
        """Distinct packages in first-occurrence order."""
        result: list[str] = []
        for struct in self.structs:
            if struct.name.package not in result:
                result.append(struct.name.package)
        return result
