"""wiregen - Message code generator for cross-language wire formats."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("wiregen")
except PackageNotFoundError:
    __version__ = "(local)"
