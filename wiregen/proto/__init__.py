"""Runtime support imported by generated Python code."""

from . import codec as codec
from .serialization import DecodeError as DecodeError
from .serialization import EncodeError as EncodeError
from .serialization import SerializationError as SerializationError
from .serialization import Struct as Struct
