"""wiregen schema compiler."""

from . import python as python
from . import rust as rust
from .backend import BACKENDS as BACKENDS
from .backend import Backend as Backend
from .backend import get_backend as get_backend
from .emitter import Generator as Generator
from .emitter import GeneratorOptions as GeneratorOptions
from .emitter import generate as generate
from .fingerprint import FingerprintEngine as FingerprintEngine
from .fingerprint import TypeModelError as TypeModelError
from .model import TypeModel as TypeModel
from .naming import GenerationError as GenerationError
from .naming import NameCollisionError as NameCollisionError
from .parser import ValidationError as ValidationError
from .parser import load_model as load_model
from .parser import parse as parse
from .shapes import plan_shape as plan_shape
from .sizes import SizeCalculator as SizeCalculator
from .sizes import SizeInfo as SizeInfo
from .sizes import SizeKind as SizeKind
from .sizes import StructSizeInfo as StructSizeInfo
from .sizes import calculate_sizes as calculate_sizes
from .types import *
