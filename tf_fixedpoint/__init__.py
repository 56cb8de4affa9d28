"""TF Fixedpoint namespace."""
from __future__ import absolute_import

from importlib.metadata import PackageNotFoundError
from importlib.metadata import version

from . import tensor
from .config import LocalConfig
from .config import get_config
from .config import set_config
from .errors import FixedPointError
from .errors import IndexOutOfRange
from .errors import PlacementMismatch
from .errors import ShapeMismatch
from .errors import UnsupportedRank
from .placement import Device
from .tensor import TensorAdapter
from .tensor import factories
from .tensor import int8factory
from .tensor import int16factory
from .tensor import int32factory
from .tensor import int64factory

try:
    __version__ = version("tf-fixedpoint")
except PackageNotFoundError:
    __version__ = "Please install this project with setup.py"

__all__ = [
    "Device",
    "LocalConfig",
    "get_config",
    "set_config",
    "tensor",
    "TensorAdapter",
    "factories",
    "int8factory",
    "int16factory",
    "int32factory",
    "int64factory",
    "FixedPointError",
    "ShapeMismatch",
    "PlacementMismatch",
    "IndexOutOfRange",
    "UnsupportedRank",
]
