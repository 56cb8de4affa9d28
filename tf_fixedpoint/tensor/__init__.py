"""Fixed-point tensors backed by native TensorFlow integer words."""
from __future__ import absolute_import

import tensorflow as tf

from .factory import AbstractFactory
from .factory import AbstractTensor
from .factory import TensorAdapter
from .fixed import FixedpointConfig
from .fixed import _validate_fixedpoint_config
from .fixed import fixed32
from .fixed import fixed64
from .native import native_factory

int8factory = native_factory(tf.int8)
int16factory = native_factory(tf.int16)
int32factory = native_factory(tf.int32)
int64factory = native_factory(tf.int64)

factories = {
    8: int8factory,
    16: int16factory,
    32: int32factory,
    64: int64factory,
}
factories.update(
    {
        tf.int8: int8factory,
        tf.int16: int16factory,
        tf.int32: int32factory,
        tf.int64: int64factory,
    }
)

assert _validate_fixedpoint_config(fixed32, int32factory)
assert _validate_fixedpoint_config(fixed64, int64factory)

__all__ = [
    "AbstractFactory",
    "AbstractTensor",
    "TensorAdapter",
    "FixedpointConfig",
    "fixed32",
    "fixed64",
    "native_factory",
    "int8factory",
    "int16factory",
    "int32factory",
    "int64factory",
    "factories",
]
