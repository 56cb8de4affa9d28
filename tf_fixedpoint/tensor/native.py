"""Native fixed-point tensors and their factory.

These use TensorFlow's native integer dtypes as fixed-width words holding
fixed-point numbers, `real_value ~= raw_value / 2**scaling_factor`."""
import logging
from typing import List
from typing import Tuple
from typing import Union

import numpy as np
import tensorflow as tf

from ..config import get_config
from ..errors import IndexOutOfRange
from ..errors import PlacementMismatch
from ..errors import ShapeMismatch
from ..errors import UnsupportedRank
from ..placement import Device
from ..placement import device_scope
from .factory import AbstractFactory
from .factory import AbstractTensor
from .fixed import encode_scalar
from .helpers import as_batched
from .helpers import low_bits_mask
from .helpers import prod
from .helpers import wrap

logger = logging.getLogger("tf_fixedpoint")

# dtypes TensorFlow ships integer matmul kernels for
_MATMUL_TYPES = (tf.int32, tf.int64)

_TWO_63 = 2.0**63
_TWO_64 = 2.0**64


def _trunc(x: tf.Tensor) -> tf.Tensor:
    return tf.math.sign(x) * tf.math.floor(tf.math.abs(x))


def native_factory(NATIVE_TYPE):  # pylint: disable=invalid-name
    """Constructs the native fixed-point tensor Factory."""

    if not NATIVE_TYPE.is_integer:
        raise TypeError("Expected an integer dtype, got {}".format(NATIVE_TYPE))

    NBITS = NATIVE_TYPE.size * 8  # pylint: disable=invalid-name
    SIGNED = not NATIVE_TYPE.is_unsigned  # pylint: disable=invalid-name

    class Factory(AbstractFactory):
        """Native fixed-point tensor factory."""

        def tensor(self, initial_value=None, device=None, scaling_factor=0):
            device = _default_device(device)

            if initial_value is None:
                initial_value = np.zeros([0], dtype=NATIVE_TYPE.as_numpy_dtype)

            if isinstance(initial_value, Tensor):
                return initial_value
            elif isinstance(initial_value, (tf.Tensor, np.ndarray)):
                with device_scope(device):
                    value = _to_native(initial_value)
                return Tensor(value, device, scaling_factor)
            else:
                raise TypeError(
                    "Don't know how to handle {}".format(type(initial_value))
                )

        def empty(self, device=None):
            return self.tensor(device=device)

        def zeros(self, shape, device=None, scaling_factor=0):
            device = _default_device(device)
            with device_scope(device):
                value = tf.zeros(shape, dtype=NATIVE_TYPE)
            return Tensor(value, device, scaling_factor)

        def from_float_point_type(self, tensor, scaling_factor=None, device=None):
            return self.empty(device).from_float_point_type(tensor, scaling_factor)

        def from_float_point_scalar(
            self, scalar, shape, scaling_factor=None, device=None
        ):
            return self.empty(device).from_float_point_scalar(
                scalar, shape, scaling_factor
            )

        @property
        def min(self):
            return NATIVE_TYPE.min

        @property
        def max(self):
            return NATIVE_TYPE.max

        @property
        def modulus(self) -> int:
            return NATIVE_TYPE.max - NATIVE_TYPE.min + 1

        @property
        def native_type(self):
            return NATIVE_TYPE

        @property
        def nbits(self):
            return NBITS

        @property
        def is_signed(self):
            return SIGNED

        def __repr__(self) -> str:
            return "native_factory({})".format(NATIVE_TYPE.name)

    FACTORY = Factory()

    def _default_device(device):
        if device is None:
            return get_config().device
        return Device.from_string(device)

    def _to_native(value) -> tf.Tensor:
        if isinstance(value, np.ndarray):
            if not np.issubdtype(value.dtype, np.integer):
                raise TypeError(
                    "Expected raw integer values, got dtype {}".format(value.dtype)
                )
            # wrap into the word range, as a C cast would
            value = value.astype(NATIVE_TYPE.as_numpy_dtype)
            return tf.convert_to_tensor(value, dtype=NATIVE_TYPE)
        if not value.dtype.is_integer:
            raise TypeError(
                "Expected raw integer values, got dtype {}".format(value.dtype)
            )
        if value.dtype != NATIVE_TYPE:
            return tf.cast(value, NATIVE_TYPE)
        return tf.identity(value)

    def _peer(x, role="operand") -> "Tensor":
        if not isinstance(x, Tensor):
            raise TypeError(
                "Don't know how to handle {} {} for {}".format(role, type(x), FACTORY)
            )
        return x

    def _check_placement(*tensors):
        devices = {x.device for x in tensors}
        if len(devices) > 1:
            raise PlacementMismatch(
                "Tensors must be placed on the same device, got {}".format(
                    sorted(d.value for d in devices)
                )
            )

    def _check_elementwise(op, dst, *operands):
        dst = _peer(dst, "destination")
        _check_placement(dst, *operands)
        shape = operands[0].shape
        for x in operands[1:]:
            if x.shape != shape:
                raise ShapeMismatch(
                    "{}: operand shapes differ, {} vs {}".format(op, shape, x.shape)
                )
        if dst.shape != shape:
            raise ShapeMismatch(
                "{}: destination shape {} does not match {}".format(
                    op, dst.shape, shape
                )
            )
        return dst

    def _check_amount(amount) -> int:
        if isinstance(amount, bool) or not isinstance(amount, (int, np.integer)):
            raise TypeError(
                "Shift amount must be an integer, got {}".format(type(amount))
            )
        if amount < 0:
            raise ValueError("Unsupported shift steps.")
        return int(amount)

    def _matmul_shape(lhs, rhs, trans_lhs, trans_rhs) -> Tuple[int, int, int]:
        """Validate matmul operands and return the [batch, m, n] result shape."""
        for x in (lhs, rhs):
            if x.rank not in (2, 3):
                raise UnsupportedRank(
                    "The input of matmul must be matrix or batched matrix, "
                    "got shape {}".format(x.shape)
                )
        if lhs.rank < rhs.rank:
            raise UnsupportedRank(
                "Only [B, H, W] x [B, H, W], [B, H, W] x [H, W] and "
                "[H, W] x [H, W] are supported, got {} x {}".format(
                    lhs.shape, rhs.shape
                )
            )

        batch, rows_a, cols_a = as_batched(lhs.shape)
        batch_b, rows_b, cols_b = as_batched(rhs.shape)
        if trans_lhs:
            rows_a, cols_a = cols_a, rows_a
        if trans_rhs:
            rows_b, cols_b = cols_b, rows_b

        if cols_a != rows_b:
            raise ShapeMismatch(
                "Contracted dimensions differ: {} vs {}".format(cols_a, rows_b)
            )
        if batch_b not in (batch, 1):
            raise ShapeMismatch(
                "Batch size of rhs must be {} or 1, got {}".format(batch, batch_b)
            )
        return batch, rows_a, cols_b

    def _lift(x, y) -> Tuple["Tensor", "Tensor"]:

        if isinstance(x, Tensor) and isinstance(y, Tensor):
            return x, y

        if isinstance(x, Tensor):

            if isinstance(y, int):
                return x, x.filled(y)

        if isinstance(y, Tensor):

            if isinstance(x, int):
                return y.filled(x), y

        raise TypeError("Don't know how to lift {} {}".format(type(x), type(y)))

    class Tensor(AbstractTensor):
        """Fixed-point tensor backed by a native TensorFlow tensor."""

        def __init__(self, value: tf.Tensor, device: Device, scaling_factor=0):
            self._value = value
            self._device = device
            self.scaling_factor = scaling_factor

        @property
        def value(self) -> tf.Tensor:
            return self._value

        @property
        def shape(self) -> List[int]:
            return self._value.shape.as_list()

        @property
        def rank(self) -> int:
            return self._value.shape.rank

        @property
        def numel(self) -> int:
            return prod(self.shape)

        @property
        def device(self) -> Device:
            return self._device

        @property
        def scaling_factor(self) -> int:
            return self._scaling_factor

        @scaling_factor.setter
        def scaling_factor(self, scaling_factor: int) -> None:
            if scaling_factor < 0:
                raise ValueError("Scaling factor must be non-negative")
            self._scaling_factor = int(scaling_factor)

        @property
        def factory(self):
            return FACTORY

        def to_native(self) -> tf.Tensor:
            return self.value

        def numpy(self) -> np.ndarray:
            return self._value.numpy()

        def assign(self, values: Union[tf.Tensor, np.ndarray]) -> None:
            """Overwrite the raw words, keeping shape and scaling factor."""
            if list(values.shape) != self.shape:
                raise ShapeMismatch(
                    "Cannot assign shape {} to tensor of shape {}".format(
                        list(values.shape), self.shape
                    )
                )
            with device_scope(self.device):
                self._write(_to_native(values))

        def filled(self, raw: int) -> "Tensor":
            """New tensor like this one with every word set to `raw`."""
            with device_scope(self.device):
                value = tf.fill(
                    self.shape, tf.constant(wrap(raw, NBITS, SIGNED), NATIVE_TYPE)
                )
            return Tensor(value, self.device, self.scaling_factor)

        def _like(self, shape=None) -> "Tensor":
            shape = self.shape if shape is None else shape
            return FACTORY.zeros(shape, self.device, self.scaling_factor)

        def _write(self, value: tf.Tensor) -> None:
            if get_config().debug:
                logger.debug("Writing %s words to %r", value.shape, self)
            self._value = value

        def __repr__(self) -> str:
            return "Tensor(dtype={}, shape={}, device={}, scaling_factor={})".format(
                NATIVE_TYPE.name, self.shape, self.device.value, self.scaling_factor
            )

        def reshape(self, shape: List[int]) -> None:
            shape = [int(d) for d in shape]
            if any(d < 0 for d in shape):
                raise ShapeMismatch("Invalid shape {}".format(shape))
            with device_scope(self.device):
                if prod(shape) == self.numel:
                    self._write(tf.reshape(self._value, shape))
                else:
                    logger.debug("Reallocating %r as %s", self, shape)
                    self._write(tf.zeros(shape, dtype=NATIVE_TYPE))

        def add(self, rhs, dst) -> None:
            rhs = _peer(rhs)
            dst = _check_elementwise("add", dst, self, rhs)
            with device_scope(self.device):
                dst._write(tf.add(self.value, rhs.value))

        def sub(self, rhs, dst) -> None:
            rhs = _peer(rhs)
            dst = _check_elementwise("sub", dst, self, rhs)
            with device_scope(self.device):
                dst._write(tf.subtract(self.value, rhs.value))

        def mul(self, rhs, dst) -> None:
            rhs = _peer(rhs)
            dst = _check_elementwise("mul", dst, self, rhs)
            with device_scope(self.device):
                dst._write(tf.multiply(self.value, rhs.value))

        def div(self, rhs, dst) -> None:
            """
            Raw integer division of the words, truncating toward zero.

            No fixed-point rescaling takes place; callers dividing encoded
            values rescale themselves.
            """
            rhs = _peer(rhs)
            dst = _check_elementwise("div", dst, self, rhs)
            with device_scope(self.device):
                dst._write(tf.truncatediv(self.value, rhs.value))

        def negative(self, dst) -> None:
            dst = _check_elementwise("negative", dst, self)
            with device_scope(self.device):
                dst._write(tf.negative(self.value))

        def bitwise_and(self, rhs, dst) -> None:
            rhs = _peer(rhs)
            dst = _check_elementwise("bitwise_and", dst, self, rhs)
            with device_scope(self.device):
                dst._write(tf.bitwise.bitwise_and(self.value, rhs.value))

        def bitwise_or(self, rhs, dst) -> None:
            rhs = _peer(rhs)
            dst = _check_elementwise("bitwise_or", dst, self, rhs)
            with device_scope(self.device):
                dst._write(tf.bitwise.bitwise_or(self.value, rhs.value))

        def bitwise_xor(self, rhs, dst) -> None:
            rhs = _peer(rhs)
            dst = _check_elementwise("bitwise_xor", dst, self, rhs)
            with device_scope(self.device):
                dst._write(tf.bitwise.bitwise_xor(self.value, rhs.value))

        def bitwise_not(self, dst) -> None:
            dst = _check_elementwise("bitwise_not", dst, self)
            with device_scope(self.device):
                dst._write(tf.bitwise.invert(self.value))

        def lshift(self, amount: int, dst) -> None:
            amount = _check_amount(amount)
            dst = _check_elementwise("lshift", dst, self)
            with device_scope(self.device):
                if amount >= NBITS:
                    dst._write(tf.zeros_like(self.value))
                    return
                steps = tf.constant(amount, dtype=NATIVE_TYPE)
                dst._write(tf.bitwise.left_shift(self.value, steps))

        def rshift(self, amount: int, dst) -> None:
            """
            Arithmetic shift.
            Please refer to `self.logical_rshift` for a logical right shift.
            """
            amount = _check_amount(amount)
            dst = _check_elementwise("rshift", dst, self)
            steps = tf.constant(min(amount, NBITS - 1), dtype=NATIVE_TYPE)
            with device_scope(self.device):
                dst._write(tf.bitwise.right_shift(self.value, steps))

        def logical_rshift(self, amount: int, dst) -> None:
            """Right shift filling the vacated high bits with zeros.

            Casting signed words to their unsigned counterpart is not
            reliable in TensorFlow (tensorflow/tensorflow#30215), so the
            shift is arithmetic followed by a mask keeping the
            `NBITS - amount` low bits.
            """
            amount = _check_amount(amount)
            dst = _check_elementwise("logical_rshift", dst, self)
            mask = low_bits_mask(NBITS - amount, NBITS, SIGNED)
            steps = tf.constant(min(amount, NBITS - 1), dtype=NATIVE_TYPE)
            with device_scope(self.device):
                x = tf.bitwise.right_shift(self.value, steps)
                x = tf.bitwise.bitwise_and(x, tf.constant(mask, dtype=NATIVE_TYPE))
                dst._write(x)

        def mat_mul(self, rhs, dst, trans_lhs=False, trans_rhs=False) -> None:
            rhs = _peer(rhs)
            dst = _peer(dst, "destination")
            _check_placement(self, rhs, dst)
            if dst.rank not in (2, 3):
                raise UnsupportedRank(
                    "The output of matmul must be matrix or batched matrix, "
                    "got shape {}".format(dst.shape)
                )
            expected = _matmul_shape(self, rhs, trans_lhs, trans_rhs)
            if as_batched(dst.shape) != expected:
                raise ShapeMismatch(
                    "Result shape {} does not match {}".format(
                        dst.shape, list(expected)
                    )
                )

            logger.debug(
                "mat_mul %s x %s -> %s (trans_lhs=%s, trans_rhs=%s)",
                self.shape,
                rhs.shape,
                dst.shape,
                trans_lhs,
                trans_rhs,
            )
            with device_scope(self.device):
                a = tf.reshape(self.value, as_batched(self.shape))
                b = tf.reshape(rhs.value, as_batched(rhs.shape))
                if NATIVE_TYPE not in _MATMUL_TYPES:
                    # exact modulo 2**NBITS once narrowed back
                    a = tf.cast(a, tf.int64)
                    b = tf.cast(b, tf.int64)
                # a batch of 1 on rhs broadcasts across the batch of lhs
                c = tf.matmul(a, b, transpose_a=trans_lhs, transpose_b=trans_rhs)
                if c.dtype != NATIVE_TYPE:
                    c = tf.cast(c, NATIVE_TYPE)
                dst._write(tf.reshape(c, dst.shape))

        def slice(self, begin: int, end: int, dst) -> None:
            dst = _peer(dst, "destination")
            _check_placement(self, dst)
            if self.rank == 0:
                raise UnsupportedRank("Cannot slice a scalar tensor")
            if begin < 0 or begin > end or end > self.shape[0]:
                raise IndexOutOfRange(
                    "Slice [{}, {}) out of range for first axis of size {}".format(
                        begin, end, self.shape[0]
                    )
                )
            with device_scope(self.device):
                dst._write(self.value[begin:end])
            dst.scaling_factor = self.scaling_factor

        def from_float_point_type(self, tensor, scaling_factor=None) -> "Tensor":
            if scaling_factor is None:
                scaling_factor = get_config().scaling_factor
            if scaling_factor < 0:
                raise ValueError("Scaling factor must be non-negative")
            if isinstance(tensor, np.ndarray):
                if not np.issubdtype(tensor.dtype, np.floating):
                    raise TypeError(
                        "Expected floating-point values, got {}".format(tensor.dtype)
                    )
                tensor = tf.convert_to_tensor(tensor)
            elif not isinstance(tensor, tf.Tensor):
                raise TypeError("Don't know how to handle {}".format(type(tensor)))
            if not tensor.dtype.is_floating:
                raise TypeError(
                    "Expected floating-point values, got {}".format(tensor.dtype)
                )

            scale = tf.constant(2.0**scaling_factor, dtype=tf.float64)
            with device_scope(self.device):
                scaled = tf.cast(tensor, tf.float64) * scale
                if not bool(tf.reduce_all(tf.math.is_finite(scaled))):
                    raise ValueError(
                        "Cannot encode non-finite values with scaling factor "
                        "{}".format(scaling_factor)
                    )
                # truncate toward zero, then fold into [-2**63, 2**63) so the
                # int64 cast wraps instead of saturating; both steps are
                # exact in float64
                scaled = _trunc(scaled)
                scaled = scaled - _TWO_64 * _trunc(scaled / _TWO_64)
                scaled = tf.where(scaled >= _TWO_63, scaled - _TWO_64, scaled)
                scaled = tf.where(scaled < -_TWO_63, scaled + _TWO_64, scaled)
                value = tf.cast(scaled, tf.int64)
                if NATIVE_TYPE != tf.int64:
                    value = tf.cast(value, NATIVE_TYPE)
                self._write(value)
            self.scaling_factor = scaling_factor
            return self

        def from_float_point_scalar(
            self, scalar, shape, scaling_factor=None
        ) -> "Tensor":
            if scaling_factor is None:
                scaling_factor = get_config().scaling_factor
            raw = encode_scalar(scalar, scaling_factor, NBITS, SIGNED)
            self.reshape(shape)
            with device_scope(self.device):
                self._write(
                    tf.fill(self.shape, tf.constant(raw, dtype=NATIVE_TYPE))
                )
            self.scaling_factor = scaling_factor
            return self

        def to_float_point_type(self, dtype=tf.float64) -> tf.Tensor:
            """Decode the words into real values, `raw / 2**scaling_factor`."""
            with device_scope(self.device):
                value = tf.cast(self.value, tf.float64)
                value = value / (2.0**self.scaling_factor)
                return tf.cast(value, dtype)

        def __add__(self, other):
            x, y = _lift(self, other)
            z = x._like()
            x.add(y, z)
            return z

        def __radd__(self, other):
            x, y = _lift(self, other)
            z = y._like()
            y.add(x, z)
            return z

        def __sub__(self, other):
            x, y = _lift(self, other)
            z = x._like()
            x.sub(y, z)
            return z

        def __rsub__(self, other):
            x, y = _lift(self, other)
            z = y._like()
            y.sub(x, z)
            return z

        def __mul__(self, other):
            x, y = _lift(self, other)
            z = x._like()
            x.mul(y, z)
            return z

        def __rmul__(self, other):
            x, y = _lift(self, other)
            z = y._like()
            y.mul(x, z)
            return z

        def __floordiv__(self, other):
            x, y = _lift(self, other)
            z = x._like()
            x.div(y, z)
            return z

        def __neg__(self):
            z = self._like()
            self.negative(z)
            return z

        def __and__(self, other):
            x, y = _lift(self, other)
            z = x._like()
            x.bitwise_and(y, z)
            return z

        def __or__(self, other):
            x, y = _lift(self, other)
            z = x._like()
            x.bitwise_or(y, z)
            return z

        def __xor__(self, other):
            x, y = _lift(self, other)
            z = x._like()
            x.bitwise_xor(y, z)
            return z

        def __invert__(self):
            z = self._like()
            self.bitwise_not(z)
            return z

        def __lshift__(self, amount):
            z = self._like()
            self.lshift(amount, z)
            return z

        def __rshift__(self, amount):
            z = self._like()
            self.rshift(amount, z)
            return z

        def __matmul__(self, other):
            other = _peer(other)
            batch, rows, cols = _matmul_shape(self, other, False, False)
            if self.rank == 2:
                z = self._like([rows, cols])
            else:
                z = self._like([batch, rows, cols])
            self.mat_mul(other, z)
            return z

    return FACTORY
