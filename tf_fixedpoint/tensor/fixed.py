"""A fixed-point configuration to support various tensor types."""
import logging
import math

from .factory import AbstractFactory
from .helpers import wrap

logger = logging.getLogger("tf_fixedpoint")


class FixedpointConfig:
    """
    Helper class containing the precision parameters of fixed-point
    tensors. Encodings are always base 2, so the scaling factor recorded on
    tensors is the number of fractional bits.
    """

    def __init__(self, precision_integral: int, precision_fractional: int) -> None:
        if precision_integral < 0 or precision_fractional < 0:
            raise ValueError("Precisions must be non-negative")
        self.precision_integral = precision_integral
        self.precision_fractional = precision_fractional

    @property
    def scaling_factor(self) -> int:
        return self.precision_fractional

    @property
    def bound_single_precision(self) -> int:
        total_precision = self.precision_integral + self.precision_fractional
        return 2**total_precision

    @property
    def bound_double_precision(self) -> int:
        total_precision = self.precision_integral + 2 * self.precision_fractional
        return 2**total_precision

    def __repr__(self) -> str:
        return "FixedpointConfig(precision_integral={}, precision_fractional={})".format(
            self.precision_integral, self.precision_fractional
        )


fixed32 = FixedpointConfig(
    precision_integral=10,
    precision_fractional=8,
)

fixed64 = FixedpointConfig(
    precision_integral=16,
    precision_fractional=16,
)


def encode_scalar(value: float, scaling_factor: int, nbits: int, signed=True) -> int:
    """
    Scale `value` by 2**scaling_factor and truncate toward zero.

    The product is computed in double precision; results outside the word
    range wrap around modulo 2**nbits.
    """
    if scaling_factor < 0:
        raise ValueError("Scaling factor must be non-negative")
    scaled = float(value) * math.pow(2, scaling_factor)
    if not math.isfinite(scaled):
        raise ValueError(
            "Cannot encode non-finite value {} with scaling factor {}".format(
                value, scaling_factor
            )
        )
    return wrap(int(scaled), nbits, signed)


def _validate_fixedpoint_config(
    config: FixedpointConfig, tensor_factory: AbstractFactory
) -> bool:
    """
    Ensure the given FixedpointConfig is compatible with the current
    tensor_factory, preventing silent errors.
    """
    no_issues = True

    # one bit is reserved for the sign
    value_bits = tensor_factory.nbits - 1
    single_bits = math.ceil(math.log2(config.bound_single_precision))
    double_bits = math.ceil(math.log2(config.bound_double_precision))

    if single_bits > value_bits:
        logger.warning(
            "Plaintext values won't fit in %d bit tensors", tensor_factory.nbits
        )
        no_issues = False

    if double_bits > value_bits:
        logger.warning(
            "Products of %s values overflow %d bit tensors before truncation",
            config,
            tensor_factory.nbits,
        )
        no_issues = False

    return no_issues
