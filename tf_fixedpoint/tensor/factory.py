import abc
from typing import List
from typing import Optional
from typing import Union

import numpy as np
import tensorflow as tf


class AbstractTensor(abc.ABC):
    """
    Capability contract for fixed-point tensors.

    Operations writing a result take the destination tensor as their last
    argument and write into it; peer operands and destinations must come
    from the same factory as the receiver.
    """

    @property
    @abc.abstractmethod
    def factory(self):
        pass

    @property
    @abc.abstractmethod
    def shape(self) -> List[int]:
        pass

    @property
    @abc.abstractmethod
    def numel(self) -> int:
        """ Number of stored elements. """

    @property
    @abc.abstractmethod
    def device(self):
        """ The :class:`~tf_fixedpoint.placement.Device` holding the data. """

    @property
    @abc.abstractmethod
    def scaling_factor(self) -> int:
        """ Exponent of the fixed-point encoding, `real = raw / 2**scaling_factor`. """

    @abc.abstractmethod
    def reshape(self, shape: List[int]) -> None:
        pass

    @abc.abstractmethod
    def add(self, rhs, dst) -> None:
        pass

    @abc.abstractmethod
    def sub(self, rhs, dst) -> None:
        pass

    @abc.abstractmethod
    def mul(self, rhs, dst) -> None:
        pass

    @abc.abstractmethod
    def div(self, rhs, dst) -> None:
        pass

    @abc.abstractmethod
    def negative(self, dst) -> None:
        pass

    @abc.abstractmethod
    def bitwise_and(self, rhs, dst) -> None:
        pass

    @abc.abstractmethod
    def bitwise_or(self, rhs, dst) -> None:
        pass

    @abc.abstractmethod
    def bitwise_xor(self, rhs, dst) -> None:
        pass

    @abc.abstractmethod
    def bitwise_not(self, dst) -> None:
        pass

    @abc.abstractmethod
    def lshift(self, amount: int, dst) -> None:
        pass

    @abc.abstractmethod
    def rshift(self, amount: int, dst) -> None:
        pass

    @abc.abstractmethod
    def logical_rshift(self, amount: int, dst) -> None:
        pass

    @abc.abstractmethod
    def mat_mul(self, rhs, dst, trans_lhs: bool = False, trans_rhs: bool = False):
        """ Batched matrix product of rank-2/rank-3 tensors. """

    @abc.abstractmethod
    def slice(self, begin: int, end: int, dst) -> None:
        """ Copy the first-axis range [begin, end) into `dst`. """

    @abc.abstractmethod
    def from_float_point_type(
        self, tensor: Union[tf.Tensor, np.ndarray], scaling_factor: int
    ):
        """ Encode a floating-point tensor into this tensor. """

    @abc.abstractmethod
    def from_float_point_scalar(
        self, scalar: float, shape: List[int], scaling_factor: int
    ):
        """ Fill this tensor with one encoded floating-point scalar. """


TensorAdapter = AbstractTensor


class AbstractFactory(abc.ABC):

    @property
    @abc.abstractmethod
    def modulus(self) -> int:
        """ The modulus used by this data type. """

    @property
    @abc.abstractmethod
    def native_type(self):
        """ The underlying TensorFlow dtype used by this data type. """

    @property
    @abc.abstractmethod
    def nbits(self) -> int:
        """ Width of a word in bits. """

    @abc.abstractmethod
    def tensor(
        self,
        initial_value=None,
        device=None,
        scaling_factor: int = 0,
    ):
        """ Wrap raw `initial_value` in this data type as a tensor. """

    @abc.abstractmethod
    def zeros(self, shape, device=None, scaling_factor: int = 0):
        """ Allocate a zero-filled tensor of the given shape. """

    @abc.abstractmethod
    def from_float_point_type(
        self, tensor, scaling_factor: Optional[int] = None, device=None
    ):
        """ Create a tensor encoding the floating-point `tensor`. """

    @abc.abstractmethod
    def from_float_point_scalar(
        self, scalar, shape, scaling_factor: Optional[int] = None, device=None
    ):
        """ Create a tensor filled with the encoding of `scalar`. """
