"""Device placement of fixed-point tensors."""
import enum

import tensorflow as tf


class Device(enum.Enum):
    """
    Where the backing store of a tensor lives.

    Every tensor carries one of these values; operations mixing tensors
    with different placements fail instead of moving data implicitly.
    """

    CPU = "CPU"
    GPU = "GPU"

    @property
    def device_name(self) -> str:
        """Fully expanded TensorFlow device name."""
        return "/device:{}:0".format(self.value)

    @classmethod
    def from_string(cls, name):
        if isinstance(name, Device):
            return name
        try:
            return cls(name.strip().upper())
        except ValueError:
            raise ValueError("Unknown device '{}'".format(name)) from None

    def is_available(self) -> bool:
        return len(tf.config.list_logical_devices(self.value)) > 0


def device_scope(device: Device):
    """
    Retrieves the tf.device associated with a :class:`Device` value.

    :param Device device: The placement to execute under.
    """
    return tf.device(device.device_name)
