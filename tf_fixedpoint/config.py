"""The TF Fixedpoint Config abstraction."""
import logging
import math
from pathlib import Path
from typing import Optional

import tensorflow as tf
import yaml

from .placement import Device
from .tensor.fixed import FixedpointConfig
from .tensor.fixed import fixed64

logger = logging.getLogger("tf_fixedpoint")


def _get_docker_cpu_quota():
    """Checks for available cpu cores in a containerized environment."""
    cpu_cores = None

    # Check for quotas if we are in a linux container
    cfs_period = Path("/sys/fs/cgroup/cpu/cpu.cfs_period_us")
    cfs_quota = Path("/sys/fs/cgroup/cpu/cpu.cfs_quota_us")

    if cfs_period.exists() and cfs_quota.exists():
        with cfs_period.open("rb") as p, cfs_quota.open("rb") as q:
            p_int, q_int = int(p.read()), int(q.read())

            # get the cores allocated by dividing the quota
            # in microseconds by the period in microseconds
            if q_int > 0 and p_int > 0:
                cpu_cores = math.ceil(q_int / p_int)

    return cpu_cores


class LocalConfig:
    """Configure defaults for fixed-point tensors created in this process.

    :param Device device: Placement of tensors created without an explicit one.
    :param FixedpointConfig fixedpoint: Precision used by float conversions
        when no scaling factor is passed.
    :param int intra_op_parallelism_threads: Threads TensorFlow may use inside
        one kernel, e.g. across the batch slices of a matmul. Defaults to the
        container CPU quota when there is one.
    :param bool debug_mode: Log every dispatched operation.
    """

    def __init__(
        self,
        device=Device.CPU,
        fixedpoint: FixedpointConfig = fixed64,
        intra_op_parallelism_threads: Optional[int] = None,
        debug_mode: bool = False,
    ) -> None:
        self.device = Device.from_string(device)
        self.fixedpoint = fixedpoint
        self.intra_op_parallelism_threads = intra_op_parallelism_threads
        self.debug_mode = debug_mode

    @property
    def debug(self) -> bool:
        return self.debug_mode

    def set_debug_mode(self, debug_mode: bool) -> None:
        self.debug_mode = debug_mode

    @property
    def scaling_factor(self) -> int:
        return self.fixedpoint.scaling_factor

    def apply(self) -> None:
        """Push the threading settings into the TensorFlow runtime.

        TensorFlow only accepts these before its runtime is initialized;
        afterwards the current settings are kept and a warning is logged.
        """
        threads = self.intra_op_parallelism_threads
        if threads is None:
            threads = _get_docker_cpu_quota()
        if threads is None:
            return
        try:
            tf.config.threading.set_intra_op_parallelism_threads(threads)
        except RuntimeError:
            logger.warning(
                "Could not set intra op parallelism to %d; "
                "TensorFlow runtime is already initialized",
                threads,
            )
        else:
            logger.debug("Using %d intra op threads", threads)

    @staticmethod
    def load(filename):
        """Constructs a LocalConfig object from a YAML file.

        :param str filename: Name of file to load from.
        """
        with open(filename, "r") as f:
            raw = yaml.safe_load(f) or {}
        fixedpoint = raw.get("fixedpoint", {})
        return LocalConfig(
            device=raw.get("device", Device.CPU.value),
            fixedpoint=FixedpointConfig(
                precision_integral=fixedpoint.get(
                    "precision_integral", fixed64.precision_integral
                ),
                precision_fractional=fixedpoint.get(
                    "precision_fractional", fixed64.precision_fractional
                ),
            ),
            intra_op_parallelism_threads=raw.get("intra_op_parallelism_threads"),
            debug_mode=raw.get("debug_mode", False),
        )

    def save(self, filename):
        """Saves the configuration as a YAML file.

        :param str filename: Name of file to save to.
        """
        with open(filename, "w") as f:
            yaml.safe_dump(self.to_dict(), f, default_flow_style=False)

    def to_dict(self):
        return {
            "device": self.device.value,
            "fixedpoint": {
                "precision_integral": self.fixedpoint.precision_integral,
                "precision_fractional": self.fixedpoint.precision_fractional,
            },
            "intra_op_parallelism_threads": self.intra_op_parallelism_threads,
            "debug_mode": self.debug_mode,
        }


__config__ = LocalConfig()


def get_config():
    """Returns the current config."""
    return __config__


def set_config(config) -> None:
    """Sets the current config.

    :param LocalConfig config: Intended configuration.
    """
    global __config__
    __config__ = config
    config.apply()
