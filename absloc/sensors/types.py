"""
Configuration types for absolute-localization sensors.

This module defines:
    - SensorConfig: fusion policy flags supplied at construction
    - SensorPose: fixed mounting of the sensor on the agent (lever-arm)

Both are frozen dataclasses validated on construction; neither is mutated
at runtime.
"""

from dataclasses import dataclass, field, fields
from typing import Any, Dict

import numpy as np


@dataclass(frozen=True)
class SensorConfig:
    """
    Fusion policy of an absolute-position sensor.

    Attributes:
        absolute: True for sensors reporting globally referenced coordinates
                  (e.g. satellite positioning): the first reading places the
                  agent and the origin stays at zero. False for sensors with
                  an arbitrary sensor-fixed origin (e.g. motion capture): the
                  first reading becomes the origin and the agent starts at
                  zero.
        use_for_init: If True, the first fused reading is replaced by a
                      calibrated estimate computed from the window of readings
                      already available from the driver.

    Example:
        >>> gnss = SensorConfig(absolute=True, use_for_init=True)
        >>> mocap = SensorConfig.from_dict({"absolute": False})
    """

    absolute: bool = False
    use_for_init: bool = False

    def __post_init__(self) -> None:
        """Validate flag types."""
        for name in ("absolute", "use_for_init"):
            value = getattr(self, name)
            if not isinstance(value, (bool, np.bool_)):
                raise TypeError(f"{name} must be a bool, got {type(value)}")

    @classmethod
    def from_dict(cls, config: Dict[str, Any]) -> "SensorConfig":
        """
        Build a configuration from a dictionary (e.g. loaded from JSON).

        Raises:
            ValueError: If unknown keys are present.
        """
        known = {f.name for f in fields(cls)}
        unknown = set(config) - known
        if unknown:
            raise ValueError(
                f"Unknown sensor config keys {sorted(unknown)}; expected {sorted(known)}"
            )
        return cls(**config)

    def to_dict(self) -> Dict[str, Any]:
        return {"absolute": self.absolute, "use_for_init": self.use_for_init}


@dataclass(frozen=True)
class SensorPose:
    """
    Mounting of a sensor in the agent body frame.

    Attributes:
        T: Lever-arm from the agent reference point to the sensor (m), (3,).
    """

    T: np.ndarray = field(default_factory=lambda: np.zeros(3))

    def __post_init__(self) -> None:
        T = np.asarray(self.T, dtype=float)
        if T.shape != (3,):
            raise ValueError(f"Lever-arm T must have shape (3,), got {T.shape}")
        object.__setattr__(self, "T", T)
