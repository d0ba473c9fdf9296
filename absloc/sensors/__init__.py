"""
Absolute-position sensors and their raw reading sources.

This package provides:
    - Driver interface (HardwareSensor) and an in-memory ReplayDriver
    - Sensor configuration (SensorConfig) and mounting (SensorPose)
    - Initial-reading calibration from a window of early readings
    - SensorAbsloc: bootstrap-or-correct fusion into the agent EKF
"""

from absloc.sensors.absloc import ProcessResult, SensorAbsloc, SensorStatus
from absloc.sensors.calibration import (
    calibrate_from_samples,
    calibrate_initial_reading,
)
from absloc.sensors.hardware import DriverConfig, HardwareSensor, ReplayDriver
from absloc.sensors.types import SensorConfig, SensorPose

__all__ = [
    # Driver interface
    "DriverConfig",
    "HardwareSensor",
    "ReplayDriver",
    # Configuration
    "SensorConfig",
    "SensorPose",
    # Calibration
    "calibrate_from_samples",
    "calibrate_initial_reading",
    # Sensor
    "SensorAbsloc",
    "SensorStatus",
    "ProcessResult",
]
