"""Absolute-localization sensor fusion for EKF-based pose estimation.

This package fuses absolute position sensors (GNSS, motion capture, ...)
into the pose of an agent whose state lives in a shared Extended Kalman
Filter:
- coords: Quaternion rotation primitives and their Jacobians
- estimators: Shared EKF with a generic correction step
- fusion: Gaussian measurement types and covariance helpers
- models: Measurement and motion models
- sensors: Driver interface, calibration and the absolute-position sensor
- slam: Agent pose and map state ownership
"""

__version__ = "0.1.0"
