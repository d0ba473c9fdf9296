"""
State estimation for multi-sensor pose fusion.

Available estimators:
    - Extended Kalman Filter (EKF) with an index-based generic correction,
      shared by every sensor that observes the agent
"""

from absloc.estimators.base import StateEstimator
from absloc.estimators.extended_kalman_filter import ExtendedKalmanFilter

__all__ = [
    "StateEstimator",
    "ExtendedKalmanFilter",
]
