"""
Base classes for state estimators.

This module defines the abstract interface shared by filters that host
corrections from several sensors.
"""

from abc import ABC, abstractmethod
from typing import Optional, Sequence, Tuple

import numpy as np


class StateEstimator(ABC):
    """Abstract base class for recursive state estimators."""

    def __init__(self, state_dim: int):
        """
        Initialize state estimator.

        Args:
            state_dim: Dimension of the state vector.
        """
        self.state_dim = state_dim
        self.state: Optional[np.ndarray] = None
        self.covariance: Optional[np.ndarray] = None

    @abstractmethod
    def predict(self, u: Optional[np.ndarray] = None, dt: float = 1.0) -> None:
        """
        Perform prediction step (time update).

        Args:
            u: Optional control input vector.
            dt: Time step.
        """
        pass

    @abstractmethod
    def correct(
        self,
        ia_rs: Sequence[int],
        inn_x: np.ndarray,
        inn_P: np.ndarray,
        inn_jacobian: np.ndarray,
        ia_x: Optional[Sequence[int]] = None,
    ) -> None:
        """
        Perform measurement correction from a precomputed innovation.

        Args:
            ia_rs: State indices the innovation depends on.
            inn_x: Innovation mean (m,).
            inn_P: Innovation covariance (m × m).
            inn_jacobian: Jacobian of the innovation w.r.t. the ia_rs states.
            ia_x: State indices to update (default: all states).
        """
        pass

    def get_state(self) -> Tuple[np.ndarray, np.ndarray]:
        """
        Get current state estimate and covariance.

        Returns:
            Tuple of (state_vector, covariance_matrix).
        """
        if self.state is None or self.covariance is None:
            raise RuntimeError("Estimator not initialized.")
        return self.state.copy(), self.covariance.copy()
