"""
Extended Kalman Filter shared by several sensors.

Each sensor linearizes its own measurement model and hands the filter an
innovation together with the Jacobian of that innovation with respect to
the few state components it references. The filter only applies the
generic correction, so sensors never need to know the full state layout.

Implements:
    - Prediction
      x̂_k^- = f(x̂_{k-1}, u_k)
      P_k^- = F_{k-1} P_{k-1} F_{k-1}^T + Q
    - Correction from an innovation y with covariance S and cross-Jacobian
      INN_rs = ∂y/∂x_rs (for y = z - h(x), INN_rs = -H_rs):
      PJt = P[x, rs] INN_rsᵀ
      K   = -PJt S⁻¹
      x̂  += K y
      P  += K PJtᵀ         (equivalently P - K H P)
"""

import logging
from typing import Callable, Optional, Sequence

import numpy as np
from scipy import linalg

from absloc.errors import FilterCorrectionError
from absloc.estimators.base import StateEstimator

logger = logging.getLogger(__name__)


class ExtendedKalmanFilter(StateEstimator):
    """
    Extended Kalman Filter with an index-based generic correction.

    Attributes:
        process_model: Function f(x, u, dt) -> x_next for state propagation
        process_jacobian: Function F(x, u, dt) -> Jacobian matrix (n×n)
        Q: Process noise covariance function Q(dt) -> (n×n)
        state: Current state estimate x̂_k (n,)
        covariance: Current state covariance P_k (n×n)
    """

    def __init__(
        self,
        x0: np.ndarray,
        P0: np.ndarray,
        process_model: Optional[Callable[[np.ndarray, Optional[np.ndarray], float], np.ndarray]] = None,
        process_jacobian: Optional[Callable[[np.ndarray, Optional[np.ndarray], float], np.ndarray]] = None,
        Q: Optional[Callable[[float], np.ndarray]] = None,
    ):
        """
        Initialize Extended Kalman Filter.

        Args:
            x0: Initial state estimate (n,).
            P0: Initial state covariance (n×n).
            process_model: Nonlinear state transition f(x, u, dt) -> x_next.
                Optional; without it predict() is unavailable.
            process_jacobian: Jacobian of process model F(x, u, dt) (n×n).
            Q: Process noise covariance function Q(dt) -> (n×n).

        Raises:
            ValueError: If dimensions are inconsistent.
        """
        state_dim = len(x0)
        super().__init__(state_dim)

        self.process_model = process_model
        self.process_jacobian = process_jacobian
        self.Q = Q

        self.state = np.asarray(x0, dtype=float).copy()
        self.covariance = np.asarray(P0, dtype=float).copy()

        if self.covariance.shape != (state_dim, state_dim):
            raise ValueError(
                f"P0 shape {self.covariance.shape} inconsistent with state_dim {state_dim}"
            )

    def predict(self, u: Optional[np.ndarray] = None, dt: float = 1.0) -> None:
        """
        Perform prediction step (time update).

            x̂_k^- = f(x̂_{k-1}, u_k)
            P_k^- = F_{k-1} P_{k-1} F_{k-1}^T + Q

        F_{k-1} is evaluated at the pre-prediction state x̂_{k-1}.

        Args:
            u: Optional control input vector. If None, assumes zero control.
            dt: Time step for integration.

        Raises:
            RuntimeError: If no process model was configured.
        """
        if self.process_model is None or self.process_jacobian is None or self.Q is None:
            raise RuntimeError("Filter has no process model; predict() unavailable")

        x_pre = self.state.copy()
        F = self.process_jacobian(x_pre, u, dt)
        self.state = self.process_model(x_pre, u, dt)
        self.covariance = F @ self.covariance @ F.T + self.Q(dt)
        self.covariance = 0.5 * (self.covariance + self.covariance.T)

    def correct(
        self,
        ia_rs: Sequence[int],
        inn_x: np.ndarray,
        inn_P: np.ndarray,
        inn_jacobian: np.ndarray,
        ia_x: Optional[Sequence[int]] = None,
    ) -> None:
        """
        Correct the state from a precomputed innovation.

        Args:
            ia_rs: Indices of the states the innovation depends on (k,).
            inn_x: Innovation mean y (m,).
            inn_P: Innovation covariance S (m × m), already including the
                propagated state uncertainty.
            inn_jacobian: Cross-Jacobian ∂y/∂x_rs (m × k).
            ia_x: Indices of the states to update (default: all).

        Raises:
            ValueError: If dimensions are inconsistent.
            FilterCorrectionError: If S is not positive definite.
        """
        ia_rs = np.asarray(ia_rs, dtype=int)
        ia_x = np.arange(self.state_dim) if ia_x is None else np.asarray(ia_x, dtype=int)
        inn_x = np.asarray(inn_x, dtype=float)
        inn_P = np.asarray(inn_P, dtype=float)
        inn_jacobian = np.asarray(inn_jacobian, dtype=float)

        m = len(inn_x)
        if inn_P.shape != (m, m):
            raise ValueError(
                f"Innovation covariance shape {inn_P.shape} inconsistent with size {m}"
            )
        if inn_jacobian.shape != (m, len(ia_rs)):
            raise ValueError(
                f"Innovation Jacobian shape {inn_jacobian.shape} must be "
                f"({m}, {len(ia_rs)})"
            )

        try:
            S_factor = linalg.cho_factor(inn_P)
        except linalg.LinAlgError as e:
            raise FilterCorrectionError(
                f"Innovation covariance is not positive definite: {e}"
            ) from e

        PJt = self.covariance[np.ix_(ia_x, ia_rs)] @ inn_jacobian.T
        K = -linalg.cho_solve(S_factor, PJt.T).T

        self.state[ia_x] += K @ inn_x
        self.covariance[np.ix_(ia_x, ia_x)] += K @ PJt.T
        self.covariance = 0.5 * (self.covariance + self.covariance.T)

        logger.debug("Correction applied over %d states, |y|=%.4f", len(ia_x), np.linalg.norm(inn_x))
