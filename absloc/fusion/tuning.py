"""Covariance propagation and innovation utilities.

This module holds the small linear-algebra helpers shared by the
measurement models, the origin bootstrap and the filter correction:

    J P Jᵀ              first-order covariance propagation
    y = z - ẑ           innovation
    S = R + J P Jᵀ      innovation covariance (independent terms add)
    NIS = yᵀ S⁻¹ y      normalized innovation squared, for monitoring only

No gating is performed here; NIS is reported, never used to reject.
"""

import numpy as np
from scipy import linalg


def prod_jpjt(P: np.ndarray, J: np.ndarray) -> np.ndarray:
    """Propagate a covariance through a Jacobian.

    Computes J @ P @ J.T and re-symmetrizes the result.

    Args:
        P: Covariance matrix (n × n).
        J: Jacobian matrix (m × n).

    Returns:
        Propagated covariance (m × m).

    Raises:
        ValueError: If matrix dimensions are incompatible.

    Example:
        >>> J = np.array([[1.0, 1.0]])
        >>> P = np.diag([0.5, 0.25])
        >>> prod_jpjt(P, J)
        array([[0.75]])
    """
    P = np.asarray(P, dtype=float)
    J = np.asarray(J, dtype=float)

    if P.ndim != 2 or P.shape[0] != P.shape[1]:
        raise ValueError(f"P must be a square matrix, got shape {P.shape}")
    if J.ndim != 2 or J.shape[1] != P.shape[0]:
        raise ValueError(
            f"J shape {J.shape} incompatible with P shape {P.shape}"
        )

    JPJt = J @ P @ J.T
    return 0.5 * (JPJt + JPJt.T)


def innovation(z: np.ndarray, z_pred: np.ndarray) -> np.ndarray:
    """Compute measurement innovation (residual) y = z - ẑ.

    Args:
        z: Actual measurement vector (m,).
        z_pred: Predicted measurement (m,).

    Returns:
        Innovation vector (m,).

    Raises:
        ValueError: If z and z_pred have different shapes.
    """
    z = np.asarray(z, dtype=float)
    z_pred = np.asarray(z_pred, dtype=float)

    if z.shape != z_pred.shape:
        raise ValueError(
            f"Measurement z and prediction z_pred must have same shape, "
            f"got {z.shape} and {z_pred.shape}"
        )

    return z - z_pred


def innovation_covariance(R: np.ndarray, expectation_cov: np.ndarray) -> np.ndarray:
    """Compute innovation covariance S = R + cov(ẑ).

    The expectation covariance is already propagated through the measurement
    Jacobian (J P Jᵀ), so under the independence assumption the two simply
    add.

    Args:
        R: Measurement noise covariance (m × m).
        expectation_cov: Covariance of the predicted measurement (m × m).

    Returns:
        Innovation covariance (m × m).

    Raises:
        ValueError: If shapes differ.
    """
    R = np.asarray(R, dtype=float)
    expectation_cov = np.asarray(expectation_cov, dtype=float)

    if R.shape != expectation_cov.shape:
        raise ValueError(
            f"R shape {R.shape} must match expectation covariance shape "
            f"{expectation_cov.shape}"
        )

    return R + expectation_cov


def normalized_innovation_squared(y: np.ndarray, S: np.ndarray) -> float:
    """Compute the normalized innovation squared yᵀ S⁻¹ y.

    Args:
        y: Innovation vector (m,).
        S: Innovation covariance (m × m), must be positive definite.

    Returns:
        NIS value. For a consistent filter it follows a χ² distribution with
        m degrees of freedom.

    Raises:
        ValueError: If dimensions are incompatible or S is not positive definite.

    Example:
        >>> normalized_innovation_squared(np.array([2.0, 1.0]), np.diag([4.0, 1.0]))
        2.0
    """
    y = np.asarray(y, dtype=float)
    S = np.asarray(S, dtype=float)

    if y.ndim != 1:
        raise ValueError(f"Innovation y must be 1D, got shape {y.shape}")
    m = len(y)
    if S.shape != (m, m):
        raise ValueError(
            f"Innovation dimension {m} incompatible with S shape {S.shape}"
        )

    try:
        c_and_lower = linalg.cho_factor(S)
    except linalg.LinAlgError as e:
        raise ValueError(f"Innovation covariance S is not positive definite: {e}")

    return float(y @ linalg.cho_solve(c_and_lower, y))
