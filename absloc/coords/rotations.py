"""Quaternion rotation primitives and their Jacobians.

This module provides the rotation math needed by lever-arm measurement
models:
- Quaternion to rotation matrix conversion
- Rotation of a 3-vector by a quaternion
- Jacobian of that rotation with respect to the quaternion
- Euler angle to quaternion conversion (for building test poses)

Conventions:
- Quaternions: [qw, qx, qy, qz] where qw is the scalar part
- Quaternion q rotates body-frame vectors into the map frame:
  v_map = R(q) @ v_body
- Euler angles: [roll, pitch, yaw] in radians (ZYX/3-2-1 convention)

The rotation matrix is written in its homogeneous quadratic form, so
rotate(q, v) is exactly quadratic in q and rotate_by_dq is its exact
derivative even when q drifts slightly off the unit sphere between
normalizations.
"""

import warnings

import numpy as np
from numpy.typing import NDArray

QUAT_NORM_TOLERANCE = 0.1


def quat_normalize(q: NDArray[np.float64]) -> NDArray[np.float64]:
    """Normalize quaternion to unit norm."""
    q = np.asarray(q, dtype=np.float64)
    norm = np.linalg.norm(q)
    if norm == 0.0:
        raise ValueError("Cannot normalize a zero quaternion")
    return q / norm


def euler_to_quat(
    roll: float,
    pitch: float,
    yaw: float,
) -> NDArray[np.float64]:
    """Convert Euler angles to quaternion.

    Converts roll-pitch-yaw Euler angles (ZYX convention) to a unit
    quaternion representation.

    Args:
        roll: Roll angle φ in radians (rotation about x-axis).
        pitch: Pitch angle θ in radians (rotation about y-axis).
        yaw: Yaw angle ψ in radians (rotation about z-axis).

    Returns:
        Unit quaternion as numpy array [qw, qx, qy, qz].

    Example:
        >>> q = euler_to_quat(0.0, 0.0, np.pi/2)  # 90° yaw
        >>> print(f"Norm (should be 1.0): {np.linalg.norm(q):.6f}")
    """
    cr = np.cos(roll / 2.0)
    sr = np.sin(roll / 2.0)
    cp = np.cos(pitch / 2.0)
    sp = np.sin(pitch / 2.0)
    cy = np.cos(yaw / 2.0)
    sy = np.sin(yaw / 2.0)

    qw = cr * cp * cy + sr * sp * sy
    qx = sr * cp * cy - cr * sp * sy
    qy = cr * sp * cy + sr * cp * sy
    qz = cr * cp * sy - sr * sp * cy

    return np.array([qw, qx, qy, qz], dtype=np.float64)


def quat_to_rotation_matrix(q: NDArray[np.float64]) -> NDArray[np.float64]:
    """Convert quaternion to rotation matrix.

    Args:
        q: Quaternion as numpy array [qw, qx, qy, qz].

    Returns:
        3x3 rotation matrix R such that v_map = R @ v_body. For a unit
        quaternion this is a proper rotation; otherwise it is scaled by
        ||q||².

    Raises:
        ValueError: If q is not a 4-element array.
    """
    q = np.asarray(q, dtype=np.float64)
    if q.shape != (4,):
        raise ValueError(f"Expected 4-element quaternion, got shape {q.shape}")

    qw, qx, qy, qz = q
    ww, xx, yy, zz = qw * qw, qx * qx, qy * qy, qz * qz

    R = np.array(
        [
            [ww + xx - yy - zz, 2.0 * (qx * qy - qw * qz), 2.0 * (qx * qz + qw * qy)],
            [2.0 * (qx * qy + qw * qz), ww - xx + yy - zz, 2.0 * (qy * qz - qw * qx)],
            [2.0 * (qx * qz - qw * qy), 2.0 * (qy * qz + qw * qx), ww - xx - yy + zz],
        ],
        dtype=np.float64,
    )

    return R


def rotate(q: NDArray[np.float64], v: NDArray[np.float64]) -> NDArray[np.float64]:
    """Rotate a 3-vector by a quaternion.

    Computes v' = q ⊗ v ⊗ q*, i.e. R(q) @ v.

    Args:
        q: Quaternion [qw, qx, qy, qz], shape (4,).
        v: Vector in the body frame, shape (3,).

    Returns:
        Rotated vector in the map frame, shape (3,).

    Raises:
        ValueError: If v is not a 3-vector.

    Example:
        >>> q = euler_to_quat(0.0, 0.0, np.pi / 2)
        >>> rotate(q, np.array([1.0, 0.0, 0.0]))  # ≈ [0, 1, 0]
    """
    v = np.asarray(v, dtype=np.float64)
    if v.shape != (3,):
        raise ValueError(f"Expected 3-vector, got shape {v.shape}")

    R = quat_to_rotation_matrix(q)
    norm = np.linalg.norm(q)
    if abs(norm - 1.0) > QUAT_NORM_TOLERANCE:
        warnings.warn(
            f"Rotating by a quaternion of norm {norm:.3f}; result is scaled by "
            f"{norm**2:.3f}",
            RuntimeWarning,
        )

    return R @ v


def rotate_by_dq(q: NDArray[np.float64], v: NDArray[np.float64]) -> NDArray[np.float64]:
    """Jacobian of rotate(q, v) with respect to the quaternion.

    With q = [w, u] (u the vector part), the rotation expands to

        R(q) v = (w² - u·u) v + 2 (u·v) u + 2 w (u × v)

    whose derivatives are

        ∂/∂w = 2 (w v + u × v)
        ∂/∂u = 2 ((u·v) I + u vᵀ - v uᵀ - w [v]×)

    Since the expression is homogeneous of degree two, rotate(q, v) equals
    0.5 * rotate_by_dq(q, v) @ q.

    Args:
        q: Quaternion [qw, qx, qy, qz], shape (4,).
        v: Vector in the body frame, shape (3,).

    Returns:
        Jacobian matrix, shape (3, 4).

    Raises:
        ValueError: If q or v have the wrong shape.
    """
    q = np.asarray(q, dtype=np.float64)
    v = np.asarray(v, dtype=np.float64)
    if q.shape != (4,):
        raise ValueError(f"Expected 4-element quaternion, got shape {q.shape}")
    if v.shape != (3,):
        raise ValueError(f"Expected 3-vector, got shape {v.shape}")

    w = q[0]
    u = q[1:]
    vx, vy, vz = v

    v_skew = np.array(
        [
            [0.0, -vz, vy],
            [vz, 0.0, -vx],
            [-vy, vx, 0.0],
        ]
    )

    J = np.zeros((3, 4))
    J[:, 0] = 2.0 * (w * v + np.cross(u, v))
    J[:, 1:] = 2.0 * (
        np.dot(u, v) * np.eye(3) + np.outer(u, v) - np.outer(v, u) - w * v_skew
    )

    return J
