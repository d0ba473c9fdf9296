"""
Motion model for the agent state between absolute-position readings.

State layout (10 states):
    x = [p (3), q (4), v (3)]

    p: Position in map frame (m)
    q: Orientation quaternion, scalar-first [qw, qx, qy, qz]
    v: Velocity in map frame (m/s)

The pose block [p, q] occupies indices 0..6, which is the index set an
absolute-position sensor references.
"""

from typing import Optional

import numpy as np

POSE_INDICES = np.arange(0, 7)
POSITION_INDICES = np.arange(0, 3)
ORIENTATION_INDICES = np.arange(3, 7)
VELOCITY_INDICES = np.arange(7, 10)
STATE_DIM = 10


class ConstantVelocityPose3D:
    """
    3D constant velocity model with a random-walk orientation.

    Dynamics:
        p_{k+1} = p_k + v_k dt
        q_{k+1} = q_k
        v_{k+1} = v_k

    Example:
        >>> model = ConstantVelocityPose3D(q_acc=0.5, q_att=1e-4)
        >>> x = np.zeros(10); x[3] = 1.0; x[7] = 2.0
        >>> model.f(x, dt=0.5)[:3]
        array([1., 0., 0.])
    """

    def __init__(self, q_acc: float = 1.0, q_att: float = 1e-6):
        """
        Args:
            q_acc: Acceleration noise intensity (m²/s³).
            q_att: Quaternion random-walk intensity (1/s).
        """
        if q_acc < 0 or q_att < 0:
            raise ValueError("Process noise intensities must be non-negative")
        self.q_acc = q_acc
        self.q_att = q_att

    @staticmethod
    def f(x: np.ndarray, u: Optional[np.ndarray] = None, dt: float = 1.0) -> np.ndarray:
        """
        Process model: x_{k+1} = f(x_k, dt).

        Args:
            x: State [p, q, v] (10,)
            u: Control input (unused)
            dt: Time step in seconds

        Returns:
            Next state (10,)
        """
        if x.shape != (STATE_DIM,):
            raise ValueError(f"State must be {STATE_DIM}D [p,q,v], got shape {x.shape}")

        x_next = x.copy()
        x_next[POSITION_INDICES] += x[VELOCITY_INDICES] * dt
        return x_next

    @staticmethod
    def F(x: np.ndarray, u: Optional[np.ndarray] = None, dt: float = 1.0) -> np.ndarray:
        """State transition matrix (Jacobian of f), 10x10."""
        F = np.eye(STATE_DIM)
        F[POSITION_INDICES, VELOCITY_INDICES] = dt
        return F

    def Q(self, dt: float) -> np.ndarray:
        """
        Process noise covariance.

        Position/velocity use the continuous white noise acceleration blocks
        per axis; the quaternion gets an independent random walk.
        """
        Q = np.zeros((STATE_DIM, STATE_DIM))
        for p_i, v_i in zip(POSITION_INDICES, VELOCITY_INDICES):
            Q[p_i, p_i] = self.q_acc * dt**3 / 3
            Q[p_i, v_i] = Q[v_i, p_i] = self.q_acc * dt**2 / 2
            Q[v_i, v_i] = self.q_acc * dt
        Q[np.ix_(ORIENTATION_INDICES, ORIENTATION_INDICES)] = self.q_att * dt * np.eye(4)
        return Q
