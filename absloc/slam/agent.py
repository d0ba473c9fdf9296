"""
Agent pose and map-state ownership.

MapState is the single owner of the filter state and covariance. Sensors
never copy it: they read the agent pose through the Agent view, submit
corrections through MapState.correct, and the one direct write path (the
origin bootstrap) goes through the Agent setters while holding the map
lock.
"""

import threading
from typing import Optional, Sequence

import numpy as np

from absloc.estimators.extended_kalman_filter import ExtendedKalmanFilter
from absloc.models.motion_models import POSE_INDICES


class MapState:
    """
    Shared filter state with serialized access.

    Attributes:
        filter: The EKF holding the full state and covariance.
        lock: Re-entrant lock serializing every read-modify-write of the
              filter state within an update cycle.
    """

    def __init__(self, filter: ExtendedKalmanFilter):
        self.filter = filter
        self.lock = threading.RLock()

    @property
    def x(self) -> np.ndarray:
        return self.filter.state

    @property
    def P(self) -> np.ndarray:
        return self.filter.covariance

    def ia_used_states(self) -> np.ndarray:
        """Indices of all states currently in use."""
        return np.arange(self.filter.state_dim)

    def predict(self, u: Optional[np.ndarray] = None, dt: float = 1.0) -> None:
        with self.lock:
            self.filter.predict(u, dt)

    def correct(
        self,
        ia_rs: Sequence[int],
        inn_x: np.ndarray,
        inn_P: np.ndarray,
        inn_jacobian: np.ndarray,
    ) -> None:
        """Apply a generic correction over all used states."""
        with self.lock:
            self.filter.correct(ia_rs, inn_x, inn_P, inn_jacobian, ia_x=self.ia_used_states())


class Agent:
    """
    View of the agent pose inside the map state, plus its reference origin.

    The pose is [p (3), q (4)] at indices ``ia_pose`` of the map state.
    ``origin`` is empty until the first absolute reading sets it, and is
    never changed afterwards.

    Example:
        >>> ekf = ExtendedKalmanFilter(x0=np.r_[np.zeros(3), 1, 0, 0, 0, np.zeros(3)],
        ...                            P0=np.eye(10))
        >>> agent = Agent(MapState(ekf))
        >>> agent.orientation
        array([1., 0., 0., 0.])
        >>> agent.has_origin
        False
    """

    def __init__(self, map_state: MapState, ia_pose: Sequence[int] = POSE_INDICES):
        ia_pose = np.asarray(ia_pose, dtype=int)
        if ia_pose.shape != (7,):
            raise ValueError(f"Pose index set must have 7 entries, got {ia_pose.shape}")
        if np.any(ia_pose >= map_state.filter.state_dim) or np.any(ia_pose < 0):
            raise ValueError(
                f"Pose indices {ia_pose.tolist()} out of range for state dimension "
                f"{map_state.filter.state_dim}"
            )

        self.map = map_state
        self.ia_pose = ia_pose
        self.origin = np.zeros(0)

    @property
    def ia_position(self) -> np.ndarray:
        return self.ia_pose[0:3]

    @property
    def ia_orientation(self) -> np.ndarray:
        return self.ia_pose[3:7]

    @property
    def position(self) -> np.ndarray:
        return self.map.x[self.ia_position].copy()

    @property
    def orientation(self) -> np.ndarray:
        return self.map.x[self.ia_orientation].copy()

    @property
    def pose_covariance(self) -> np.ndarray:
        """Covariance block over [p, q] (7 × 7)."""
        return self.map.P[np.ix_(self.ia_pose, self.ia_pose)].copy()

    @property
    def has_origin(self) -> bool:
        return len(self.origin) > 0

    def set_origin(self, origin: np.ndarray) -> None:
        """
        Set the reference-frame origin.

        Raises:
            RuntimeError: If the origin was already set.
            ValueError: If origin is not a 3-vector.
        """
        if self.has_origin:
            raise RuntimeError(f"Agent origin already set to {self.origin}")
        origin = np.asarray(origin, dtype=float)
        if origin.shape != (3,):
            raise ValueError(f"Origin must have shape (3,), got {origin.shape}")
        self.origin = origin.copy()

    def set_position(self, p: np.ndarray) -> None:
        """Overwrite the position estimate."""
        p = np.asarray(p, dtype=float)
        if p.shape != (3,):
            raise ValueError(f"Position must have shape (3,), got {p.shape}")
        with self.map.lock:
            self.map.x[self.ia_position] = p

    def set_position_covariance(self, P_pp: np.ndarray) -> None:
        """Overwrite the position covariance block; cross terms are left as is."""
        P_pp = np.asarray(P_pp, dtype=float)
        if P_pp.shape != (3, 3):
            raise ValueError(f"Position covariance must be (3, 3), got {P_pp.shape}")
        with self.map.lock:
            self.map.P[np.ix_(self.ia_position, self.ia_position)] = P_pp
