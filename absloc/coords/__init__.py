"""Rotation primitives for lever-arm measurement models.

Quaternions are scalar-first [qw, qx, qy, qz] and rotate body-frame
vectors into the map frame.
"""

from absloc.coords.rotations import (
    euler_to_quat,
    quat_normalize,
    quat_to_rotation_matrix,
    rotate,
    rotate_by_dq,
)

__all__ = [
    "euler_to_quat",
    "quat_normalize",
    "quat_to_rotation_matrix",
    "rotate",
    "rotate_by_dq",
]
