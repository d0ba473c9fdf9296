"""
Measurement and motion models for absolute-position fusion.

Benefits:
- One place for the lever-arm measurement Jacobians
- Dimension dispatch through MeasurementShape
- Reusable agent motion model for prediction between readings
"""

from .measurement_models import (
    LinearizedExpectation,
    MeasurementShape,
    PositionOnlyModel,
    measurement_model_for,
)

from .motion_models import (
    ConstantVelocityPose3D,
    ORIENTATION_INDICES,
    POSE_INDICES,
    POSITION_INDICES,
    STATE_DIM,
    VELOCITY_INDICES,
)

__all__ = [
    # Measurement models
    'MeasurementShape',
    'LinearizedExpectation',
    'PositionOnlyModel',
    'measurement_model_for',

    # Motion models
    'ConstantVelocityPose3D',
    'STATE_DIM',
    'POSE_INDICES',
    'POSITION_INDICES',
    'ORIENTATION_INDICES',
    'VELOCITY_INDICES',
]
