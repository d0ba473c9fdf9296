"""
Measurement models for absolute-position sensors.

A sensor mounted at lever-arm T (body frame) on an agent with pose (p, q)
observes

    h(p, q) = p + R(q) T

Models are selected by reading dimensionality through a tagged variant
(MeasurementShape). Only the position-only shape has a model; the
position+orientation shape is recognized but deliberately unimplemented,
and asking for it fails instead of truncating or padding the reading.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Type

import numpy as np

from absloc.coords.rotations import rotate, rotate_by_dq
from absloc.errors import MissingVarianceModel, UnsupportedMeasurementDimension
from absloc.fusion.tuning import prod_jpjt
from absloc.fusion.types import Expectation, Measurement, RawSample


class MeasurementShape(Enum):
    """Supported and known reading layouts, keyed by channel count."""

    POSITION = 3
    POSITION_ORIENTATION = 7


@dataclass(frozen=True)
class LinearizedExpectation:
    """Expected reading together with the Jacobians of its linearization.

    Attributes:
        expectation: Predicted reading and its covariance.
        EXP_rs: Jacobian of the expectation w.r.t. the pose [p, q], (n × 7).
        EXP_q: Jacobian block w.r.t. the quaternion only, (n × 4).
        Tr: Lever-arm rotated into the map frame, (3,).
    """

    expectation: Expectation
    EXP_rs: np.ndarray
    EXP_q: np.ndarray
    Tr: np.ndarray


class PositionOnlyModel:
    """
    Position measurement through a rotated lever-arm.

    Measurement: z = p + R(q) T + noise
    Jacobian:    EXP_rs = [ I_3 | ∂(R(q) T)/∂q ]

    Raw channel layout: the driver emits the three position channels in the
    order (y, x, z), so channels (1, 0, 2) map to axes (0, 1, 2). The same
    mapping applies to the per-channel uncertainty.

    Example:
        >>> model = PositionOnlyModel()
        >>> lin = model.expectation(
        ...     p=np.zeros(3), q=np.array([1.0, 0.0, 0.0, 0.0]),
        ...     T=np.array([0.5, 0.0, 0.0]), P_rs=np.eye(7) * 0.01,
        ... )
        >>> lin.expectation.x
        array([0.5, 0. , 0. ])
    """

    shape = MeasurementShape.POSITION
    size = 3
    CHANNEL_ORDER = (1, 0, 2)

    def expectation(
        self,
        p: np.ndarray,
        q: np.ndarray,
        T: np.ndarray,
        P_rs: np.ndarray,
    ) -> LinearizedExpectation:
        """
        Predict the reading from the current pose and its covariance.

        Args:
            p: Agent position (3,).
            q: Agent orientation quaternion [qw, qx, qy, qz] (4,).
            T: Sensor lever-arm in the body frame (3,).
            P_rs: Covariance over [p, q] (7 × 7).

        Returns:
            LinearizedExpectation with mean p + R(q) T and covariance
            EXP_rs P_rs EXP_rsᵀ.

        Raises:
            ValueError: If P_rs is not 7 × 7.
        """
        P_rs = np.asarray(P_rs, dtype=float)
        if P_rs.shape != (7, 7):
            raise ValueError(f"Pose covariance must be (7, 7), got {P_rs.shape}")

        Tr = rotate(q, T)
        EXP_q = rotate_by_dq(q, T)

        EXP_rs = np.zeros((self.size, 7))
        EXP_rs[:, 0:3] = np.eye(3)
        EXP_rs[:, 3:7] = EXP_q

        expectation = Expectation(
            x=np.asarray(p, dtype=float) + Tr,
            P=prod_jpjt(P_rs, EXP_rs),
        )
        return LinearizedExpectation(expectation=expectation, EXP_rs=EXP_rs, EXP_q=EXP_q, Tr=Tr)

    def measurement(
        self,
        sample: RawSample,
        origin: Optional[np.ndarray],
        has_var: bool,
    ) -> Measurement:
        """
        Build the origin-corrected measurement from a raw sample.

        Args:
            sample: Raw driver sample with 3 data channels.
            origin: Reference-frame origin (3,), or None/empty when unset.
            has_var: Whether the driver reports per-channel uncertainty.

        Returns:
            Measurement with mean reordered(data) - origin and covariance
            diag(reordered(std)²).

        Raises:
            UnsupportedMeasurementDimension: If the sample does not have 3 channels.
            MissingVarianceModel: If no per-channel uncertainty is available.
        """
        if sample.size != self.size:
            raise UnsupportedMeasurementDimension(sample.size)
        if not has_var or sample.var is None:
            raise MissingVarianceModel(
                "Absolute localization with constant uncertainty is not implemented; "
                "the driver must report per-channel variance"
            )

        order = list(self.CHANNEL_ORDER)
        x = sample.data[order]
        if origin is not None and len(origin) > 0:
            x = x - origin

        std = sample.var[order]
        return Measurement(x=x, P=np.diag(std**2))


_MODELS: Dict[MeasurementShape, Type[PositionOnlyModel]] = {
    MeasurementShape.POSITION: PositionOnlyModel,
}


def measurement_model_for(size: int) -> PositionOnlyModel:
    """
    Select the measurement model for a reading dimensionality.

    Args:
        size: Number of data channels reported by the driver.

    Returns:
        A measurement model instance.

    Raises:
        UnsupportedMeasurementDimension: If no model exists for ``size``,
            including the known but unimplemented 7-channel layout.

    Example:
        >>> measurement_model_for(3).shape
        <MeasurementShape.POSITION: 3>
    """
    try:
        shape = MeasurementShape(size)
    except ValueError:
        raise UnsupportedMeasurementDimension(size) from None

    model_cls = _MODELS.get(shape)
    if model_cls is None:
        raise UnsupportedMeasurementDimension(size)
    return model_cls()
