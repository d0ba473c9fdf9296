"""
Absolute localization sensor (satellite positioning, motion capture, ...).

Bridges a raw absolute-position stream and the shared agent state. Each
call to ``process(id)`` runs one reading to completion:

    acquire     driver.fetch(id), or the calibration estimator on the
                first reading when use_for_init is set
    model       expectation p + R(q) T, its Jacobian EXP_rs = [I | ∂(R(q)T)/∂q],
                and the origin-corrected measurement
    fuse        first reading: bootstrap origin, position and position
                covariance directly (no prior to correct against)
                later readings: innovation y = z - ẑ, S = R + EXP_rs P EXP_rsᵀ,
                cross-Jacobian INN_rs = -EXP_rs, submitted to the filter

Sensor lifecycle:
    UNINITIALIZED (agent origin unset) -> OPERATIONAL, never back.

No gating is applied before submitting a correction.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

import numpy as np

from absloc.errors import MissingVarianceModel
from absloc.fusion.tuning import prod_jpjt
from absloc.fusion.types import Expectation, Innovation, Measurement, RawSample
from absloc.models.measurement_models import (
    LinearizedExpectation,
    PositionOnlyModel,
    measurement_model_for,
)
from absloc.sensors.calibration import calibrate_initial_reading
from absloc.sensors.hardware import HardwareSensor
from absloc.sensors.types import SensorConfig, SensorPose
from absloc.slam.agent import Agent

logger = logging.getLogger(__name__)


class SensorStatus(Enum):
    UNINITIALIZED = "uninitialized"
    OPERATIONAL = "operational"


@dataclass(frozen=True)
class ProcessResult:
    """
    Outcome of processing one reading.

    Attributes:
        id: Identifier of the processed reading.
        bootstrapped: True if the reading initialized origin and position
                      instead of correcting the filter.
        expectation: Predicted reading before fusion.
        measurement: Origin-corrected reading.
        innovation: measurement - expectation, covariances added.
        inn_jacobian: Cross-Jacobian ∂y/∂[p, q] (= -EXP_rs).
    """

    id: int
    bootstrapped: bool
    expectation: Expectation
    measurement: Measurement
    innovation: Innovation
    inn_jacobian: np.ndarray


class SensorAbsloc:
    """
    Absolute-position sensor fused into an agent's EKF pose.

    Args:
        agent: Agent whose pose is observed and whose origin this sensor owns.
        driver: Raw reading source.
        config: Fusion policy (absolute, use_for_init).
        pose: Mounting of the sensor on the agent (lever-arm).
        name: Label used in log messages.

    Example:
        >>> sensor = SensorAbsloc(agent, driver, SensorConfig(absolute=True))
        >>> for id in driver.enumerate_available():
        ...     sensor.process(id)
    """

    def __init__(
        self,
        agent: Agent,
        driver: HardwareSensor,
        config: Optional[SensorConfig] = None,
        pose: Optional[SensorPose] = None,
        name: str = "absloc",
    ):
        self.agent = agent
        self.driver = driver
        self.config = config if config is not None else SensorConfig()
        self.pose = pose if pose is not None else SensorPose()
        self.name = name

        driver_config = driver.configure()
        self.size = driver_config.data_size
        self.has_var = driver_config.has_var
        self.use_for_init = self.config.use_for_init
        self.ia_rs = agent.ia_pose

    @property
    def status(self) -> SensorStatus:
        if self.agent.has_origin:
            return SensorStatus.OPERATIONAL
        return SensorStatus.UNINITIALIZED

    def process(self, id: int) -> ProcessResult:
        """
        Fuse reading ``id`` into the agent state.

        Shape and variance availability are checked before anything is read
        from the driver or written to the agent. When the calibration
        estimator supplied the reading, the driver resources up to ``id``
        are released afterwards, whether or not fusion succeeded; the
        calibration is only marked done on success.

        Args:
            id: Driver identifier of the reading.

        Returns:
            ProcessResult describing the fusion step.

        Raises:
            UnsupportedMeasurementDimension: Reading size is not 3.
            MissingVarianceModel: Driver reports no per-channel variance.
            InsufficientCalibrationData: Calibration window is unusable.
            FilterCorrectionError: The filter rejected the correction.
        """
        model = measurement_model_for(self.size)
        if not self.has_var:
            raise MissingVarianceModel(
                f"{self.name}: absolute localization with constant uncertainty "
                f"is not implemented"
            )

        calibrating = self.use_for_init
        try:
            if calibrating:
                sample = calibrate_initial_reading(self.driver, id)
            else:
                sample = self.driver.fetch(id)

            result = self._fuse(model, sample)

            if calibrating:
                self.use_for_init = False
        finally:
            if calibrating:
                self.driver.release(id)

        return result

    def _fuse(self, model: PositionOnlyModel, sample: RawSample) -> ProcessResult:
        agent = self.agent
        with agent.map.lock:
            first = not agent.has_origin

            lin = model.expectation(
                p=agent.position,
                q=agent.orientation,
                T=self.pose.T,
                P_rs=agent.pose_covariance,
            )
            measurement = model.measurement(
                sample,
                origin=None if first else agent.origin,
                has_var=self.has_var,
            )
            innovation = Innovation.from_pair(measurement, lin.expectation)
            INN_rs = -lin.EXP_rs

            if first:
                self._bootstrap(measurement, lin)
            else:
                self._correct(innovation, INN_rs)

        return ProcessResult(
            id=sample.id,
            bootstrapped=first,
            expectation=lin.expectation,
            measurement=measurement,
            innovation=innovation,
            inn_jacobian=INN_rs,
        )

    def _correct(self, innovation: Innovation, INN_rs: np.ndarray) -> None:
        """Submit the innovation to the shared filter over all used states."""
        self.agent.map.correct(self.ia_rs, innovation.x, innovation.P, INN_rs)

    def _bootstrap(self, measurement: Measurement, lin: LinearizedExpectation) -> None:
        """
        Initialize origin, position and position covariance from one reading.

        Position uncertainty absorbs the current orientation uncertainty
        propagated through the lever-arm rotation:

            P_pp = R + EXP_q P_qq EXP_qᵀ
        """
        agent = self.agent
        P_qq = agent.pose_covariance[3:7, 3:7]
        P_pp = measurement.P + prod_jpjt(P_qq, lin.EXP_q)

        if self.config.absolute:
            origin = np.zeros(3)
            position = measurement.x - lin.Tr
        else:
            origin = measurement.x.copy()
            position = np.zeros(3)

        agent.set_origin(origin)
        agent.set_position(position)
        agent.set_position_covariance(P_pp)

        logger.info(
            "%s: robot origin: %s ; initial position: %s ; initial pose var: %s",
            self.name,
            np.array2string(agent.origin, precision=16),
            np.array2string(agent.position, precision=16),
            np.array2string(P_pp, precision=16),
        )
