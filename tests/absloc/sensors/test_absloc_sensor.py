"""
Unit tests for the absolute localization sensor.

Tests cover:
    - Origin bootstrap for absolute and relative frames
    - Orientation uncertainty folded into the initial position covariance
    - Regular corrections (innovation, cross-Jacobian, filter update)
    - Rejection of unsupported readings before any state change
    - Calibrated first reading and driver release
"""

import unittest

import numpy as np
from numpy.testing import assert_allclose

from absloc.coords.rotations import euler_to_quat, rotate, rotate_by_dq
from absloc.errors import (
    FilterCorrectionError,
    InsufficientCalibrationData,
    MissingVarianceModel,
    UnsupportedMeasurementDimension,
)
from absloc.estimators.extended_kalman_filter import ExtendedKalmanFilter
from absloc.fusion.types import RawSample
from absloc.models.motion_models import STATE_DIM
from absloc.sensors.absloc import SensorAbsloc, SensorStatus
from absloc.sensors.hardware import ReplayDriver
from absloc.sensors.types import SensorConfig, SensorPose
from absloc.slam.agent import Agent, MapState


def make_agent(q=None, P0=None):
    x0 = np.zeros(STATE_DIM)
    x0[3:7] = [1.0, 0.0, 0.0, 0.0] if q is None else q
    if P0 is None:
        P0 = np.diag([100.0] * 3 + [1e-3] * 4 + [1.0] * 3)
    return Agent(MapState(ExtendedKalmanFilter(x0, P0)))


def reading(id, data, std=(0.5, 0.5, 0.5), t=0.0):
    return RawSample(id=id, data=np.asarray(data, dtype=float), var=np.asarray(std, dtype=float), t=t)


class TestOriginBootstrap(unittest.TestCase):
    """First reading initializes origin, position and position covariance."""

    def test_absolute_frame(self):
        agent = make_agent()
        driver = ReplayDriver([reading(0, [5.0, 5.0, 5.0])])
        sensor = SensorAbsloc(agent, driver, SensorConfig(absolute=True))

        result = sensor.process(0)

        self.assertTrue(result.bootstrapped)
        assert_allclose(agent.origin, [0.0, 0.0, 0.0])
        assert_allclose(agent.position, [5.0, 5.0, 5.0])
        assert_allclose(agent.pose_covariance[:3, :3], np.diag([0.25] * 3))

    def test_relative_frame(self):
        agent = make_agent()
        driver = ReplayDriver([reading(0, [5.0, 5.0, 5.0])])
        sensor = SensorAbsloc(agent, driver, SensorConfig(absolute=False))

        sensor.process(0)

        assert_allclose(agent.origin, [5.0, 5.0, 5.0])
        assert_allclose(agent.position, [0.0, 0.0, 0.0])

    def test_raw_channel_layout(self):
        agent = make_agent()
        driver = ReplayDriver([reading(0, [1.0, 2.0, 3.0], std=[0.1, 0.2, 0.3])])
        sensor = SensorAbsloc(agent, driver, SensorConfig(absolute=True))

        sensor.process(0)

        assert_allclose(agent.position, [2.0, 1.0, 3.0])
        assert_allclose(np.diag(agent.pose_covariance[:3, :3]), [0.04, 0.01, 0.09])

    def test_absolute_frame_removes_lever_arm(self):
        q = euler_to_quat(0.0, 0.0, np.pi / 2)
        T = np.array([1.0, 0.0, 0.0])
        agent = make_agent(q=q)
        driver = ReplayDriver([reading(0, [10.0, 20.0, 30.0])])
        sensor = SensorAbsloc(agent, driver, SensorConfig(absolute=True), SensorPose(T=T))

        sensor.process(0)

        assert_allclose(agent.position, np.array([20.0, 10.0, 30.0]) - rotate(q, T), atol=1e-12)

    def test_orientation_uncertainty_folded_in(self):
        q = euler_to_quat(0.1, 0.2, 0.3)
        T = np.array([0.5, -0.2, 1.0])
        P0 = np.diag([100.0] * 3 + [0.01, 0.02, 0.03, 0.04] + [1.0] * 3)
        agent = make_agent(q=q, P0=P0)
        driver = ReplayDriver([reading(0, [0.0, 0.0, 0.0], std=[0.3, 0.3, 0.3])])
        sensor = SensorAbsloc(agent, driver, SensorConfig(absolute=True), SensorPose(T=T))

        sensor.process(0)

        EXP_q = rotate_by_dq(q, T)
        expected = np.diag([0.09] * 3) + EXP_q @ P0[3:7, 3:7] @ EXP_q.T
        assert_allclose(agent.pose_covariance[:3, :3], expected, rtol=1e-12, atol=1e-15)

    def test_bootstrap_does_not_touch_orientation(self):
        agent = make_agent()
        q_before = agent.orientation
        P_qq_before = agent.pose_covariance[3:7, 3:7]
        sensor = SensorAbsloc(agent, ReplayDriver([reading(0, [1.0, 1.0, 1.0])]))

        sensor.process(0)

        assert_allclose(agent.orientation, q_before)
        assert_allclose(agent.pose_covariance[3:7, 3:7], P_qq_before)

    def test_status_transition_and_log(self):
        agent = make_agent()
        driver = ReplayDriver([reading(0, [1.0, 1.0, 1.0]), reading(1, [1.0, 1.0, 1.0])])
        sensor = SensorAbsloc(agent, driver, SensorConfig(absolute=True))
        self.assertEqual(sensor.status, SensorStatus.UNINITIALIZED)

        with self.assertLogs("absloc.sensors.absloc", level="INFO") as logs:
            sensor.process(0)
        self.assertIn("robot origin", logs.output[0])
        self.assertEqual(sensor.status, SensorStatus.OPERATIONAL)

        sensor.process(1)
        self.assertEqual(sensor.status, SensorStatus.OPERATIONAL)

    def test_origin_set_only_once(self):
        agent = make_agent()
        driver = ReplayDriver([reading(0, [5.0, 5.0, 5.0]), reading(1, [9.0, 9.0, 9.0])])
        sensor = SensorAbsloc(agent, driver, SensorConfig(absolute=False))

        sensor.process(0)
        result = sensor.process(1)

        self.assertFalse(result.bootstrapped)
        assert_allclose(agent.origin, [5.0, 5.0, 5.0])
        assert_allclose(result.measurement.x, [4.0, 4.0, 4.0])


class TestCorrection(unittest.TestCase):
    """Readings after the first are fused through the filter."""

    def setUp(self):
        self.q = euler_to_quat(0.0, 0.0, 0.4)
        self.T = np.array([0.3, 0.1, 0.5])
        self.agent = make_agent(q=self.q)
        self.driver = ReplayDriver(
            [reading(0, [0.0, 0.0, 0.0]), reading(1, [2.0, 1.0, 0.5], std=[0.2, 0.2, 0.2])]
        )
        self.sensor = SensorAbsloc(
            self.agent, self.driver, SensorConfig(absolute=True), SensorPose(T=self.T)
        )
        self.sensor.process(0)

    def test_innovation_and_cross_jacobian(self):
        p = self.agent.position
        P_rs = self.agent.pose_covariance

        result = self.sensor.process(1)

        EXP_rs = np.hstack([np.eye(3), rotate_by_dq(self.q, self.T)])
        assert_allclose(result.inn_jacobian, -EXP_rs, atol=1e-12)
        assert_allclose(result.expectation.x, p + rotate(self.q, self.T), atol=1e-12)
        assert_allclose(result.measurement.x, [1.0, 2.0, 0.5])
        assert_allclose(result.innovation.x, result.measurement.x - result.expectation.x)
        assert_allclose(result.innovation.P, result.measurement.P + result.expectation.P)
        assert_allclose(result.expectation.P, EXP_rs @ P_rs @ EXP_rs.T, rtol=1e-10, atol=1e-12)

    def test_filter_update(self):
        P_before = self.agent.map.P.copy()
        x_before = self.agent.map.x.copy()

        result = self.sensor.process(1)

        H = np.zeros((3, STATE_DIM))
        H[:, :7] = -result.inn_jacobian
        S = result.innovation.P
        K = P_before @ H.T @ np.linalg.inv(S)
        assert_allclose(self.agent.map.x, x_before + K @ result.innovation.x, atol=1e-9)
        assert_allclose(self.agent.map.P, P_before - K @ H @ P_before, atol=1e-9)

    def test_correction_moves_toward_measurement(self):
        err_before = np.linalg.norm([1.0, 2.0, 0.5] - (self.agent.position + rotate(self.q, self.T)))
        self.sensor.process(1)
        err_after = np.linalg.norm([1.0, 2.0, 0.5] - (self.agent.position + rotate(self.q, self.T)))
        self.assertLess(err_after, err_before)

    def test_degenerate_innovation_covariance(self):
        agent = make_agent(P0=np.zeros((STATE_DIM, STATE_DIM)))
        driver = ReplayDriver(
            [reading(0, [1.0, 1.0, 1.0], std=[0.0] * 3), reading(1, [2.0, 2.0, 2.0], std=[0.0] * 3)]
        )
        sensor = SensorAbsloc(agent, driver, SensorConfig(absolute=True))
        sensor.process(0)
        x_before = agent.map.x.copy()

        with self.assertRaises(FilterCorrectionError):
            sensor.process(1)
        assert_allclose(agent.map.x, x_before)


class TestRejectedReadings(unittest.TestCase):
    """Unsupported readings fail before any driver or state access."""

    def test_seven_channel_reading(self):
        agent = make_agent()
        samples = [RawSample(id=0, data=np.arange(7.0), var=np.ones(7))]
        driver = ReplayDriver(samples)
        sensor = SensorAbsloc(agent, driver, SensorConfig(absolute=True))
        x_before = agent.map.x.copy()
        P_before = agent.map.P.copy()

        with self.assertRaises(UnsupportedMeasurementDimension):
            sensor.process(0)

        self.assertFalse(agent.has_origin)
        assert_allclose(agent.map.x, x_before)
        assert_allclose(agent.map.P, P_before)
        self.assertEqual(driver.enumerate_available(), [0])

    def test_two_channel_reading(self):
        driver = ReplayDriver([RawSample(id=0, data=np.zeros(2), var=np.ones(2))])
        sensor = SensorAbsloc(make_agent(), driver)
        with self.assertRaises(UnsupportedMeasurementDimension):
            sensor.process(0)

    def test_missing_variance(self):
        agent = make_agent()
        driver = ReplayDriver([RawSample(id=0, data=np.ones(3))])
        sensor = SensorAbsloc(agent, driver, SensorConfig(absolute=True))

        with self.assertRaises(MissingVarianceModel):
            sensor.process(0)

        self.assertFalse(agent.has_origin)
        self.assertEqual(driver.enumerate_available(), [0])

    def test_partial_variance_channels(self):
        driver = ReplayDriver([reading(0, [1.0, 1.0, 1.0])], variance_size=1)
        sensor = SensorAbsloc(make_agent(), driver)
        with self.assertRaises(MissingVarianceModel):
            sensor.process(0)


class TestCalibratedFirstReading(unittest.TestCase):
    def setUp(self):
        self.samples = [
            reading(0, [10.0, 20.0, 1.0], std=[1.0, 1.0, 1.0]),
            reading(1, [11.0, 21.0, 2.0], std=[1.5, 1.5, 1.5]),
            reading(2, [100.0, 200.0, 50.0], std=[5.0, 5.0, 5.0]),
        ]
        self.agent = make_agent()
        self.driver = ReplayDriver(self.samples)
        self.sensor = SensorAbsloc(
            self.agent, self.driver, SensorConfig(absolute=True, use_for_init=True)
        )

    def test_calibrated_bootstrap_and_release(self):
        result = self.sensor.process(2)

        self.assertTrue(result.bootstrapped)
        # Raw (y, x, z) layout: calibrated data [10.6, 20.6, 1.6]
        assert_allclose(self.agent.position, [20.6, 10.6, 1.6])
        assert_allclose(self.agent.pose_covariance[:3, :3], np.eye(3), atol=1e-12)
        self.assertEqual(self.driver.released, [2])
        self.assertEqual(self.driver.enumerate_available(), [])
        self.assertFalse(self.sensor.use_for_init)

    def test_later_readings_use_fetch(self):
        self.sensor.process(2)
        self.driver.push(reading(3, [10.5, 20.5, 1.5]))

        result = self.sensor.process(3)

        self.assertFalse(result.bootstrapped)
        self.assertEqual(self.driver.released, [2])
        assert_allclose(result.measurement.x, [20.5, 10.5, 1.5])

    def test_failed_calibration_still_releases(self):
        driver = ReplayDriver([reading(0, [1.0, 1.0, 1.0], std=[0.0, 0.0, 0.0])])
        agent = make_agent()
        sensor = SensorAbsloc(agent, driver, SensorConfig(absolute=True, use_for_init=True))

        with self.assertRaises(InsufficientCalibrationData):
            sensor.process(0)

        self.assertEqual(driver.released, [0])
        self.assertTrue(sensor.use_for_init)
        self.assertFalse(agent.has_origin)

    def test_config_is_not_mutated(self):
        self.sensor.process(2)
        self.assertTrue(self.sensor.config.use_for_init)

    def test_wrong_channel_count_in_window(self):
        samples = [
            reading(0, [1.0, 1.0, 1.0]),
            RawSample(id=1, data=np.arange(7.0), var=np.ones(7)),
        ]
        driver = ReplayDriver(samples, data_size=3, variance_size=3)
        agent = make_agent()
        x_before = agent.map.x.copy()
        sensor = SensorAbsloc(agent, driver, SensorConfig(absolute=True, use_for_init=True))

        with self.assertRaises(UnsupportedMeasurementDimension):
            sensor.process(1)

        self.assertFalse(agent.has_origin)
        assert_allclose(agent.map.x, x_before)
        self.assertTrue(sensor.use_for_init)
        self.assertEqual(driver.released, [1])


if __name__ == "__main__":
    unittest.main()
