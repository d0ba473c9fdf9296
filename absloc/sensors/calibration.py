"""
Initial-reading calibration for absolute-position sensors.

When an absolute sensor has been streaming for a while before fusion
starts, the driver already holds a window of redundant readings of a
(nearly) static agent. Instead of trusting the single reading that happens
to be processed first, its value is replaced by an estimate built from the
whole window:

    1. min_var[a] = min over the window of the reported uncertainty on axis a
       (starting from a ceiling of 1e3)
    2. inliers on axis a: readings with var[a] < 2 * min_var[a]
    3. mean[a] = Σ value[a] * var[a] / Σ var[a]   over the inliers
    4. calibrated reading = (mean, min_var)

Step 3 weights each inlier by its own reported uncertainty, not by its
inverse. That is the established behaviour of this estimator and is kept
as is.

Axes are processed in raw channel order; channel remapping happens later,
in the measurement model.
"""

from typing import Sequence

import numpy as np

from absloc.errors import (
    InsufficientCalibrationData,
    MissingVarianceModel,
    UnsupportedMeasurementDimension,
)
from absloc.fusion.types import RawSample
from absloc.sensors.hardware import HardwareSensor

VARIANCE_CEILING = 1e3
INLIER_FACTOR = 2.0
N_AXES = 3


def calibrate_from_samples(window: Sequence[RawSample]) -> RawSample:
    """
    Calibrate one reading from an ordered window of raw samples.

    The last sample of the window is the reading being replaced; its id and
    timestamp are carried over.

    Args:
        window: Raw samples, oldest first, each with 3 data channels and
            per-channel uncertainty.

    Returns:
        RawSample with the per-axis weighted mean as data and the per-axis
        minimum uncertainty as var.

    Raises:
        InsufficientCalibrationData: If the window is empty or an axis ends
            up with a zero weight sum.
        MissingVarianceModel: If a sample carries no uncertainty.
        UnsupportedMeasurementDimension: If a sample does not have 3 channels.

    Example:
        >>> window = [
        ...     RawSample(id=0, data=[10.0] * 3, var=[1.0] * 3),
        ...     RawSample(id=1, data=[11.0] * 3, var=[1.5] * 3),
        ...     RawSample(id=2, data=[100.0] * 3, var=[5.0] * 3),
        ... ]
        >>> calibrate_from_samples(window).data
        array([10.6, 10.6, 10.6])
    """
    if len(window) == 0:
        raise InsufficientCalibrationData("Calibration window is empty")

    for sample in window:
        if sample.size != N_AXES:
            raise UnsupportedMeasurementDimension(sample.size)
        if sample.var is None:
            raise MissingVarianceModel(
                f"Reading {sample.id} carries no variance; calibration needs one per axis"
            )

    values = np.array([sample.data for sample in window])
    variances = np.array([sample.var for sample in window])

    # First pass: best observed precision per axis
    min_var = np.minimum(variances.min(axis=0), VARIANCE_CEILING)

    # Second pass: weighted average over the inlier band [min, 2*min)
    inliers = variances < INLIER_FACTOR * min_var
    weights = np.where(inliers, variances, 0.0)
    sum_coeffs = weights.sum(axis=0)

    if np.any(sum_coeffs <= 0.0):
        degenerate = np.flatnonzero(sum_coeffs <= 0.0).tolist()
        raise InsufficientCalibrationData(
            f"No usable weight on axes {degenerate} over {len(window)} readings"
        )

    average = (values * weights).sum(axis=0) / sum_coeffs

    target = window[-1]
    return RawSample(id=target.id, data=average, var=min_var, t=target.t)


def calibrate_initial_reading(driver: HardwareSensor, target_id: int) -> RawSample:
    """
    Calibrate the reading ``target_id`` from the driver's available window.

    Every available reading up to and including ``target_id`` is observed;
    nothing is consumed.

    Args:
        driver: Raw reading source.
        target_id: Identifier of the reading being processed.

    Returns:
        Calibrated RawSample standing in for ``target_id``.

    Raises:
        InsufficientCalibrationData: If ``target_id`` is not available or the
            window is degenerate.
    """
    available = list(driver.enumerate_available())
    if target_id not in available:
        raise InsufficientCalibrationData(
            f"Reading {target_id} is not in the available window {available}"
        )

    window_ids = available[: available.index(target_id) + 1]
    window = [driver.observe(id) for id in window_ids]
    return calibrate_from_samples(window)
