"""
Exception types raised by the absolute-localization fusion pipeline.

Every failure here is fatal to the reading being processed. Nothing is
retried internally and no position or covariance is ever replaced by a
default value; the caller decides whether to try again with a later reading.
"""


class AbslocError(Exception):
    """Base class for absolute-localization fusion errors."""


class UnsupportedMeasurementDimension(AbslocError, NotImplementedError):
    """Reading dimensionality has no measurement model (only 3 is supported)."""

    def __init__(self, size: int):
        self.size = size
        super().__init__(
            f"Absolute localization reading size {size} not supported "
            f"(only 3-channel position readings are implemented)"
        )


class MissingVarianceModel(AbslocError, NotImplementedError):
    """Driver reports no per-channel variance and no constant model exists."""


class InsufficientCalibrationData(AbslocError, ValueError):
    """Calibration window is empty or cannot produce a finite estimate."""


class FilterCorrectionError(AbslocError, ValueError):
    """Filter correction rejected because an invariant would be violated."""
