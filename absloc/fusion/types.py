"""Data types for absolute-localization fusion.

This module defines the raw driver sample and the Gaussian quantities that
flow through one fusion step:

    RawSample  -> Measurement  (origin-corrected reading)
    pose       -> Expectation  (predicted reading)
    Measurement - Expectation -> Innovation

All Gaussian types carry a mean ``x`` (n,) and covariance ``P`` (n x n).
"""

import numbers
from dataclasses import dataclass
from typing import Optional

import numpy as np

from absloc.fusion.tuning import innovation, innovation_covariance


@dataclass(frozen=True)
class RawSample:
    """Timestamped reading produced by a sensor driver.

    Attributes:
        id: Driver-side identifier of the reading.
        data: Channel values, shape (n,).
        var: Optional per-channel uncertainty, shape (n,). Present only when
             the driver reports as many variance channels as data channels.
             The driver fills these with standard deviations; measurement
             covariance squares them.
        t: Timestamp in seconds.

    Example:
        >>> sample = RawSample(
        ...     id=12,
        ...     data=np.array([4.0, 5.0, 6.0]),
        ...     var=np.array([0.5, 0.5, 1.0]),
        ...     t=1.2,
        ... )
    """

    id: int
    data: np.ndarray
    var: Optional[np.ndarray] = None
    t: float = 0.0

    def __post_init__(self) -> None:
        """Validate the sample structure."""
        data = np.asarray(self.data, dtype=float)
        if data.ndim != 1:
            raise ValueError(f"Sample data must be 1D array, got shape {data.shape}")
        object.__setattr__(self, "data", data)

        if self.var is not None:
            var = np.asarray(self.var, dtype=float)
            if var.shape != data.shape:
                raise ValueError(
                    f"Sample variance shape {var.shape} must match data shape {data.shape}"
                )
            object.__setattr__(self, "var", var)

        if not isinstance(self.t, numbers.Real):
            raise TypeError(f"Timestamp must be numeric, got {type(self.t)}")
        if self.t < 0:
            raise ValueError(f"Timestamp must be non-negative, got {self.t}")
        object.__setattr__(self, "t", float(self.t))

    @property
    def size(self) -> int:
        """Number of data channels."""
        return len(self.data)

    @property
    def has_var(self) -> bool:
        return self.var is not None


def _validate_gaussian(name: str, x: np.ndarray, P: np.ndarray) -> None:
    if x.ndim != 1:
        raise ValueError(f"{name} mean must be 1D array, got shape {x.shape}")
    n = len(x)
    if P.shape != (n, n):
        raise ValueError(
            f"{name} covariance shape {P.shape} must match mean dimension ({n}, {n})"
        )
    if not np.allclose(P, P.T):
        raise ValueError(f"{name} covariance must be symmetric")


@dataclass(frozen=True)
class Expectation:
    """Predicted sensor reading given the current pose estimate.

    Attributes:
        x: Expected reading, shape (n,).
        P: Covariance of the expected reading, shape (n, n).
    """

    x: np.ndarray
    P: np.ndarray

    def __post_init__(self) -> None:
        object.__setattr__(self, "x", np.asarray(self.x, dtype=float))
        object.__setattr__(self, "P", np.asarray(self.P, dtype=float))
        _validate_gaussian("Expectation", self.x, self.P)

    @property
    def size(self) -> int:
        return len(self.x)


@dataclass(frozen=True)
class Measurement:
    """Actual (origin-corrected) sensor reading.

    Attributes:
        x: Measured value, shape (n,).
        P: Measurement noise covariance, shape (n, n).
    """

    x: np.ndarray
    P: np.ndarray

    def __post_init__(self) -> None:
        object.__setattr__(self, "x", np.asarray(self.x, dtype=float))
        object.__setattr__(self, "P", np.asarray(self.P, dtype=float))
        _validate_gaussian("Measurement", self.x, self.P)

        eigvals = np.linalg.eigvalsh(self.P)
        if np.any(eigvals < -1e-10):
            raise ValueError(
                f"Measurement covariance must be positive semi-definite, "
                f"got eigenvalues {eigvals}"
            )

    @property
    def size(self) -> int:
        return len(self.x)


@dataclass(frozen=True)
class Innovation:
    """Residual between a measurement and its expectation.

    Measurement and expectation are assumed independent, so the covariances
    add:

        x = meas.x - exp.x
        P = meas.P + exp.P

    Attributes:
        x: Innovation mean, shape (n,).
        P: Innovation covariance, shape (n, n).
    """

    x: np.ndarray
    P: np.ndarray

    def __post_init__(self) -> None:
        object.__setattr__(self, "x", np.asarray(self.x, dtype=float))
        object.__setattr__(self, "P", np.asarray(self.P, dtype=float))
        _validate_gaussian("Innovation", self.x, self.P)

    @classmethod
    def from_pair(cls, measurement: Measurement, expectation: Expectation) -> "Innovation":
        """Build the innovation of a measurement against its expectation.

        Raises:
            ValueError: If the two have different dimensions.
        """
        if measurement.size != expectation.size:
            raise ValueError(
                f"Measurement size {measurement.size} does not match "
                f"expectation size {expectation.size}"
            )
        return cls(
            x=innovation(measurement.x, expectation.x),
            P=innovation_covariance(measurement.P, expectation.P),
        )

    @property
    def size(self) -> int:
        return len(self.x)
