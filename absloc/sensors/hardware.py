"""
Driver interface for raw absolute-position readings.

A driver buffers timestamped readings and exposes them by identifier:

    configure()            -> DriverConfig(data_size, variance_size)
    observe(id)            -> RawSample   (peek, nothing is consumed)
    fetch(id)              -> RawSample   (consumes id and everything older)
    release(id)            -> None        (frees id and everything older)
    enumerate_available()  -> [id, ...]   (bounded window, oldest first)

ReplayDriver implements the interface over an in-memory sequence of
samples, for replaying recorded datasets and for tests.
"""

from collections import OrderedDict
from dataclasses import dataclass
from typing import Iterable, List, Optional, Protocol, runtime_checkable

from absloc.fusion.types import RawSample


@dataclass(frozen=True)
class DriverConfig:
    """
    Channel layout reported by a driver.

    Attributes:
        data_size: Number of data channels per reading.
        variance_size: Number of uncertainty channels per reading (0 if none).
    """

    data_size: int
    variance_size: int = 0

    def __post_init__(self) -> None:
        if self.data_size <= 0:
            raise ValueError(f"data_size must be positive, got {self.data_size}")
        if self.variance_size < 0:
            raise ValueError(f"variance_size must be non-negative, got {self.variance_size}")

    @property
    def has_var(self) -> bool:
        """Per-channel uncertainty is usable only when every channel has one."""
        return self.variance_size == self.data_size


@runtime_checkable
class HardwareSensor(Protocol):
    """Capability interface of a raw reading source."""

    def configure(self) -> DriverConfig:
        ...

    def observe(self, id: int) -> RawSample:
        ...

    def fetch(self, id: int) -> RawSample:
        ...

    def release(self, id: int) -> None:
        ...

    def enumerate_available(self) -> List[int]:
        ...


class ReplayDriver:
    """
    In-memory driver replaying a sequence of raw samples.

    Samples become available when pushed (or all at once at construction)
    and stay available until fetched or released. At most ``window``
    samples are kept; older ones are dropped as new ones arrive.

    Example:
        >>> driver = ReplayDriver(data_size=3, variance_size=3)
        >>> driver.push(RawSample(id=0, data=[1.0, 2.0, 3.0], var=[0.1, 0.1, 0.2]))
        >>> driver.enumerate_available()
        [0]
        >>> driver.fetch(0).t
        0.0
        >>> driver.enumerate_available()
        []
    """

    def __init__(
        self,
        samples: Optional[Iterable[RawSample]] = None,
        data_size: Optional[int] = None,
        variance_size: Optional[int] = None,
        window: int = 100,
    ):
        """
        Args:
            samples: Initial samples, oldest first.
            data_size: Data channel count. Inferred from the first sample if None.
            variance_size: Uncertainty channel count. Inferred from the first
                sample if None.
            window: Maximum number of buffered samples.

        Raises:
            ValueError: If the layout cannot be determined or window < 1.
        """
        if window < 1:
            raise ValueError(f"window must be >= 1, got {window}")
        self.window = window
        self._buffer: "OrderedDict[int, RawSample]" = OrderedDict()
        self.released: List[int] = []

        samples = list(samples) if samples is not None else []
        if data_size is None:
            if not samples:
                raise ValueError("data_size is required when no samples are given")
            data_size = samples[0].size
        if variance_size is None:
            if samples:
                variance_size = samples[0].size if samples[0].has_var else 0
            else:
                variance_size = 0

        self._config = DriverConfig(data_size=data_size, variance_size=variance_size)

        for sample in samples:
            self.push(sample)

    def configure(self) -> DriverConfig:
        return self._config

    def push(self, sample: RawSample) -> None:
        """Make a new sample available, dropping the oldest beyond the window."""
        if self._buffer and sample.id <= next(reversed(self._buffer)):
            raise ValueError(
                f"Sample ids must increase; got {sample.id} after "
                f"{next(reversed(self._buffer))}"
            )
        self._buffer[sample.id] = sample
        while len(self._buffer) > self.window:
            self._buffer.popitem(last=False)

    def observe(self, id: int) -> RawSample:
        """
        Return a buffered sample without consuming it.

        Raises:
            KeyError: If the sample is not available.
        """
        try:
            return self._buffer[id]
        except KeyError:
            raise KeyError(f"Reading {id} is not available") from None

    def fetch(self, id: int) -> RawSample:
        """
        Return a sample and consume it together with every older sample.

        Raises:
            KeyError: If the sample is not available.
        """
        sample = self.observe(id)
        self._drop_through(id)
        return sample

    def release(self, id: int) -> None:
        """Free a sample and every older one. Unknown ids are a no-op."""
        self._drop_through(id)
        self.released.append(id)

    def enumerate_available(self) -> List[int]:
        return list(self._buffer)

    def _drop_through(self, id: int) -> None:
        for key in [k for k in self._buffer if k <= id]:
            del self._buffer[key]
