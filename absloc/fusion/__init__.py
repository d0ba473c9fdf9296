"""Measurement types and covariance helpers for absolute-position fusion.

This package provides:
- Raw driver samples and the Gaussian expectation/measurement/innovation types
- J P Jᵀ covariance propagation
- Innovation and innovation covariance helpers
- Normalized innovation squared (NIS) for consistency monitoring
"""

from absloc.fusion.tuning import (
    innovation,
    innovation_covariance,
    normalized_innovation_squared,
    prod_jpjt,
)
from absloc.fusion.types import Expectation, Innovation, Measurement, RawSample

__all__ = [
    # Types
    "RawSample",
    "Expectation",
    "Measurement",
    "Innovation",
    # Covariance helpers
    "prod_jpjt",
    "innovation",
    "innovation_covariance",
    "normalized_innovation_squared",
]
