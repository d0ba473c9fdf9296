"""Sensor Fusion Examples.

This package demonstrates absolute-position sensor fusion:
- Origin bootstrap for global (GNSS) and sensor-fixed (motion capture) frames
- Initial-reading calibration from a static window
- Lever-arm measurement model corrections of a shared EKF
- Innovation monitoring (NIS)
"""

__all__ = []
