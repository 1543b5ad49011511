"""
Preprocessing of raw intensity buffers.

Includes:
- windowing: clip-and-rescale of raw intensities to the 0-255 display range
"""

from .windowing import (
    DEFAULT_WINDOW_MIN,
    DEFAULT_WINDOW_MAX,
    InvalidRangeError,
    WindowNormalizer,
    apply_windowing,
    validate_window,
)

__all__ = [
    'DEFAULT_WINDOW_MIN',
    'DEFAULT_WINDOW_MAX',
    'InvalidRangeError',
    'WindowNormalizer',
    'apply_windowing',
    'validate_window',
]
