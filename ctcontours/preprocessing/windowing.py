"""
Intensity windowing for display.

Clips a raw intensity buffer to a window ``[low, high]`` and rescales the
clipped values linearly to ``[0, 255]``:

    out = (clip(v, low, high) - low) / (high - low) * 255

Samples at or below ``low`` become exactly 0, samples at or above ``high``
exactly 255, and the mapping is monotonic non-decreasing. The input is never
modified; every call returns a new read-only float64 array with the input's
shape.
"""

import math
from dataclasses import dataclass

import numpy as np

from ctcontours.utils.logging import get_logger

logger = get_logger(__name__)


DEFAULT_WINDOW_MIN = -1000
DEFAULT_WINDOW_MAX = 2000
DISPLAY_MAX = 255.0


class InvalidRangeError(ValueError):
    """Raised when window bounds are degenerate (low >= high) or not finite."""
    pass


def validate_window(low: float, high: float, what: str = "Window") -> None:
    """
    Check that ``low < high`` and both bounds are finite.

    Raises:
        InvalidRangeError: If the window is degenerate
    """
    try:
        finite = math.isfinite(low) and math.isfinite(high)
    except TypeError as e:
        raise InvalidRangeError(f"{what} bounds must be numbers, got ({low!r}, {high!r})") from e
    if not finite:
        raise InvalidRangeError(f"{what} bounds must be finite, got ({low}, {high})")
    if low >= high:
        raise InvalidRangeError(
            f"{what} low ({low}) must be less than high ({high})"
        )


def apply_windowing(
    buffer,
    low: float = DEFAULT_WINDOW_MIN,
    high: float = DEFAULT_WINDOW_MAX,
) -> np.ndarray:
    """
    Clip ``buffer`` to ``[low, high]`` and rescale to ``[0, 255]``.

    Args:
        buffer: Array-like of raw intensity samples (any shape)
        low: Lower window bound (default: -1000)
        high: Upper window bound (default: 2000)

    Returns:
        New read-only float64 array of the same shape with values in [0, 255]

    Raises:
        InvalidRangeError: If ``low >= high`` or a bound is not finite
    """
    validate_window(low, high)

    data = np.asarray(buffer, dtype=np.float64)
    clipped = np.clip(data, low, high)
    normalized = (clipped - low) / (high - low) * DISPLAY_MAX

    # Pin the extremes so the guarantee holds regardless of rounding
    normalized[clipped <= low] = 0.0
    normalized[clipped >= high] = DISPLAY_MAX

    normalized.flags.writeable = False
    logger.debug("Windowed %d samples to [%s, %s]", normalized.size, low, high)
    return normalized


@dataclass(frozen=True)
class WindowNormalizer:
    """
    A fixed display window, validated once and applied many times.

    Example:
        >>> normalizer = WindowNormalizer(-1000, 2000)
        >>> normalizer([-1000, 500, 2000]).tolist()
        [0.0, 127.5, 255.0]
    """
    low: float = DEFAULT_WINDOW_MIN
    high: float = DEFAULT_WINDOW_MAX

    def __post_init__(self):
        validate_window(self.low, self.high)

    @classmethod
    def from_config(cls, config) -> "WindowNormalizer":
        from ctcontours.utils.config import get_window_range
        low, high = get_window_range(config)
        return cls(low, high)

    def normalize(self, buffer) -> np.ndarray:
        return apply_windowing(buffer, self.low, self.high)

    __call__ = normalize
