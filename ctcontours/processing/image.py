"""
Image descriptor: a flat row-major intensity buffer plus its dimensions.

Convention (same as the rest of the package):
    - Origin: Top-left corner (0, 0)
    - X-axis: Horizontal, increases to the right (columns)
    - Y-axis: Vertical, increases downward (rows)
    - Sample (x, y) lives at flat index ``y * width + x``
"""

from dataclasses import dataclass, field

import numpy as np


class ImageShapeError(ValueError):
    """Raised when pixel data does not match the declared dimensions."""
    pass


def _readonly_flat(pixel_data) -> np.ndarray:
    data = np.array(pixel_data, copy=True).ravel()
    if data.dtype == np.bool_ or not np.issubdtype(data.dtype, np.number):
        raise ImageShapeError(f"Pixel data must be numeric, got dtype {data.dtype}")
    data.flags.writeable = False
    return data


@dataclass(frozen=True, eq=False)
class ImageDescriptor:
    """
    Immutable intensity image.

    ``pixel_data`` is stored as a private read-only copy, so neither the
    caller's buffer nor later transforms can change it. Equality and hashing
    are by identity, which is what result memoization keys on.

    Attributes:
        pixel_data: 1-D numeric array of length ``width * height``
        width: Number of columns (> 0)
        height: Number of rows (> 0)
    """
    pixel_data: np.ndarray = field(repr=False)
    width: int
    height: int

    def __post_init__(self):
        for name in ("width", "height"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, np.integer)):
                raise ImageShapeError(f"{name} must be an integer, got {value!r}")
            if value <= 0:
                raise ImageShapeError(f"{name} must be positive, got {value}")
            object.__setattr__(self, name, int(value))

        data = _readonly_flat(self.pixel_data)
        if data.size != self.width * self.height:
            raise ImageShapeError(
                f"Pixel data has {data.size} samples, expected "
                f"{self.width} x {self.height} = {self.width * self.height}"
            )
        object.__setattr__(self, "pixel_data", data)

    @classmethod
    def from_array(cls, array) -> "ImageDescriptor":
        """Build from a 2-D ``(height, width)`` array."""
        array = np.asarray(array)
        if array.ndim != 2:
            raise ImageShapeError(f"Expected a 2-D array, got shape {array.shape}")
        height, width = array.shape
        return cls(array, width, height)

    @property
    def shape(self):
        """``(height, width)``, numpy order."""
        return (self.height, self.width)

    def as_grid(self) -> np.ndarray:
        """Read-only ``(height, width)`` view of the pixel data."""
        return self.pixel_data.reshape(self.shape)

    def with_pixels(self, pixel_data) -> "ImageDescriptor":
        """New descriptor with the same dimensions and different samples."""
        return ImageDescriptor(pixel_data, self.width, self.height)
