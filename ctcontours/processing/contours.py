"""
Contour sets returned by the segmentation backend.

A contour is an ordered sequence of [x, y] pixel coordinates describing a
closed boundary; a contour set maps unique names to contours. Insertion
order is preserved and is both the draw order and the export row order.

Coordinates are stored as integer pixels (rounded half-to-even when the
backend sends floats). Points outside the image are kept; only the renderer
decides what overlaps the canvas.

Usage:
    from ctcontours.processing.contours import to_contour_set

    contours = to_contour_set({"lesion_1": [[10, 12], [40, 12], [40, 30]]})
    for name, points in contours.items():
        ...
"""

from collections.abc import Mapping
from typing import Iterator, Optional, Tuple

import numpy as np

from ctcontours.utils.logging import get_logger

logger = get_logger(__name__)

# Coordinates beyond this are clamped before the integer conversion
COORDINATE_LIMIT = 2 ** 31 - 1


class ContourValidationError(ValueError):
    """Exception raised for malformed contour points."""
    pass


def to_points_array(points, name: str = "") -> np.ndarray:
    """
    Convert a sequence of [x, y] pairs to a read-only ``(N, 2)`` int64 array.

    Args:
        points: Sequence of [x, y] pairs (lists, tuples or an (N, 2) array)
        name: Contour name for error messages

    Returns:
        ``(N, 2)`` int64 array, ``(0, 2)`` for an empty contour

    Raises:
        ContourValidationError: If a point is not a pair of finite numbers
    """
    ctx = f" in contour '{name}'" if name else ""

    if points is None:
        raise ContourValidationError(f"Contour points missing{ctx}")

    try:
        arr = np.asarray(points, dtype=np.float64)
    except (TypeError, ValueError) as e:
        raise ContourValidationError(f"Contour points must be numeric [x, y] pairs{ctx}") from e

    if arr.size == 0:
        arr = arr.reshape(0, 2)
    if arr.ndim != 2 or arr.shape[1] != 2:
        raise ContourValidationError(
            f"Contour points must have shape (N, 2){ctx}, got {arr.shape}"
        )
    if not np.all(np.isfinite(arr)):
        raise ContourValidationError(f"Contour points must be finite{ctx}")

    arr = np.clip(arr, -COORDINATE_LIMIT, COORDINATE_LIMIT)
    result = np.rint(arr).astype(np.int64)
    result.flags.writeable = False
    return result


class ContourSet(Mapping):
    """
    Immutable, ordered mapping of contour name -> ``(N, 2)`` point array.

    Equality and hashing are by identity: a new segmentation answer is a new
    set, never a mutation of the old one.
    """

    __slots__ = ("_contours",)

    def __init__(self, contours=None):
        items = contours.items() if isinstance(contours, Mapping) else (contours or ())
        converted = {}
        for name, points in items:
            key = str(name)
            if key in converted:
                raise ContourValidationError(f"Duplicate contour name '{key}'")
            converted[key] = to_points_array(points, key)
        self._contours = converted

    def __getitem__(self, name: str) -> np.ndarray:
        return self._contours[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._contours)

    def __len__(self) -> int:
        return len(self._contours)

    __eq__ = object.__eq__
    __hash__ = object.__hash__

    def __repr__(self):
        summary = ", ".join(f"{name}: {len(pts)} pts" for name, pts in self._contours.items())
        return f"ContourSet({{{summary}}})"

    def drawable(self) -> Iterator[Tuple[str, np.ndarray]]:
        """Yield ``(name, points)`` for contours with at least one point."""
        for name, points in self._contours.items():
            if len(points) == 0:
                logger.debug("Skipping degenerate contour '%s'", name)
                continue
            yield name, points

    @property
    def point_count(self) -> int:
        return total_point_count(self)

    def to_dict(self) -> dict:
        """Plain ``{name: [[x, y], ...]}`` for JSON serialization."""
        return {name: points.tolist() for name, points in self._contours.items()}


def to_contour_set(contours) -> Optional[ContourSet]:
    """
    Coerce backend contours to a ContourSet.

    ``None`` stays ``None`` (no overlay); an existing ContourSet is returned
    as-is; any mapping of name -> [[x, y], ...] is converted.

    Raises:
        ContourValidationError: If any contour is malformed
    """
    if contours is None or isinstance(contours, ContourSet):
        return contours
    if not isinstance(contours, Mapping):
        raise ContourValidationError(
            f"Contours must be a mapping of name -> points, got {type(contours).__name__}"
        )
    return ContourSet(contours)


def total_point_count(contours) -> int:
    """Sum of point counts over all contours (0 for None)."""
    if not contours:
        return 0
    return sum(len(points) for points in contours.values())

