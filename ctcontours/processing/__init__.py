"""
Data model for images and contour sets.
"""

from .image import (
    ImageDescriptor,
    ImageShapeError,
)

from .contours import (
    ContourSet,
    ContourValidationError,
    to_contour_set,
    to_points_array,
    total_point_count,
)

__all__ = [
    # Image
    'ImageDescriptor',
    'ImageShapeError',
    # Contours
    'ContourSet',
    'ContourValidationError',
    'to_contour_set',
    'to_points_array',
    'total_point_count',
]
