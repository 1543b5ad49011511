"""
Post-processing and visualization of CT segmentation results.

Converts raw intensity samples into a displayable raster, overlays the
contours returned by a segmentation backend, reports tissue class
percentages and exports the results as an image and a contour CSV.

Usage:
    from ctcontours.preprocessing import apply_windowing
    from ctcontours.classification import compute_class_distribution
    from ctcontours.io import draw_image_with_contours, export_contours_csv
    from ctcontours.pipeline import ResultsView
    from ctcontours.utils import get_logger, setup_logging, load_config
"""

__version__ = "0.1.0"

# Individual modules should be imported explicitly:
#   from ctcontours.io.overlay import draw_image_with_contours
#   from ctcontours.utils.logging import get_logger

__all__ = [
    "classification",
    "io",
    "pipeline",
    "preprocessing",
    "processing",
    "utils",
]
