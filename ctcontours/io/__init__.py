"""
Rendering and export of results.

Provides:
- Contour overlay rendering on windowed images
- Class-highlight rasters
- Image and CSV export through pluggable artifact sinks
"""

from .overlay import (
    RenderFailure,
    RenderedRaster,
    StrokeStyle,
    blank_raster,
    colorize_class_map,
    decode_raster,
    draw_image_with_contours,
    encode_image,
    grayscale_raster,
    stroke_polygons,
)

from .export import (
    ArtifactSink,
    DirectorySink,
    MemorySink,
    class_distribution_filename,
    contours_csv_filename,
    contours_to_csv,
    export_class_distribution_json,
    export_contours_csv,
    export_raster,
    result_image_filename,
    source_basename,
)

__all__ = [
    # Rendering
    'RenderFailure',
    'RenderedRaster',
    'StrokeStyle',
    'blank_raster',
    'colorize_class_map',
    'decode_raster',
    'draw_image_with_contours',
    'encode_image',
    'grayscale_raster',
    'stroke_polygons',
    # Export
    'ArtifactSink',
    'DirectorySink',
    'MemorySink',
    'class_distribution_filename',
    'contours_csv_filename',
    'contours_to_csv',
    'export_class_distribution_json',
    'export_contours_csv',
    'export_raster',
    'result_image_filename',
    'source_basename',
]
