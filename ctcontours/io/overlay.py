"""
Contour overlay rendering.

Turns a display-windowed intensity image (values 0-255) into an RGBA raster
and strokes closed contour polygons on top of it. Every call builds a fresh
raster: there is no drawing context that survives between calls.

    base = grayscale_raster(image)                  # or blank_raster(w, h)
    result = stroke_polygons(base, polygons, style) # new raster, base untouched

``draw_image_with_contours`` chains the two steps and is what callers
normally use. Rasters are encoded with Pillow for display and export.

Usage:
    from ctcontours.io.overlay import draw_image_with_contours

    raster = draw_image_with_contours(windowed_image, contours)
    png_bytes = raster.to_png_bytes()
"""

import base64
import binascii
from dataclasses import dataclass, field
from io import BytesIO
from typing import Iterable, NamedTuple, Optional, Sequence, Tuple

import cv2
import numpy as np
from PIL import Image, UnidentifiedImageError

from ctcontours.classification.tissue_classifier import (
    CLASSIFICATION_CLIP_MAX,
    CLASSIFICATION_CLIP_MIN,
    TISSUE_CLASSES,
    classify_pixels,
)
from ctcontours.preprocessing.windowing import (
    DEFAULT_WINDOW_MAX,
    DEFAULT_WINDOW_MIN,
    apply_windowing,
)
from ctcontours.processing.contours import to_contour_set
from ctcontours.processing.image import ImageDescriptor
from ctcontours.utils.logging import get_logger

logger = get_logger(__name__)


DEFAULT_CONTOUR_COLOR = (255, 0, 0)
DEFAULT_CONTOUR_THICKNESS = 2
DEFAULT_BACKGROUND_COLOR = (0, 0, 0)
OPAQUE = 255

# Polygons with a vertex beyond this are clipped edge by edge before drawing
DRAW_COORDINATE_LIMIT = 1 << 20

_IMAGE_FORMATS = ('PNG', 'JPEG')


class RenderFailure(RuntimeError):
    """Raised when the raster surface cannot be allocated or drawn on.

    Recoverable: callers may retry, keep the previous raster or show a
    placeholder.
    """
    pass


class StrokeStyle(NamedTuple):
    """Shared stroke for all contours of one render call."""
    color: Tuple[int, int, int] = DEFAULT_CONTOUR_COLOR
    thickness: int = DEFAULT_CONTOUR_THICKNESS

    @classmethod
    def from_config(cls, config: Optional[dict] = None) -> "StrokeStyle":
        config = config or {}
        return cls(
            tuple(config.get("contour_color", DEFAULT_CONTOUR_COLOR)),
            int(config.get("contour_thickness", DEFAULT_CONTOUR_THICKNESS)),
        )

    @property
    def rgba(self) -> Tuple[int, int, int, int]:
        r, g, b = (int(c) for c in self.color)
        return (r, g, b, OPAQUE)


@dataclass(frozen=True, eq=False)
class RenderedRaster:
    """
    Immutable RGBA raster.

    Attributes:
        pixels: Read-only ``(height, width, 4)`` uint8 array
    """
    pixels: np.ndarray = field(repr=False)

    def __post_init__(self):
        pixels = np.asarray(self.pixels)
        if pixels.ndim != 3 or pixels.shape[2] != 4 or pixels.dtype != np.uint8:
            raise ValueError(
                f"Raster must be a (height, width, 4) uint8 array, got "
                f"{pixels.shape} {pixels.dtype}"
            )
        if pixels.flags.writeable:
            pixels = pixels.copy()
            pixels.flags.writeable = False
        object.__setattr__(self, "pixels", pixels)

    @property
    def width(self) -> int:
        return self.pixels.shape[1]

    @property
    def height(self) -> int:
        return self.pixels.shape[0]

    def encode(self, format: str = 'PNG', quality: int = 95) -> bytes:
        """Encode as PNG or JPEG bytes."""
        return encode_image(self.pixels, format=format, quality=quality)

    def to_png_bytes(self) -> bytes:
        return self.encode('PNG')


def encode_image(img_array, format: str = 'PNG', quality: int = 95) -> bytes:
    """
    Encode a numpy array or PIL image to PNG or JPEG bytes.

    JPEG has no alpha channel, so RGBA input is flattened to RGB first.
    """
    format = format.upper()
    if format == 'JPG':
        format = 'JPEG'
    if format not in _IMAGE_FORMATS:
        raise ValueError(f"Unsupported image format: {format}")

    pil_img = Image.fromarray(img_array) if isinstance(img_array, np.ndarray) else img_array

    buffer = BytesIO()
    if format == 'JPEG':
        pil_img.convert('RGB').save(buffer, format='JPEG', quality=quality)
    else:
        pil_img.save(buffer, format='PNG', optimize=True)
    return buffer.getvalue()


def decode_raster(data) -> RenderedRaster:
    """
    Decode an encoded image (bytes or base64 text, optionally a data URL)
    into a RenderedRaster.

    Raises:
        ValueError: If the payload is not a decodable image
    """
    if isinstance(data, str):
        if data.startswith("data:"):
            data = data.split(",", 1)[-1]
        try:
            data = base64.b64decode("".join(data.split()), validate=True)
        except binascii.Error as e:
            raise ValueError("Image payload is not valid base64") from e

    try:
        with Image.open(BytesIO(data)) as img:
            pixels = np.array(img.convert('RGBA'), dtype=np.uint8)
    except (UnidentifiedImageError, OSError) as e:
        raise ValueError("Image payload could not be decoded") from e
    return RenderedRaster(pixels)


def _acquire_surface(width: int, height: int, fill: Sequence[int]) -> np.ndarray:
    """Allocate a writable ``(height, width, 4)`` canvas filled with ``fill``."""
    try:
        surface = np.empty((height, width, 4), dtype=np.uint8)
    except (MemoryError, ValueError) as e:
        raise RenderFailure(f"Could not allocate {width}x{height} raster") from e
    surface[...] = fill
    return surface


def to_display_bytes(values) -> np.ndarray:
    """Round and clamp windowed samples to uint8 (NaN becomes 0)."""
    arr = np.nan_to_num(np.asarray(values, dtype=np.float64), nan=0.0)
    return np.clip(np.rint(arr), 0, 255).astype(np.uint8)


def grayscale_raster(image: ImageDescriptor) -> RenderedRaster:
    """
    Paint a windowed image as opaque gray: R = G = B = sample, A = 255.

    Args:
        image: ImageDescriptor whose samples are already in [0, 255]

    Raises:
        RenderFailure: If the surface cannot be allocated
    """
    surface = _acquire_surface(image.width, image.height, (0, 0, 0, OPAQUE))
    gray = to_display_bytes(image.as_grid())
    surface[:, :, 0] = gray
    surface[:, :, 1] = gray
    surface[:, :, 2] = gray
    return RenderedRaster(surface)


def blank_raster(
    width: int,
    height: int,
    background: Sequence[int] = DEFAULT_BACKGROUND_COLOR,
) -> RenderedRaster:
    """Opaque raster of a single background color."""
    r, g, b = (int(c) for c in background)
    return RenderedRaster(_acquire_surface(width, height, (r, g, b, OPAQUE)))


def _cv2_polygon(points: np.ndarray) -> np.ndarray:
    return np.ascontiguousarray(points, dtype=np.int32).reshape(-1, 1, 2)


def _clipped_segments(points: np.ndarray, width: int, height: int, margin: int):
    """Yield the closed polygon's edges clipped to the canvas grown by ``margin``."""
    rect = (-margin, -margin, width + 2 * margin, height + 2 * margin)
    closed = np.vstack([points, points[:1]])
    for start, end in zip(closed[:-1], closed[1:]):
        visible, pt1, pt2 = cv2.clipLine(
            rect, (int(start[0]), int(start[1])), (int(end[0]), int(end[1])),
        )
        if visible:
            yield pt1, pt2


def stroke_polygons(
    base: RenderedRaster,
    polygons: Iterable[np.ndarray],
    style: StrokeStyle = StrokeStyle(),
) -> RenderedRaster:
    """
    Stroke closed polygons on top of ``base`` and return a new raster.

    Each polygon visits its points in order and returns to the first one.
    Strokes are opaque and drawn in order over the existing content
    (source-over); parts outside the canvas are clipped. Empty polygons
    are skipped.

    Args:
        base: Raster to draw over (not modified)
        polygons: Iterable of ``(N, 2)`` integer [x, y] arrays
        style: Stroke color and thickness

    Returns:
        New RenderedRaster

    Raises:
        RenderFailure: If the canvas cannot be allocated or drawn on
    """
    try:
        canvas = base.pixels.copy()
    except MemoryError as e:
        raise RenderFailure("Could not copy base raster") from e

    color = style.rgba
    thickness = int(style.thickness)
    drawn = 0
    for points in polygons:
        if len(points) == 0:
            continue
        try:
            if np.abs(points).max() <= DRAW_COORDINATE_LIMIT:
                cv2.polylines(
                    canvas, [_cv2_polygon(points)], isClosed=True,
                    color=color, thickness=thickness,
                )
            else:
                # Far vertices overflow cv2's fixed-point math; clip each edge first
                for pt1, pt2 in _clipped_segments(points, base.width, base.height, thickness + 1):
                    cv2.line(canvas, pt1, pt2, color=color, thickness=thickness)
        except cv2.error as e:

            raise RenderFailure(f"Could not stroke contour: {e}") from e
        drawn += 1

    logger.debug("Stroked %d polygons on %dx%d raster", drawn, base.width, base.height)
    return RenderedRaster(canvas)


def draw_image_with_contours(
    image: ImageDescriptor,
    contours=None,
    draw_on_original: bool = True,
    style: Optional[StrokeStyle] = None,
    background: Sequence[int] = DEFAULT_BACKGROUND_COLOR,
) -> RenderedRaster:
    """
    Render a windowed image with optional contour overlay.

    Args:
        image: ImageDescriptor whose samples are already in [0, 255]
        contours: ContourSet or mapping of name -> [[x, y], ...]; None for
            no overlay. Zero-point contours are skipped.
        draw_on_original: Paint the grayscale image as base layer; when False
            the contours are drawn on a plain ``background``
        style: Stroke style (default: red, 2 px)
        background: RGB fill when ``draw_on_original`` is False

    Returns:
        New RenderedRaster

    Raises:
        RenderFailure: If the raster surface is unavailable
        ContourValidationError: If ``contours`` is malformed
    """
    contour_set = to_contour_set(contours)

    if draw_on_original:
        base = grayscale_raster(image)
    else:
        base = blank_raster(image.width, image.height, background)

    if contour_set is None:
        return base

    polygons = [points for _, points in contour_set.drawable()]
    return stroke_polygons(base, polygons, style or StrokeStyle())


def colorize_class_map(
    buffer,
    width: int,
    height: int,
    class_colors: Optional[dict] = None,
    window: Tuple[float, float] = (DEFAULT_WINDOW_MIN, DEFAULT_WINDOW_MAX),
    clip_range: Tuple[float, float] = (CLASSIFICATION_CLIP_MIN, CLASSIFICATION_CLIP_MAX),
) -> RenderedRaster:
    """
    Paint each pixel of a raw buffer with the color of its tissue class.

    Pixels in no class keep their windowed grayscale value.

    Args:
        buffer: Raw (not windowed) intensity samples, ``width * height`` long
        width: Image width
        height: Image height
        class_colors: Mapping of class name -> [R, G, B]; classes without a
            color stay grayscale (default: config palette)
        window: Display window for the grayscale fallback
        clip_range: Classification clip range

    Returns:
        New RenderedRaster

    Raises:
        ImageShapeError: If the buffer does not match the dimensions
        InvalidRangeError: If a range is degenerate
        RenderFailure: If the surface cannot be allocated
    """
    if class_colors is None:
        from ctcontours.utils.config import DEFAULT_CONFIG
        class_colors = DEFAULT_CONFIG["class_colors"]

    raw = ImageDescriptor(buffer, width, height)
    windowed = raw.with_pixels(apply_windowing(raw.pixel_data, *window))
    labels = classify_pixels(raw.as_grid(), *clip_range)

    surface = grayscale_raster(windowed).pixels.copy()
    for index, tissue_class in enumerate(TISSUE_CLASSES):
        color = class_colors.get(tissue_class.name)
        if color is None:
            continue
        r, g, b = (int(c) for c in color)
        surface[labels == index] = (r, g, b, OPAQUE)

    return RenderedRaster(surface)
