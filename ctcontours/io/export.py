"""
Result export: rendered rasters as images, contour sets as CSV.

Artifacts are handed to an artifact sink (anything with
``emit(data: bytes, filename: str)``), so the exporter never knows how the
host saves files. ``DirectorySink`` writes to disk, ``MemorySink`` keeps
artifacts in memory.

Export is fire-and-forget: a missing raster or an empty contour set is a
no-op, and a sink that fails to write is logged, never raised to the caller.

File naming:
    <source-basename>_result.png     rendered raster
    contours_<source-basename>.csv   contour points
    <source-basename>_classes.json   tissue class distribution

CSV layout (UTF-8, header first, one row per point, contours in set order,
points in contour order):
    contour_name,x,y
    lesion_1,10,12
    lesion_1,40,12
"""

import csv
import io
import re
from pathlib import Path
from typing import Dict, List, Optional, Protocol, Union, runtime_checkable

from ctcontours.io.overlay import RenderedRaster
from ctcontours.processing.contours import to_contour_set, total_point_count
from ctcontours.utils.json_utils import atomic_write_bytes, dumps_json
from ctcontours.utils.logging import get_logger

logger = get_logger(__name__)


CSV_HEADER = ("contour_name", "x", "y")

_EXTENSION_FORMATS = {".png": "PNG", ".jpg": "JPEG", ".jpeg": "JPEG"}
_TRAILING_EXTENSION = re.compile(r"\.[^/.]+$")


@runtime_checkable
class ArtifactSink(Protocol):
    """Anything that can save ``data`` under ``filename``."""

    def emit(self, data: bytes, filename: str) -> None:
        ...


class DirectorySink:
    """Writes artifacts into a directory, atomically."""

    def __init__(self, output_dir: Union[str, Path]):
        self.output_dir = Path(output_dir)

    def emit(self, data: bytes, filename: str) -> Path:
        # Only the final path component is honored
        target = self.output_dir / Path(filename).name
        atomic_write_bytes(data, target)
        logger.info("Wrote %s (%d bytes)", target, len(data))
        return target

    def __repr__(self):
        return f"DirectorySink({str(self.output_dir)!r})"


class MemorySink:
    """Keeps emitted artifacts in memory, in emission order."""

    def __init__(self):
        self.artifacts: Dict[str, bytes] = {}

    def emit(self, data: bytes, filename: str) -> None:
        self.artifacts[filename] = bytes(data)

    @property
    def filenames(self) -> List[str]:
        return list(self.artifacts)

    def text(self, filename: str, encoding: str = "utf-8") -> str:
        return self.artifacts[filename].decode(encoding)

    def __len__(self):
        return len(self.artifacts)

    def __contains__(self, filename):
        return filename in self.artifacts


def source_basename(source_name: Union[str, Path]) -> str:
    """File name without directories and without its last extension."""
    name = Path(str(source_name)).name
    return _TRAILING_EXTENSION.sub("", name)


def result_image_filename(source_name: Union[str, Path], extension: str = "png") -> str:
    return f"{source_basename(source_name)}_result.{extension.lstrip('.')}"


def contours_csv_filename(source_name: Union[str, Path]) -> str:
    return f"contours_{source_basename(source_name)}.csv"


def class_distribution_filename(source_name: Union[str, Path]) -> str:
    return f"{source_basename(source_name)}_classes.json"


def _emit(sink: ArtifactSink, data: bytes, filename: str) -> bool:
    try:
        sink.emit(data, filename)
    except OSError as e:
        logger.error("Failed to write artifact %s: %s", filename, e)
        return False
    return True


def contours_to_csv(contours) -> str:
    """
    Serialize a contour set to CSV text.

    Args:
        contours: ContourSet or mapping of name -> [[x, y], ...]

    Returns:
        CSV text with header ``contour_name,x,y`` and one row per point
    """
    contour_set = to_contour_set(contours)

    out = io.StringIO()
    writer = csv.writer(out, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    if contour_set is not None:
        for name, points in contour_set.items():
            for x, y in points.tolist():
                writer.writerow((name, x, y))
    return out.getvalue()


def export_contours_csv(contours, filename: str, sink: ArtifactSink) -> None:
    """
    Emit a contour set as a CSV artifact.

    No artifact is produced when ``contours`` is None or has no contours.

    Args:
        contours: ContourSet or mapping of name -> [[x, y], ...]
        filename: Artifact name, e.g. ``contours_<basename>.csv``
        sink: Destination
    """
    if not contours:
        logger.debug("No contours to export, skipping %s", filename)
        return

    text = contours_to_csv(contours)
    if _emit(sink, text.encode("utf-8"), filename):
        logger.info(
            "Exported %d contours (%d points) to %s",
            len(contours), total_point_count(to_contour_set(contours)), filename,
        )


def export_raster(
    raster: Optional[RenderedRaster],
    filename: str,
    sink: ArtifactSink,
    format: Optional[str] = None,
) -> None:
    """
    Emit a rendered raster as an image artifact.

    Args:
        raster: Raster to save; None is a no-op
        filename: Artifact name, e.g. ``<basename>_result.png``
        sink: Destination
        format: 'PNG' or 'JPEG' (default: from the filename extension, else PNG)
    """
    if raster is None:
        logger.debug("No raster to export, skipping %s", filename)
        return

    if format is None:
        format = _EXTENSION_FORMATS.get(Path(filename).suffix.lower(), "PNG")

    payload = raster.encode(format)
    if _emit(sink, payload, filename):
        logger.info("Exported %dx%d raster to %s", raster.width, raster.height, filename)


def export_class_distribution_json(distribution, filename: str, sink: ArtifactSink) -> None:
    """Emit a ClassDistribution as a JSON artifact (None is a no-op)."""
    if distribution is None:
        return
    payload = dumps_json(distribution.to_dict()).encode("utf-8")
    if _emit(sink, payload, filename):
        logger.info("Exported class distribution to %s", filename)
