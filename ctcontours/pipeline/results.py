"""
Results view: what the display shows for one loaded image and one
segmentation answer, recomputed as display toggles change.

Handles:
- Windowing the raw image once
- Picking validated or all candidate contours
- Rendering with or without the original image underneath
- Showing the server-side preprocessed raster instead, when asked
- Class statistics and the class-highlight raster
- Downloading the image and the contour CSV

Usage:
    from ctcontours.pipeline import ResultsView

    view = ResultsView(raw_image, result, source_name="scan_01.dcm")
    view.show_all_contours = True
    raster = view.raster()
    view.download_image(DirectorySink("out"))
    view.download_contours(DirectorySink("out"))
"""

from typing import Any, Dict, Optional, Tuple

from ctcontours.classification.tissue_classifier import ClassDistribution, TissueClassifier
from ctcontours.io.export import (
    ArtifactSink,
    class_distribution_filename,
    contours_csv_filename,
    export_class_distribution_json,
    export_contours_csv,
    export_raster,
    result_image_filename,
)
from ctcontours.io.overlay import (
    RenderFailure,
    RenderedRaster,
    StrokeStyle,
    colorize_class_map,
    draw_image_with_contours,
)
from ctcontours.preprocessing.windowing import WindowNormalizer
from ctcontours.processing.contours import ContourSet
from ctcontours.processing.image import ImageDescriptor
from ctcontours.utils.config import get_classification_range, get_window_range, load_config
from ctcontours.utils.logging import ProcessingTimer, get_logger
from ctcontours.utils.schemas import SegmentationResult

logger = get_logger(__name__)


class ResultsView:
    """
    Display state for one image and (optionally) one segmentation answer.

    The rendered raster is memoized on ``(image identity, contour set
    identity, draw_on_original)``; only the latest raster is kept. If
    rendering fails the previous raster is kept and returned.
    """

    def __init__(
        self,
        image: ImageDescriptor,
        result: Optional[SegmentationResult] = None,
        source_name: str = "image",
        config: Optional[Dict[str, Any]] = None,
    ):
        """
        Initialize the view.

        Args:
            image: Raw (not windowed) image
            result: Segmentation answer, if one has arrived
            source_name: Name of the loaded file, used for download names
            config: Config dict (defaults from load_config())
        """
        self.config = config if config is not None else load_config()
        self.source_name = source_name

        self.normalizer = WindowNormalizer(*get_window_range(self.config))
        self.classifier = TissueClassifier(*get_classification_range(self.config))
        self.style = StrokeStyle.from_config(self.config)
        self.background = tuple(self.config.get("background_color", (0, 0, 0)))
        self.image_format = str(self.config.get("image_format", "png")).lower()

        self.raw_image = image
        self.image = image.with_pixels(self.normalizer(image.pixel_data))
        self.result = result

        # Display toggles
        self.show_all_contours = False
        self.draw_on_original = True
        self.show_preprocessed = False

        self._render_key: Optional[Tuple[ImageDescriptor, Optional[ContourSet], bool]] = None
        self._raster: Optional[RenderedRaster] = None
        self._distribution: Optional[ClassDistribution] = None

    def set_result(self, result: Optional[SegmentationResult]) -> None:
        """Replace the segmentation answer (a new answer, never a mutation)."""
        self.result = result
        self.show_preprocessed = False

    @property
    def contours(self) -> Optional[ContourSet]:
        """The contour set selected by ``show_all_contours``."""
        if self.result is None:
            return None
        return self.result.select_contours(self.show_all_contours)

    @property
    def preprocessed_available(self) -> bool:
        return (
            self.result is not None
            and self.result.has_preprocessed_image
            and self.draw_on_original
        )

    def _same_inputs(self, key) -> bool:
        # Identity of the stored objects; the key keeps them alive so ids are not reused
        if self._render_key is None:
            return False
        return all(old is new for old, new in zip(self._render_key, key))

    def rendered_raster(self) -> Optional[RenderedRaster]:
        """
        The image with the selected contours, rendered at most once per input.

        Returns:
            RenderedRaster, or the previous raster (possibly None) if the
            render failed
        """
        contours = self.contours
        key = (self.image, contours, bool(self.draw_on_original))
        if self._raster is not None and self._same_inputs(key):
            return self._raster

        try:
            with ProcessingTimer(logger, "render overlay"):
                raster = draw_image_with_contours(
                    self.image,
                    contours,
                    draw_on_original=self.draw_on_original,
                    style=self.style,
                    background=self.background,
                )
        except RenderFailure as e:
            logger.warning("Render failed, keeping previous raster: %s", e)
            return self._raster

        self._render_key = key
        self._raster = raster
        return raster

    def raster(self) -> Optional[RenderedRaster]:
        """
        What the result panel shows: the server-side preprocessed raster when
        ``show_preprocessed`` is on and available, else the rendered overlay.
        """
        if self.show_preprocessed and self.preprocessed_available:
            try:
                return self.result.decode_preprocessed()
            except ValueError as e:
                logger.warning("Preprocessed image could not be decoded: %s", e)
        return self.rendered_raster()

    def class_distribution(self) -> ClassDistribution:
        """Tissue class percentages of the raw image (computed once)."""
        if self._distribution is None:
            self._distribution = self.classifier.classify(self.raw_image.pixel_data)
        return self._distribution

    def highlight_raster(self) -> Optional[RenderedRaster]:
        """The raw image painted by tissue class, or None if rendering fails."""
        try:
            return colorize_class_map(
                self.raw_image.pixel_data,
                self.raw_image.width,
                self.raw_image.height,
                class_colors=self.config.get("class_colors"),
                window=(self.normalizer.low, self.normalizer.high),
                clip_range=(self.classifier.clip_min, self.classifier.clip_max),
            )
        except RenderFailure as e:
            logger.warning("Highlight render failed: %s", e)
            return None

    def download_image(self, sink: ArtifactSink) -> str:
        """Emit the rendered overlay as ``<basename>_result.<ext>``."""
        filename = result_image_filename(self.source_name, self.image_format)
        export_raster(self.rendered_raster(), filename, sink)
        return filename

    def download_contours(self, sink: ArtifactSink) -> str:
        """Emit the selected contours as ``contours_<basename>.csv`` (no-op if none)."""
        filename = contours_csv_filename(self.source_name)
        export_contours_csv(self.contours, filename, sink)
        return filename

    def download_class_distribution(self, sink: ArtifactSink) -> str:
        """Emit the class distribution as ``<basename>_classes.json``."""
        filename = class_distribution_filename(self.source_name)
        export_class_distribution_json(self.class_distribution(), filename, sink)
        return filename
