"""
Tests for the results view.

Tests toggles, memoized rendering and downloads in
ctcontours/pipeline/results.py.
"""

import json
import logging

import numpy as np
import pytest

from ctcontours.io.overlay import RenderFailure, draw_image_with_contours
from ctcontours.pipeline import results as results_module
from ctcontours.pipeline.results import ResultsView
from ctcontours.preprocessing.windowing import InvalidRangeError
from ctcontours.processing.image import ImageDescriptor
from ctcontours.utils.config import load_config
from ctcontours.utils.schemas import SegmentationResult


@pytest.fixture
def raw_ct():
    """Raw 20x20 slice at 500 (windowed to 127.5, displayed as 128)."""
    return ImageDescriptor(np.full(400, 500.0), 20, 20)


@pytest.fixture
def answer(backend_answer):
    return SegmentationResult.model_validate(backend_answer)


@pytest.fixture
def view(raw_ct, answer):
    return ResultsView(raw_ct, answer, source_name="scan_01.dcm")


class TestResultsViewSetup:
    """Tests for ResultsView construction."""

    def test_image_is_windowed(self, view):
        """The display image holds windowed samples."""
        assert np.all(view.image.pixel_data == 127.5)
        assert np.all(view.raw_image.pixel_data == 500.0)

    def test_default_toggles(self, view):
        """Validated contours, drawn on the image, no server raster."""
        assert view.show_all_contours is False
        assert view.draw_on_original is True
        assert view.show_preprocessed is False

    def test_degenerate_window_in_config(self, raw_ct):
        """A degenerate configured window is rejected up front."""
        config = load_config(overrides={"window_min": 10, "window_max": 10})

        with pytest.raises(InvalidRangeError):
            ResultsView(raw_ct, config=config)

    def test_no_result(self, raw_ct):
        """Without an answer there are no contours, just the image."""
        view = ResultsView(raw_ct)

        raster = view.raster()

        assert view.contours is None
        assert np.all(raster.pixels == [128, 128, 128, 255])


class TestContourSelection:
    """Tests for the show_all_contours toggle."""

    def test_validated_by_default(self, view):
        """The validated set is selected by default."""
        assert list(view.contours) == ["square"]

    def test_all_contours(self, view):
        """Turning the toggle on selects every candidate."""
        view.show_all_contours = True

        assert list(view.contours) == ["square", "triangle"]

    def test_set_result_replaces_answer(self, view):
        """A new answer is used and the server raster toggle resets."""
        view.show_preprocessed = True
        new_answer = SegmentationResult(validated_contours={"other": [[0, 0], [1, 1]]})

        view.set_result(new_answer)

        assert list(view.contours) == ["other"]
        assert view.show_preprocessed is False


class TestRenderedRaster:
    """Tests for memoized rendering."""

    def test_memoized(self, view):
        """Unchanged inputs return the same raster object."""
        assert view.rendered_raster() is view.rendered_raster()

    def test_contour_toggle_rerenders(self, view):
        """Changing the contour set renders again."""
        validated = view.rendered_raster()

        view.show_all_contours = True
        everything = view.rendered_raster()

        assert everything is not validated
        # The triangle only exists in the all-contours set
        assert everything.pixels[1, 2].tolist() == [255, 0, 0, 255]
        assert validated.pixels[1, 2].tolist() == [128, 128, 128, 255]

    def test_new_answer_rerenders(self, raw_ct):
        """A new answer is drawn even when the old one has been freed."""
        view = ResultsView(raw_ct, SegmentationResult(validated_contours={"a": [[2, 2], [5, 2], [5, 5]]}))
        first = view.rendered_raster()
        assert first.pixels[2, 3].tolist() == [255, 0, 0, 255]

        view.set_result(SegmentationResult(validated_contours={"b": [[10, 10], [15, 10], [15, 15]]}))
        second = view.rendered_raster()

        assert second is not first
        assert second.pixels[2, 3].tolist() == [128, 128, 128, 255]
        assert second.pixels[10, 12].tolist() == [255, 0, 0, 255]
        expected = draw_image_with_contours(view.image, view.contours, style=view.style)
        np.testing.assert_array_equal(second.pixels, expected.pixels)

    def test_repeated_answers_never_stale(self, raw_ct):
        """Every replacement answer gets its own render."""
        view = ResultsView(raw_ct)

        for i in range(20):
            offset = i % 10
            view.set_result(SegmentationResult(
                validated_contours={"c": [[offset, 0], [offset + 5, 0], [offset + 5, 5]]},
            ))
            raster = view.rendered_raster()

            expected = draw_image_with_contours(view.image, view.contours, style=view.style)
            np.testing.assert_array_equal(raster.pixels, expected.pixels)

    def test_draw_on_original_toggle(self, view):
        """Turning the image off draws on black."""
        view.draw_on_original = False

        raster = view.rendered_raster()

        assert raster.pixels[10, 10].tolist() == [0, 0, 0, 255]
        assert raster.pixels[5, 10].tolist() == [255, 0, 0, 255]

    def test_toggle_back_matches_first_render(self, view):
        """Toggling off and on gives the same pixels."""
        first = view.rendered_raster()
        view.draw_on_original = False
        view.rendered_raster()
        view.draw_on_original = True

        again = view.rendered_raster()

        np.testing.assert_array_equal(first.pixels, again.pixels)

    def test_render_failure_keeps_previous(self, view, monkeypatch, caplog):
        """A failed render returns the previous raster."""
        first = view.rendered_raster()

        def failing_render(*args, **kwargs):
            raise RenderFailure("surface lost")

        monkeypatch.setattr(results_module, "draw_image_with_contours", failing_render)
        view.show_all_contours = True

        with caplog.at_level(logging.WARNING):
            kept = view.rendered_raster()

        assert kept is first
        assert "surface lost" in caplog.text

    def test_render_failure_without_previous(self, view, monkeypatch):
        """A failed first render gives no raster."""
        def failing_render(*args, **kwargs):
            raise RenderFailure("surface lost")

        monkeypatch.setattr(results_module, "draw_image_with_contours", failing_render)

        assert view.rendered_raster() is None


class TestPreprocessedRaster:
    """Tests for the show_preprocessed toggle."""

    def test_shows_server_raster(self, view):
        """With the toggle on, the server image is shown."""
        view.show_preprocessed = True

        raster = view.raster()

        assert raster.pixels[10, 10].tolist() == [0, 255, 0, 255]

    def test_needs_draw_on_original(self, view):
        """The server image is only offered over the original image."""
        view.show_preprocessed = True
        view.draw_on_original = False

        assert not view.preprocessed_available
        assert view.raster().pixels[10, 10].tolist() == [0, 0, 0, 255]

    def test_absent_server_image(self, raw_ct, square_contours):
        """Without a server image the rendered overlay is shown."""
        view = ResultsView(raw_ct, SegmentationResult(validated_contours=square_contours))
        view.show_preprocessed = True

        assert view.raster() is view.rendered_raster()

    def test_undecodable_server_image(self, raw_ct, square_contours, caplog):
        """A broken server image falls back to the overlay."""
        answer = SegmentationResult(
            validated_contours=square_contours, preprocessed_image="aGVsbG8=",
        )
        view = ResultsView(raw_ct, answer)
        view.show_preprocessed = True

        with caplog.at_level(logging.WARNING):
            raster = view.raster()

        assert raster is view.rendered_raster()
        assert "could not be decoded" in caplog.text


class TestClassStatistics:
    """Tests for class_distribution and highlight_raster."""

    def test_distribution_uses_raw_samples(self, raw_image):
        """Classification runs on the raw image, not the windowed one."""
        view = ResultsView(raw_image)

        distribution = view.class_distribution()

        assert distribution.hyperaerated == 56.25
        assert distribution.bone == 6.25

    def test_distribution_cached(self, view):
        """The distribution is computed once."""
        assert view.class_distribution() is view.class_distribution()

    def test_highlight(self, raw_image):
        """The highlight raster has the image size and class colors."""
        view = ResultsView(raw_image)

        raster = view.highlight_raster()

        assert (raster.width, raster.height) == (4, 4)
        assert raster.pixels[1, 0].tolist() == [255, 255, 255, 255]  # bone


class TestDownloads:
    """Tests for the download actions."""

    def test_download_image(self, view, memory_sink):
        """The overlay is saved as <basename>_result.png."""
        filename = view.download_image(memory_sink)

        assert filename == "scan_01_result.png"
        assert memory_sink.artifacts[filename][:4] == b"\x89PNG"

    def test_download_image_format_from_config(self, raw_ct, memory_sink):
        """image_format picks the extension and encoding."""
        view = ResultsView(raw_ct, config=load_config(overrides={"image_format": "jpeg"}))

        filename = view.download_image(memory_sink)

        assert filename == "image_result.jpeg"
        assert memory_sink.artifacts[filename][:2] == b"\xff\xd8"

    def test_download_contours_follows_toggle(self, view, memory_sink):
        """The CSV holds the currently selected set."""
        view.show_all_contours = True

        filename = view.download_contours(memory_sink)

        assert filename == "contours_scan_01.csv"
        lines = memory_sink.text(filename).splitlines()
        assert lines[0] == "contour_name,x,y"
        assert len(lines) == 1 + 4 + 3
        assert lines[-1] == "triangle,2,3"

    def test_download_contours_without_result(self, raw_ct, memory_sink):
        """No answer, no CSV."""
        ResultsView(raw_ct).download_contours(memory_sink)

        assert len(memory_sink) == 0

    def test_download_class_distribution(self, raw_image, memory_sink):
        """Percentages are saved as <basename>_classes.json."""
        view = ResultsView(raw_image, source_name="lung.dcm")

        filename = view.download_class_distribution(memory_sink)

        assert filename == "lung_classes.json"
        assert json.loads(memory_sink.text(filename))["non_aerated"] == 12.5
