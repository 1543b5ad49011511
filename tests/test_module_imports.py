"""
Test module imports for the ctcontours package.

Verifies that all key modules and functions can be imported and that the
package re-exports stay in sync. These tests serve as a smoke test to catch
import errors, circular dependencies, and missing exports.

This test file can be run with either pytest or unittest:
    pytest tests/test_module_imports.py -v
    python -m unittest tests.test_module_imports -v
"""

import unittest


class TestPackageImports(unittest.TestCase):
    """Test top-level package imports."""

    def test_version(self):
        """Package exposes a version string."""
        import ctcontours
        self.assertIsInstance(ctcontours.__version__, str)

    def test_subpackages(self):
        """Every subpackage listed in __all__ imports."""
        import importlib
        import ctcontours
        for name in ctcontours.__all__:
            module = importlib.import_module(f"ctcontours.{name}")
            self.assertIsNotNone(module)


class TestSubpackageExports(unittest.TestCase):
    """Test that __all__ of each subpackage names real attributes."""

    def _check_all(self, module):
        for name in module.__all__:
            self.assertTrue(hasattr(module, name), f"{module.__name__} missing {name}")

    def test_preprocessing(self):
        from ctcontours import preprocessing
        self._check_all(preprocessing)
        self.assertTrue(callable(preprocessing.apply_windowing))

    def test_classification(self):
        from ctcontours import classification
        self._check_all(classification)
        self.assertTrue(callable(classification.compute_class_distribution))

    def test_processing(self):
        from ctcontours import processing
        self._check_all(processing)
        self.assertTrue(callable(processing.to_contour_set))

    def test_io(self):
        from ctcontours import io
        self._check_all(io)
        self.assertTrue(callable(io.draw_image_with_contours))
        self.assertTrue(callable(io.export_contours_csv))

    def test_utils(self):
        from ctcontours import utils
        self._check_all(utils)

    def test_pipeline(self):
        from ctcontours import pipeline
        self._check_all(pipeline)
        self.assertTrue(callable(pipeline.ResultsView))


class TestErrorHierarchy(unittest.TestCase):
    """Bad-input errors are ValueErrors; render failures are not."""

    def test_value_errors(self):
        from ctcontours.classification.tissue_classifier import EmptyInputError
        from ctcontours.preprocessing.windowing import InvalidRangeError
        from ctcontours.processing.contours import ContourValidationError
        from ctcontours.processing.image import ImageShapeError
        for exc in (InvalidRangeError, EmptyInputError, ContourValidationError, ImageShapeError):
            self.assertTrue(issubclass(exc, ValueError), exc.__name__)

    def test_render_failure(self):
        from ctcontours.io.overlay import RenderFailure
        self.assertTrue(issubclass(RenderFailure, RuntimeError))


class TestCliImports(unittest.TestCase):
    """Test CLI entry points import."""

    def test_cli(self):
        from ctcontours.pipeline.cli import build_parser, main
        self.assertTrue(callable(build_parser))
        self.assertTrue(callable(main))

    def test_main_module(self):
        import ctcontours.__main__  # noqa: F401


if __name__ == '__main__':
    unittest.main()
