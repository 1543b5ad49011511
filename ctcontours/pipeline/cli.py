"""Command-line entry point: render and export results for one image.

Reads a raw intensity array (``.npy``) and, optionally, a saved segmentation
answer (JSON), then writes the overlay image, the contour CSV and the tissue
class distribution into the output directory.

Example:
    ctcontours --pixels scan_01.npy --result scan_01.json \\
        --source-name scan_01.dcm --output-dir out/ --all-contours
"""

import argparse
import sys
from pathlib import Path

import numpy as np
from pydantic import ValidationError

from ctcontours import __version__
from ctcontours.classification.tissue_classifier import EmptyInputError
from ctcontours.io.export import DirectorySink, export_raster, source_basename
from ctcontours.pipeline.results import ResultsView
from ctcontours.preprocessing.windowing import InvalidRangeError
from ctcontours.processing.image import ImageDescriptor, ImageShapeError
from ctcontours.utils.config import ConfigValidationError, load_config, validate_config
from ctcontours.utils.logging import get_logger, log_parameters, setup_logging
from ctcontours.utils.schemas import load_segmentation_result

logger = get_logger(__name__)


def build_parser():
    """Build the argument parser.

    Returns:
        argparse.ArgumentParser with all arguments configured
    """
    parser = argparse.ArgumentParser(
        prog='ctcontours',
        description='Render segmentation contours over a CT slice and export the results',
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    # Inputs
    parser.add_argument('--pixels', type=str, required=True,
                        help='Raw intensity array saved with numpy (.npy), 2-D or flat')
    parser.add_argument('--width', type=int, default=None,
                        help='Image width (required for a flat array)')
    parser.add_argument('--height', type=int, default=None,
                        help='Image height (required for a flat array)')
    parser.add_argument('--result', type=str, default=None,
                        help='Segmentation answer saved as JSON (optional)')
    parser.add_argument('--source-name', type=str, default=None,
                        help='Original file name used for output names (default: --pixels name)')

    # Output
    parser.add_argument('--output-dir', type=str, default=None,
                        help='Output directory (default: config output_dir)')
    parser.add_argument('--config', type=str, default=None,
                        help='Config JSON file or directory holding config.json')

    # Display
    parser.add_argument('--window-min', type=float, default=None,
                        help='Lower display window bound (default: -1000)')
    parser.add_argument('--window-max', type=float, default=None,
                        help='Upper display window bound (default: 2000)')
    parser.add_argument('--all-contours', action='store_true',
                        help='Use all candidate contours instead of the validated ones')
    parser.add_argument('--contours-only', action='store_true',
                        help='Draw contours on a blank background instead of the image')
    parser.add_argument('--highlight', action='store_true',
                        help='Also write the tissue class highlight image')

    parser.add_argument('--verbose', '-v', action='store_true',
                        help='Enable verbose/debug logging')
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')

    return parser


def _config_overrides(args) -> dict:
    overrides = {}
    if args.window_min is not None:
        overrides["window_min"] = args.window_min
    if args.window_max is not None:
        overrides["window_max"] = args.window_max
    if args.output_dir is not None:
        overrides["output_dir"] = args.output_dir
    return overrides


def load_image(pixels_path, width=None, height=None) -> ImageDescriptor:
    """Load a raw intensity array from ``.npy``.

    Raises:
        ImageShapeError: If the array shape and dimensions disagree
    """
    array = np.load(pixels_path, allow_pickle=False)
    if array.ndim == 2 and width is None and height is None:
        return ImageDescriptor.from_array(array)
    if width is None or height is None:
        raise ImageShapeError("--width and --height are required for a flat array")
    return ImageDescriptor(array, width, height)


def run(args) -> int:
    """Run the export for parsed arguments. Returns the exit status."""
    config = load_config(args.config, overrides=_config_overrides(args))
    validate_config(config, raise_on_error=True)
    log_parameters(logger, {
        "window": [config["window_min"], config["window_max"]],
        "classification_clip": [config["classification_clip_min"],
                                config["classification_clip_max"]],
        "contour_color": config["contour_color"],
        "contour_thickness": config["contour_thickness"],
        "output_dir": config["output_dir"],
    }, title="Export settings")

    image = load_image(args.pixels, args.width, args.height)
    result = load_segmentation_result(args.result) if args.result else None
    source_name = args.source_name or Path(args.pixels).name

    view = ResultsView(image, result, source_name=source_name, config=config)
    view.show_all_contours = args.all_contours
    view.draw_on_original = not args.contours_only

    sink = DirectorySink(config["output_dir"])
    view.download_image(sink)
    view.download_contours(sink)
    view.download_class_distribution(sink)

    if args.highlight:
        export_raster(
            view.highlight_raster(),
            f"{source_basename(source_name)}_highlight.png",
            sink,
        )

    for name, percent in view.class_distribution():
        logger.info("  %-17s %6.2f%%", name, percent)

    return 0


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging(level="DEBUG" if args.verbose else "INFO")

    try:
        return run(args)
    except (InvalidRangeError, EmptyInputError, ImageShapeError, ConfigValidationError) as e:
        logger.error("%s", e)
    except ValidationError as e:
        logger.error("Invalid segmentation result %s: %s", args.result, e)
    except (OSError, ValueError) as e:
        logger.error("Could not read input: %s", e)
    return 1


if __name__ == '__main__':
    sys.exit(main())
