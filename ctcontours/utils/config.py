"""
Configuration module for CT contour post-processing.

Provides centralized defaults and config file loading/saving for:
- Display windowing (clip range rescaled to 0-255)
- Tissue classification clip range
- Contour stroke style and background of contours-only rasters
- Class-highlight palette

Usage:
    from ctcontours.utils.config import load_config, save_config, DEFAULT_CONFIG

    # Load config with defaults
    config = load_config('/path/to/output')

    low, high = get_window_range(config)

Environment Variables:
    CTCONTOURS_OUTPUT_DIR: Default output directory for exported artifacts
"""

import copy
import json
import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, TypedDict, Union

from ctcontours.utils.json_utils import NumpyEncoder as _NumpyEncoder
from ctcontours.utils.logging import get_logger

logger = get_logger(__name__)


class ProcessingConfig(TypedDict, total=False):
    """
    Processing configuration.

    Attributes:
        window_min: Lower bound of the display window (raw intensity units).
        window_max: Upper bound of the display window. Must exceed window_min.
        classification_clip_min: Lower clip bound applied before tissue binning.
        classification_clip_max: Upper clip bound applied before tissue binning.
        contour_color: RGB stroke color [R, G, B], each 0-255.
        contour_thickness: Stroke width in pixels. Valid range: 1-20.
        background_color: RGB fill of contours-only rasters.
        image_format: Raster encoding for exports ('png' or 'jpeg').
        class_colors: RGB color per tissue class for the highlight raster.
        output_dir: Directory used by the CLI when none is given.
    """
    window_min: float
    window_max: float
    classification_clip_min: float
    classification_clip_max: float
    contour_color: List[int]
    contour_thickness: int
    background_color: List[int]
    image_format: str
    class_colors: Dict[str, List[int]]
    output_dir: str


_VALIDATION_RULES: Dict[str, Dict[str, Any]] = {
    "processing": {
        "contour_thickness": {"min": 1, "max": 20, "type": int},
    },
    "image_formats": ("png", "jpeg"),
}


DEFAULT_PATHS = {
    "output_dir": os.getenv("CTCONTOURS_OUTPUT_DIR", str(Path.cwd() / "ctcontours_output")),
}


def get_default_path(key: str) -> str:
    """
    Get a default path from environment or fallback.

    Args:
        key: Path key name (e.g., 'output_dir')

    Returns:
        Path string, empty string if key not found
    """
    return DEFAULT_PATHS.get(key, "")


DEFAULT_CONFIG: ProcessingConfig = {
    # Display window, rescaled to [0, 255]
    "window_min": -1000,
    "window_max": 2000,

    # Clip range for tissue classification (independent of the display window)
    "classification_clip_min": -1000,
    "classification_clip_max": 2000,

    # Contour stroke
    "contour_color": [255, 0, 0],
    "contour_thickness": 2,

    # Fill used when contours are drawn without the original image
    "background_color": [0, 0, 0],

    # Export settings
    "image_format": "png",

    # Class-highlight palette
    "class_colors": {
        "hyperaerated": [148, 0, 211],
        "normally_aerated": [0, 114, 255],
        "poorly_aerated": [0, 200, 83],
        "non_aerated": [255, 193, 7],
        "bone": [255, 255, 255],
    },

    "output_dir": get_default_path("output_dir"),
}


def get_window_range(config: Optional[Dict[str, Any]] = None) -> Tuple[float, float]:
    """Return the display window ``(low, high)`` from config."""
    config = config or DEFAULT_CONFIG
    return (
        config.get("window_min", DEFAULT_CONFIG["window_min"]),
        config.get("window_max", DEFAULT_CONFIG["window_max"]),
    )


def get_classification_range(config: Optional[Dict[str, Any]] = None) -> Tuple[float, float]:
    """Return the classification clip range ``(low, high)`` from config."""
    config = config or DEFAULT_CONFIG
    return (
        config.get("classification_clip_min", DEFAULT_CONFIG["classification_clip_min"]),
        config.get("classification_clip_max", DEFAULT_CONFIG["classification_clip_max"]),
    )


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> None:
    """
    Recursively merge override dict into base dict (in-place).

    Nested dicts are merged key by key; everything else is deep-copied
    from override.
    """
    for key, value in override.items():
        if (
            key in base
            and isinstance(base[key], dict)
            and isinstance(value, dict)
        ):
            _deep_merge(base[key], value)
        else:
            base[key] = copy.deepcopy(value)


def load_config(
    config_dir: Optional[Union[str, Path]] = None,
    config_filename: str = "config.json",
    overrides: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """
    Load configuration from a directory.

    Merges with DEFAULT_CONFIG, so missing values use defaults. A path
    pointing directly at a JSON file is also accepted.

    Args:
        config_dir: Directory holding the config file, or the file itself
        config_filename: Name of config file (default: config.json)
        overrides: Values applied on top of file and defaults

    Returns:
        Dict with merged configuration
    """
    config = copy.deepcopy(DEFAULT_CONFIG)

    if config_dir is not None:
        config_path = Path(config_dir)
        if config_path.is_dir():
            config_path = config_path / config_filename

        if config_path.exists():
            try:
                with open(config_path, 'r', encoding='utf-8') as f:
                    file_config = json.load(f)
                _deep_merge(config, file_config)
            except (json.JSONDecodeError, IOError) as e:
                logger.warning("Could not load config from %s: %s", config_path, e)

    if overrides:
        _deep_merge(config, overrides)

    return config


def save_config(
    config_dir: Union[str, Path],
    config: Dict[str, Any],
    config_filename: str = "config.json"
) -> Path:
    """
    Save configuration to a directory.

    Args:
        config_dir: Directory to write into (created if missing)
        config: Configuration dict to save
        config_filename: Name of config file (default: config.json)

    Returns:
        Path to saved config file
    """
    config_dir = Path(config_dir)
    config_dir.mkdir(parents=True, exist_ok=True)

    config_path = config_dir / config_filename

    with open(config_path, 'w', encoding='utf-8') as f:
        json.dump(config, f, cls=_NumpyEncoder, indent=2)

    return config_path


class ConfigValidationError(Exception):
    """Raised when configuration validation fails."""
    pass


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _validate_range(
    value: Union[int, float],
    key: str,
    min_val: Union[int, float],
    max_val: Union[int, float],
    expected_type: Union[type, Tuple[type, ...]]
) -> List[str]:
    """
    Validate a single value is within expected range and type.

    Returns:
        List of error messages (empty if valid)
    """
    errors = []

    if not isinstance(value, expected_type) or isinstance(value, bool):
        names = (
            "/".join(t.__name__ for t in expected_type)
            if isinstance(expected_type, tuple) else expected_type.__name__
        )
        errors.append(f"{key}: expected {names}, got {type(value).__name__}")
        return errors

    if value < min_val or value > max_val:
        errors.append(f"{key}: value {value} out of range [{min_val}, {max_val}]")

    return errors


def _validate_rgb_color(color: Any, key: str = "contour_color") -> List[str]:
    """
    Validate an RGB color list.

    Returns:
        List of error messages (empty if valid)
    """
    errors = []
    if not isinstance(color, (list, tuple)):
        errors.append(f"{key}: expected list, got {type(color).__name__}")
        return errors
    if len(color) != 3:
        errors.append(f"{key}: expected 3 values [R, G, B], got {len(color)}")
        return errors
    for i, val in enumerate(color):
        if not isinstance(val, int) or isinstance(val, bool):
            errors.append(f"{key}[{i}]: expected int, got {type(val).__name__}")
        elif val < 0 or val > 255:
            errors.append(f"{key}[{i}]: value {val} out of range [0, 255]")
    return errors


def _validate_bounds(config: Dict[str, Any], low_key: str, high_key: str) -> List[str]:
    """Both bounds numeric and strictly ordered."""
    errors = []
    low, high = config.get(low_key), config.get(high_key)
    for key, value in ((low_key, low), (high_key, high)):
        if not _is_number(value):
            errors.append(f"{key}: expected numeric type, got {type(value).__name__}")
    if not errors and low >= high:
        errors.append(f"{low_key} ({low}) must be less than {high_key} ({high})")
    return errors


def validate_config(
    config: Optional[Dict[str, Any]] = None,
    raise_on_error: bool = False
) -> Dict[str, Union[bool, List[str]]]:
    """
    Validate a configuration dictionary against expected types and ranges.

    Args:
        config: Config dict (like DEFAULT_CONFIG). If None, validates
            the global DEFAULT_CONFIG.
        raise_on_error: Raise ConfigValidationError instead of returning
            the error list.

    Returns:
        Dict with 'valid' (bool) and 'errors' (list of messages)

    Raises:
        ConfigValidationError: If raise_on_error is True and validation fails
    """
    if config is None:
        config = DEFAULT_CONFIG

    errors: List[str] = []
    errors.extend(_validate_bounds(config, "window_min", "window_max"))
    errors.extend(_validate_bounds(
        config, "classification_clip_min", "classification_clip_max"
    ))

    rule = _VALIDATION_RULES["processing"]["contour_thickness"]
    if "contour_thickness" in config:
        errors.extend(_validate_range(
            config["contour_thickness"], "contour_thickness",
            rule["min"], rule["max"], rule["type"],
        ))

    for key in ("contour_color", "background_color"):
        if key in config:
            errors.extend(_validate_rgb_color(config[key], key))

    for name, color in config.get("class_colors", {}).items():
        errors.extend(_validate_rgb_color(color, f"class_colors.{name}"))

    image_format = config.get("image_format", "png")
    if str(image_format).lower() not in _VALIDATION_RULES["image_formats"]:
        errors.append(
            f"image_format: '{image_format}' not one of "
            f"{', '.join(_VALIDATION_RULES['image_formats'])}"
        )

    if errors and raise_on_error:
        raise ConfigValidationError(
            "Configuration validation failed:\n  " + "\n  ".join(errors)
        )

    return {"valid": not errors, "errors": errors}
