"""
Utility modules for contour post-processing.

Provides:
- Configuration management
- Logging utilities
- JSON helpers (numpy-aware, atomic writes)
- Segmentation answer validation (requires pydantic)
"""

from .config import (
    DEFAULT_CONFIG,
    DEFAULT_PATHS,
    ConfigValidationError,
    get_classification_range,
    get_default_path,
    get_window_range,
    load_config,
    save_config,
    validate_config,
)

from .logging import (
    get_logger,
    setup_logging,
    log_parameters,
    ProcessingTimer,
)

from .json_utils import (
    NumpyEncoder,
    atomic_json_dump,
    atomic_write_bytes,
    dumps_json,
    sanitize_for_json,
)

# Schemas require pydantic - import separately if needed
# from ctcontours.utils.schemas import SegmentationResult, load_segmentation_result

__all__ = [
    # Config
    'DEFAULT_CONFIG',
    'DEFAULT_PATHS',
    'ConfigValidationError',
    'get_classification_range',
    'get_default_path',
    'get_window_range',
    'load_config',
    'save_config',
    'validate_config',
    # Logging
    'get_logger',
    'setup_logging',
    'log_parameters',
    'ProcessingTimer',
    # JSON
    'NumpyEncoder',
    'atomic_json_dump',
    'atomic_write_bytes',
    'dumps_json',
    'sanitize_for_json',
]
