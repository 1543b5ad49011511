"""JSON and file-writing helpers shared by config saving and result export.

Class percentages and configs may carry numpy scalars or NaN; artifacts
must never be left half-written on disk.
"""

import json
import math
import os
import tempfile
from collections.abc import Mapping
from pathlib import Path

import numpy as np


def sanitize_for_json(obj):
    """Convert numpy values to Python types and NaN/inf to None, recursively.

    ``json`` writes Python ``float('nan')`` as the non-standard ``NaN``
    token instead of calling ``default()``, so floats are checked here.
    """
    if isinstance(obj, Mapping):
        return {key: sanitize_for_json(value) for key, value in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [sanitize_for_json(value) for value in obj]
    if isinstance(obj, np.ndarray):
        return sanitize_for_json(obj.tolist())
    if isinstance(obj, np.generic):
        obj = obj.item()
    if isinstance(obj, float) and not math.isfinite(obj):
        return None
    return obj


class NumpyEncoder(json.JSONEncoder):
    """JSON encoder that accepts numpy scalars and arrays.

    Usage::

        json.dump(config, f, cls=NumpyEncoder)
    """

    def default(self, obj):
        if isinstance(obj, (np.generic, np.ndarray)):
            return sanitize_for_json(obj)
        return super().default(obj)


def dumps_json(data, sanitize=True, indent=2) -> str:
    """Serialize ``data`` to a JSON string with numpy support."""
    if sanitize:
        data = sanitize_for_json(data)
    return json.dumps(data, cls=NumpyEncoder, indent=indent)


def atomic_write_bytes(payload: bytes, filepath) -> Path:
    """Write ``payload`` to ``filepath`` through a temp file and ``os.replace``.

    The target ends up with either the complete payload or its previous
    content. Parent directories are created.

    Returns:
        The target path.
    """
    filepath = Path(filepath)
    filepath.parent.mkdir(parents=True, exist_ok=True)

    with tempfile.NamedTemporaryFile(
        dir=filepath.parent, prefix=f".{filepath.name}.", suffix='.tmp', delete=False,
    ) as tmp:
        tmp_path = Path(tmp.name)
        try:
            tmp.write(payload)
        except BaseException:
            tmp.close()
            tmp_path.unlink(missing_ok=True)
            raise

    try:
        os.replace(tmp_path, filepath)
    except BaseException:
        tmp_path.unlink(missing_ok=True)
        raise
    return filepath


def atomic_json_dump(data, filepath, sanitize=True) -> Path:
    """Write ``data`` as indented JSON, atomically (see ``atomic_write_bytes``)."""
    text = dumps_json(data, sanitize=sanitize)
    return atomic_write_bytes(text.encode('utf-8'), filepath)
