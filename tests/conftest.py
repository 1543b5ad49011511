"""
Pytest fixtures for ctcontours tests.

Provides shared fixtures for intensity buffers, images, contour sets,
backend answers and artifact sinks.
"""

import base64
import json
import logging
from io import BytesIO

import numpy as np
import pytest
from PIL import Image

from ctcontours.io.export import MemorySink
from ctcontours.processing.image import ImageDescriptor
from ctcontours.utils import logging as ct_logging


@pytest.fixture(autouse=True)
def reset_logging():
    """Remove handlers installed by setup_logging() and restore the root level."""
    root = logging.getLogger()
    level = root.level
    yield
    for handler in list(ct_logging._installed_handlers):
        root.removeHandler(handler)
        handler.close()
    ct_logging._installed_handlers.clear()
    root.setLevel(level)


@pytest.fixture
def uniform_image():
    """
    Windowed 20x20 image with every sample at 128.

    Returns:
        ImageDescriptor: display-ready samples in [0, 255]
    """
    return ImageDescriptor(np.full(400, 128.0), 20, 20)


@pytest.fixture
def black_image():
    """Windowed 20x20 image with every sample at 0."""
    return ImageDescriptor(np.zeros(400), 20, 20)


@pytest.fixture
def raw_image():
    """
    Raw 4x4 CT slice covering every tissue band plus the unclassified gap.

    Row 0: hyperaerated, normally aerated, poorly aerated, non-aerated
    Row 1: bone, gap, gap, non-aerated
    Rows 2-3: air (-1000)

    Returns:
        ImageDescriptor: raw intensity samples
    """
    pixels = np.array([
        [-975, -700, -300, 0],
        [1000, 300, 300, 50],
        [-1000, -1000, -1000, -1000],
        [-1000, -1000, -1000, -1000],
    ], dtype=np.float64)
    return ImageDescriptor.from_array(pixels)


@pytest.fixture
def sample_contours():
    """Two contours, three points in total."""
    return {"a": [(1, 2), (3, 4)], "b": [(5, 6)]}


@pytest.fixture
def square_contours():
    """
    One closed square on a 20x20 canvas.

    Edges run along x = 5, x = 15, y = 5 and y = 15; the center (10, 10)
    is five pixels from every edge.
    """
    return {"square": [[5, 5], [15, 5], [15, 15], [5, 15]]}


@pytest.fixture
def memory_sink():
    """Artifact sink that keeps emitted bytes in memory."""
    return MemorySink()


@pytest.fixture
def preprocessed_png_b64():
    """
    Base64 PNG of a 20x20 solid green image, as the backend sends it.

    Returns:
        str: base64-encoded PNG payload
    """
    img = Image.new("RGB", (20, 20), (0, 255, 0))
    buffer = BytesIO()
    img.save(buffer, format="PNG")
    return base64.b64encode(buffer.getvalue()).decode("ascii")


@pytest.fixture
def backend_answer(square_contours, preprocessed_png_b64):
    """
    Full segmentation backend answer (JSON-decoded).

    Validated set has one square, the all-contours set has the square
    plus a second small triangle.
    """
    return {
        "contornos_validos": square_contours,
        "todos_os_contornos": {
            "square": square_contours["square"],
            "triangle": [[1, 1], [3, 1], [2, 3]],
        },
        "imagem_pre_processada": preprocessed_png_b64,
    }


@pytest.fixture
def backend_answer_file(tmp_path, backend_answer):
    """Backend answer saved to a JSON file."""
    path = tmp_path / "answer.json"
    path.write_text(json.dumps(backend_answer), encoding="utf-8")
    return path
