"""
Tissue classification of raw intensity buffers by fixed intensity bands.

Samples are clipped to the classification range (default ``[-1000, 2000]``,
configured independently of the display window) and then binned:

    hyperaerated      [-1000, -950)
    normally_aerated  [-950, -500)
    poorly_aerated    [-500, -100)
    non_aerated       [-100, 100]
    bone              [600, 2000]

The open interval (100, 600) is left unclassified, so the five percentages
sum to at most 100.

Usage:
    from ctcontours.classification import compute_class_distribution

    distribution = compute_class_distribution(raw_pixels)
    print(distribution.non_aerated)
"""

from dataclasses import dataclass, fields
from typing import Dict, Iterator, NamedTuple, Optional, Tuple

import numpy as np

from ctcontours.preprocessing.windowing import validate_window
from ctcontours.utils.logging import get_logger

logger = get_logger(__name__)


CLASSIFICATION_CLIP_MIN = -1000
CLASSIFICATION_CLIP_MAX = 2000

UNCLASSIFIED = -1


class EmptyInputError(ValueError):
    """Raised when classification is requested on a zero-length buffer."""
    pass


class TissueClass(NamedTuple):
    """An intensity band. The lower bound is always inclusive."""
    name: str
    low: float
    high: float
    high_inclusive: bool

    def contains(self, values: np.ndarray) -> np.ndarray:
        upper = values <= self.high if self.high_inclusive else values < self.high
        return (values >= self.low) & upper


TISSUE_CLASSES: Tuple[TissueClass, ...] = (
    TissueClass("hyperaerated", -1000, -950, False),
    TissueClass("normally_aerated", -950, -500, False),
    TissueClass("poorly_aerated", -500, -100, False),
    TissueClass("non_aerated", -100, 100, True),
    TissueClass("bone", 600, 2000, True),
)

TISSUE_CLASS_NAMES: Tuple[str, ...] = tuple(c.name for c in TISSUE_CLASSES)


@dataclass(frozen=True)
class ClassDistribution:
    """
    Percentage of samples in each tissue class.

    Attributes:
        hyperaerated: Percent of samples in [-1000, -950)
        normally_aerated: Percent of samples in [-950, -500)
        poorly_aerated: Percent of samples in [-500, -100)
        non_aerated: Percent of samples in [-100, 100]
        bone: Percent of samples in [600, 2000]
    """
    hyperaerated: float = 0.0
    normally_aerated: float = 0.0
    poorly_aerated: float = 0.0
    non_aerated: float = 0.0
    bone: float = 0.0

    def __getitem__(self, name: str) -> float:
        if name not in TISSUE_CLASS_NAMES:
            raise KeyError(name)
        return getattr(self, name)

    def __iter__(self) -> Iterator[Tuple[str, float]]:
        for f in fields(self):
            yield f.name, getattr(self, f.name)

    @property
    def classified_percent(self) -> float:
        """Sum over the five classes (at most 100)."""
        return sum(value for _, value in self)

    @property
    def unclassified_percent(self) -> float:
        return max(0.0, 100.0 - self.classified_percent)

    def to_dict(self) -> Dict[str, float]:
        """Convert to an ordered dict for JSON serialization."""
        return dict(self)


def _clipped(buffer, clip_min: float, clip_max: float) -> np.ndarray:
    validate_window(clip_min, clip_max, what="Classification clip")
    data = np.asarray(buffer, dtype=np.float64)
    return np.clip(data, clip_min, clip_max)


def classify_pixels(
    buffer,
    clip_min: float = CLASSIFICATION_CLIP_MIN,
    clip_max: float = CLASSIFICATION_CLIP_MAX,
) -> np.ndarray:
    """
    Label every sample with the index of its tissue class.

    Args:
        buffer: Array-like of raw intensity samples (any shape)
        clip_min: Lower clip bound applied before binning
        clip_max: Upper clip bound applied before binning

    Returns:
        int8 array of the input's shape; values index ``TISSUE_CLASSES``,
        ``UNCLASSIFIED`` (-1) for samples in no band (including NaN)

    Raises:
        InvalidRangeError: If ``clip_min >= clip_max``
    """
    values = _clipped(buffer, clip_min, clip_max)
    labels = np.full(values.shape, UNCLASSIFIED, dtype=np.int8)

    # First matching band wins; the bands do not overlap anyway
    for index, tissue_class in enumerate(TISSUE_CLASSES):
        mask = tissue_class.contains(values) & (labels == UNCLASSIFIED)
        labels[mask] = index

    return labels


def compute_class_distribution(
    buffer,
    clip_min: float = CLASSIFICATION_CLIP_MIN,
    clip_max: float = CLASSIFICATION_CLIP_MAX,
) -> ClassDistribution:
    """
    Compute the percentage of samples falling in each tissue class.

    Args:
        buffer: Array-like of raw (not display-windowed) intensity samples
        clip_min: Lower clip bound applied before binning (default: -1000)
        clip_max: Upper clip bound applied before binning (default: 2000)

    Returns:
        ClassDistribution with values in [0, 100]

    Raises:
        EmptyInputError: If the buffer has no samples
        InvalidRangeError: If ``clip_min >= clip_max``
    """
    total = np.asarray(buffer).size
    if total == 0:
        raise EmptyInputError("Cannot classify an empty intensity buffer")

    labels = classify_pixels(buffer, clip_min, clip_max)
    classified = labels[labels != UNCLASSIFIED]
    counts = np.bincount(classified.ravel(), minlength=len(TISSUE_CLASSES))

    percentages = {
        tissue_class.name: (int(counts[i]) / total) * 100
        for i, tissue_class in enumerate(TISSUE_CLASSES)
    }
    logger.debug("Class distribution over %d samples: %s", total, percentages)
    return ClassDistribution(**percentages)


class TissueClassifier:
    """Classifier bound to a clip range, typically built from config."""

    def __init__(
        self,
        clip_min: float = CLASSIFICATION_CLIP_MIN,
        clip_max: float = CLASSIFICATION_CLIP_MAX,
    ):
        validate_window(clip_min, clip_max, what="Classification clip")
        self.clip_min = clip_min
        self.clip_max = clip_max

    @classmethod
    def from_config(cls, config: Optional[dict] = None) -> "TissueClassifier":
        from ctcontours.utils.config import get_classification_range
        return cls(*get_classification_range(config))

    def classify(self, buffer) -> ClassDistribution:
        return compute_class_distribution(buffer, self.clip_min, self.clip_max)

    def __repr__(self):
        return f"TissueClassifier(clip_min={self.clip_min}, clip_max={self.clip_max})"
