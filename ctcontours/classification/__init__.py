"""
Tissue classification by fixed intensity bands.
"""

from .tissue_classifier import (
    CLASSIFICATION_CLIP_MIN,
    CLASSIFICATION_CLIP_MAX,
    TISSUE_CLASSES,
    TISSUE_CLASS_NAMES,
    UNCLASSIFIED,
    ClassDistribution,
    EmptyInputError,
    TissueClass,
    TissueClassifier,
    classify_pixels,
    compute_class_distribution,
)

__all__ = [
    'CLASSIFICATION_CLIP_MIN',
    'CLASSIFICATION_CLIP_MAX',
    'TISSUE_CLASSES',
    'TISSUE_CLASS_NAMES',
    'UNCLASSIFIED',
    'ClassDistribution',
    'EmptyInputError',
    'TissueClass',
    'TissueClassifier',
    'classify_pixels',
    'compute_class_distribution',
]
