"""
Orchestration of the post-processing steps.

Provides:
- ResultsView: display state for one image and one segmentation answer
- cli: command-line export
"""

from .results import ResultsView

__all__ = [
    'ResultsView',
]
