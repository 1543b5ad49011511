"""
Validation of segmentation backend answers.

Uses Pydantic for validation with clear error messages. The backend answers
with JSON of the form::

    {
        "contornos_validos": {"c1": [[x, y], ...], ...},
        "todos_os_contornos": {"c1": [[x, y], ...], ...},
        "imagem_pre_processada": "<base64 PNG>"
    }

Only the validated contours are required.

Usage:
    from ctcontours.utils.schemas import SegmentationResult, load_segmentation_result

    result = SegmentationResult.model_validate(response_json)
    contours = result.select_contours(show_all=False)
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, field_validator

from ctcontours.processing.contours import ContourSet, to_contour_set


PointList = List[List[float]]


class SegmentationResult(BaseModel):
    """A segmentation backend answer."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    validated_contours: Dict[str, PointList] = Field(..., alias="contornos_validos")
    all_contours: Optional[Dict[str, PointList]] = Field(None, alias="todos_os_contornos")
    preprocessed_image: Optional[str] = Field(None, alias="imagem_pre_processada")

    _contour_sets: Optional[Dict[str, Optional[ContourSet]]] = PrivateAttr(default=None)

    @field_validator("validated_contours", "all_contours")
    @classmethod
    def validate_points(cls, v):
        """Every point must be a pair of finite numbers."""
        if v is not None:
            # ContourValidationError is a ValueError, reported as a ValidationError
            to_contour_set(v)
        return v

    @field_validator("preprocessed_image")
    @classmethod
    def empty_image_is_none(cls, v):
        return v or None

    def contour_sets(self) -> Dict[str, Optional[ContourSet]]:
        """Both contour sets as ContourSets, built once per instance."""
        if self._contour_sets is None:
            self._contour_sets = {
                "validated": to_contour_set(self.validated_contours),
                "all": to_contour_set(self.all_contours),
            }
        return self._contour_sets

    def select_contours(self, show_all: bool = False) -> Optional[ContourSet]:
        """
        Pick the contour set to display or export.

        Args:
            show_all: Use all candidate contours instead of the validated ones;
                falls back to the validated set when the backend sent none

        Returns:
            The same ContourSet object on every call for a given choice
        """
        sets = self.contour_sets()
        if show_all and sets["all"] is not None:
            return sets["all"]
        return sets["validated"]

    @property
    def has_preprocessed_image(self) -> bool:
        return self.preprocessed_image is not None

    def decode_preprocessed(self):
        """The server-side raster as a RenderedRaster, or None."""
        if self.preprocessed_image is None:
            return None
        from ctcontours.io.overlay import decode_raster
        return decode_raster(self.preprocessed_image)


def load_segmentation_result(path: Union[str, Path]) -> SegmentationResult:
    """
    Load and validate a backend answer saved as JSON.

    Raises:
        FileNotFoundError: If the file doesn't exist
        pydantic.ValidationError: If the content doesn't match the schema
    """
    path = Path(path)
    with open(path, 'r', encoding='utf-8') as f:
        data = json.load(f)
    return SegmentationResult.model_validate(data)
