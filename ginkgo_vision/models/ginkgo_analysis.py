import logging
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ginkgo_vision.models.errors import AnalysisError

logger = logging.getLogger(__name__)


class ViewingStatus(str, Enum):
    """Viewing-suitability stage of the photographed leaves.

    The values are the labels the model is asked to return and the
    labels shown to the user.
    """
    EARLY = "较适宜观赏"  # mostly green, more than half of the leaf area
    SUITABLE = "适宜观赏"  # mixed green/yellow or light uniform yellow
    BEST = "最佳观赏"  # vivid golden, hardly any green left
    UNKNOWN = "无法识别"  # not a ginkgo leaf or indeterminate


class GinkgoAnalysis(BaseModel):
    """Result of one analysis request"""
    # strict: wrongly typed values are schema violations, not something to coerce
    model_config = ConfigDict(frozen=True, populate_by_name=True, strict=True)

    status: ViewingStatus = Field(
        ...,
        description="Viewing suitability derived from the leaf color"
    )
    color_description: str = Field(
        ...,
        alias="colorDescription",
        description="Short description of the leaf colors"
    )
    # Not range checked: the value is passed through exactly as returned.
    # NaN and Infinity are rejected
    percentage_yellow: float = Field(
        ...,
        alias="percentageYellow",
        allow_inf_nan=False,
        description="Estimated share of yellowed leaves (0-100)"
    )
    scientific_assessment: str = Field(
        ...,
        alias="scientificAssessment",
        description="Phenology assessment with viewing and photography advice"
    )
    prediction: str = Field(
        ...,
        description="Forecast of the time to peak or the remaining peak duration"
    )


def parse_analysis(text: Optional[str]) -> GinkgoAnalysis:
    """
    Parse the JSON text returned by the model into a GinkgoAnalysis.

    Raises:
        AnalysisError: if the text is empty, not valid JSON, not an object,
            misses a field or carries a status outside ViewingStatus.
    """
    if not text or not text.strip():
        raise AnalysisError("Empty response from the analysis model")

    try:
        return GinkgoAnalysis.model_validate_json(text)
    except ValidationError as e:
        logger.warning(f"Model response does not match the analysis schema: {e}")
        raise AnalysisError(f"Malformed analysis response: {e.error_count()} validation error(s)") from e
