# ginkgo_vision/services/presenter.py
import logging
from typing import List, Optional

from pydantic import BaseModel, Field

from ginkgo_vision.models.ginkgo_analysis import GinkgoAnalysis, ViewingStatus
from ginkgo_vision.models.session import SessionPhase, SessionSnapshot

logger = logging.getLogger(__name__)

STATUS_THEMES = {
    ViewingStatus.EARLY: "emerald",
    ViewingStatus.SUITABLE: "yellow",
    ViewingStatus.BEST: "amber",
    ViewingStatus.UNKNOWN: "gray",
}

# (label, lower, upper, status the band corresponds to)
PHENOLOGY_BANDS = [
    ("初变色期", 0, 33, ViewingStatus.EARLY),
    ("适宜观赏期", 34, 66, ViewingStatus.SUITABLE),
    ("最佳观赏期", 67, 100, ViewingStatus.BEST),
]


class PhenologyBand(BaseModel):
    label: str
    lower: int
    upper: int
    active: bool = Field(..., description="Whether the band matches the reported status")


class AnalysisView(BaseModel):
    """Display structure for one analysis"""
    image: Optional[str] = None
    status: ViewingStatus
    theme: str
    percentage_yellow: float = Field(..., description="Percentage exactly as reported by the model")
    bar_width: float = Field(..., description="Percentage bounded to 0-100 for drawing the bar")
    percentage_in_range: bool
    bands: List[PhenologyBand]
    status_consistent: bool = Field(
        ...,
        description="False when the percentage band disagrees with the reported status"
    )
    color_description: str
    scientific_assessment: str
    prediction: str


class SessionView(BaseModel):
    phase: SessionPhase
    image: Optional[str] = None
    error: Optional[str] = None
    result: Optional[AnalysisView] = None


def band_status(percentage: float) -> Optional[ViewingStatus]:
    """Status whose band contains the percentage, None outside 0-100."""
    if not 0 <= percentage <= 100:
        return None
    # bands cover whole numbers; fractions belong to the lower band
    for _, _, upper, status in PHENOLOGY_BANDS:
        if percentage < upper + 1:
            return status
    return ViewingStatus.BEST


def present_analysis(analysis: GinkgoAnalysis, image: Optional[str] = None) -> AnalysisView:
    """Map an analysis to its display structure without reinterpreting it."""
    percentage = analysis.percentage_yellow
    in_range = 0 <= percentage <= 100
    if not in_range:
        logger.warning(f"Model reported percentageYellow={percentage}, outside 0-100; bar width is bounded")

    consistent = True
    if analysis.status != ViewingStatus.UNKNOWN:
        consistent = band_status(percentage) == analysis.status
        if not consistent:
            logger.warning(f"Status '{analysis.status.value}' disagrees with {percentage}% yellow")

    return AnalysisView(
        image=image,
        status=analysis.status,
        theme=STATUS_THEMES[analysis.status],
        percentage_yellow=percentage,
        bar_width=min(max(percentage, 0.0), 100.0),
        percentage_in_range=in_range,
        bands=[
            PhenologyBand(label=label, lower=lower, upper=upper, active=status == analysis.status)
            for label, lower, upper, status in PHENOLOGY_BANDS
        ],
        status_consistent=consistent,
        color_description=analysis.color_description,
        scientific_assessment=analysis.scientific_assessment,
        prediction=analysis.prediction,
    )


def present_session(snapshot: SessionSnapshot) -> SessionView:
    result = None
    if snapshot.phase == SessionPhase.RESULT:
        result = present_analysis(snapshot.analysis, snapshot.image)
    return SessionView(
        phase=snapshot.phase,
        image=snapshot.image,
        error=snapshot.error,
        result=result,
    )
