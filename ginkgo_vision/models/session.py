from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from ginkgo_vision.models.ginkgo_analysis import GinkgoAnalysis


class SessionPhase(str, Enum):
    """Visible state of an analysis session"""
    IDLE = "idle"
    LOADING = "loading"
    RESULT = "result"
    ERROR = "error"


class SessionSnapshot(BaseModel):
    """Immutable copy of the session state at one point in time"""
    model_config = ConfigDict(frozen=True)

    image: Optional[str] = Field(None, description="Held image as a data URI")
    analysis: Optional[GinkgoAnalysis] = None
    is_loading: bool = False
    error: Optional[str] = Field(None, description="User-facing error message")

    @property
    def phase(self) -> SessionPhase:
        if self.is_loading:
            return SessionPhase.LOADING
        if self.error is not None:
            return SessionPhase.ERROR
        if self.analysis is not None:
            return SessionPhase.RESULT
        return SessionPhase.IDLE
