# ginkgo_vision/models/__init__.py
# Imports for easier usage
from ginkgo_vision.models.errors import (
    AcquisitionError,
    AnalysisError,
    ConfigurationError,
    GinkgoVisionError,
    InvalidImageError,
)
from ginkgo_vision.models.ginkgo_analysis import GinkgoAnalysis, ViewingStatus, parse_analysis
from ginkgo_vision.models.session import SessionPhase, SessionSnapshot
