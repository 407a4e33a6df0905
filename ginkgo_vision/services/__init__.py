# ginkgo_vision/services/__init__.py
# Imports for easier usage
from ginkgo_vision.services.acquisition import ImageAcquisition, ImageSource
from ginkgo_vision.services.analyzer import GinkgoAnalyzerService, get_analyzer_service
from ginkgo_vision.services.presenter import present_analysis, present_session
from ginkgo_vision.services.session import AnalysisSession
