# ginkgo_vision/api/routes.py
import logging
from functools import lru_cache
from typing import Dict, Any

from fastapi import APIRouter, HTTPException, UploadFile, File, Form, Depends

from ginkgo_vision.config import Settings, get_settings
from ginkgo_vision.models.errors import AcquisitionError, AnalysisError, ConfigurationError, InvalidImageError
from ginkgo_vision.services.acquisition import ImageAcquisition, ImageSource
from ginkgo_vision.services.analyzer import ConfiguredAnalyzer, GinkgoAnalyzerService, get_analyzer_service
from ginkgo_vision.services.presenter import AnalysisView, SessionView, present_analysis, present_session
from ginkgo_vision.services.session import ANALYSIS_FAILED_MESSAGE, AnalysisSession

router = APIRouter()
logger = logging.getLogger(__name__)


def get_acquisition() -> ImageAcquisition:
    return ImageAcquisition()


def get_analyzer() -> GinkgoAnalyzerService:
    try:
        return get_analyzer_service()
    except ConfigurationError as e:
        logger.error(f"Analysis model unavailable: {str(e)}")
        raise HTTPException(status_code=503, detail="Analysis model is not configured.")


@lru_cache()
def get_session() -> AnalysisSession:
    """The single process-wide session driven by the UI"""
    return AnalysisSession(ConfiguredAnalyzer())


@router.post(
    "/analyze",
    response_model=AnalysisView,
    summary="Analyze a ginkgo leaf image",
    description="Upload an image and get the viewing-suitability verdict. Does not touch the session.",
)
async def analyze_ginkgo_image(
        file: UploadFile = File(...),
        acquisition: ImageAcquisition = Depends(get_acquisition),
        analyzer: GinkgoAnalyzerService = Depends(get_analyzer),
) -> AnalysisView:
    try:
        image = await acquisition.acquire(file)
        analysis = await analyzer.analyze(image)
        return present_analysis(analysis, image)

    except InvalidImageError as e:
        raise HTTPException(status_code=400, detail=e.message)
    except (AcquisitionError, AnalysisError) as e:
        logger.error(f"Error during image analysis: {str(e)}")
        raise HTTPException(status_code=502, detail=ANALYSIS_FAILED_MESSAGE)


@router.get(
    "/session",
    response_model=SessionView,
    summary="Current session state",
)
async def read_session(session: AnalysisSession = Depends(get_session)) -> SessionView:
    return present_session(session.snapshot())


@router.post(
    "/session/image",
    response_model=SessionView,
    summary="Select an image for the session",
    description="Holds the uploaded image and starts analysing it. With wait=true the "
                "response is sent once the analysis has settled.",
)
async def select_session_image(
        file: UploadFile = File(...),
        source: ImageSource = Form(ImageSource.PICKER),
        wait: bool = True,
        session: AnalysisSession = Depends(get_session),
) -> SessionView:
    try:
        await session.select_file(file, source)
    except InvalidImageError as e:
        raise HTTPException(status_code=400, detail=e.message)

    if wait:
        await session.wait()
    return present_session(session.snapshot())


@router.post(
    "/session/reanalyze",
    response_model=SessionView,
    summary="Analyze the held image again",
)
async def reanalyze_session_image(
        wait: bool = True,
        session: AnalysisSession = Depends(get_session),
) -> SessionView:
    if session.reanalyze() is None:
        raise HTTPException(status_code=409, detail="No image selected.")

    if wait:
        await session.wait()
    return present_session(session.snapshot())


@router.post(
    "/session/reset",
    response_model=SessionView,
    summary="Clear image, analysis and error",
)
async def reset_session(session: AnalysisSession = Depends(get_session)) -> SessionView:
    session.reset()
    return present_session(session.snapshot())


@router.get(
    "/health",
    summary="API health status",
    description="Check if the analysis service is available"
)
async def health_check(settings: Settings = Depends(get_settings)) -> Dict[str, Any]:
    return {
        "status": "healthy" if settings.GEMINI_API_KEY else "degraded",
        "model_configured": bool(settings.GEMINI_API_KEY),
        "service": "ginkgo-vision-analyzer",
        "version": "0.1.0",
    }
