# ginkgo_vision/services/analyzer.py
import asyncio
import base64
import binascii
import logging
import time
from functools import lru_cache

from google import genai
from google.genai import types

from ginkgo_vision.config import Settings, get_settings
from ginkgo_vision.models.errors import AnalysisError, ConfigurationError
from ginkgo_vision.models.ginkgo_analysis import GinkgoAnalysis, ViewingStatus, parse_analysis
from ginkgo_vision.services.acquisition import split_data_uri

logger = logging.getLogger(__name__)

ANALYSIS_PROMPT = f"""你是一名植物物候学家，同时也是自然风光摄影师。请分析这张图片中的银杏叶。

请完成以下任务：
1. 找出图片中银杏叶的主要颜色。
2. 按叶色判断当前的观赏时期，只能选择下列之一：
   - "{ViewingStatus.EARLY.value}"：叶片以绿色为主，绿色面积多于黄色（绿色占比超过50%），处于变色初期。
   - "{ViewingStatus.SUITABLE.value}"：绿黄相间、两者约各占一半，或整体为浅黄色但尚未金黄，处于变色中期。
   - "{ViewingStatus.BEST.value}"：叶片大多呈浓郁鲜艳的金黄色，几乎看不到绿色，为最佳观赏期。
   - "{ViewingStatus.UNKNOWN.value}"：图片中不是银杏叶，或无法判断。
3. 估算已变黄叶片的百分比 percentageYellow，取0到100之间的整数。
4. 给出科学评估 scientificAssessment：结合黄化程度说明当前物候阶段，并给出观赏或拍摄建议（例如光线角度、背景搭配）。
5. 给出预测 prediction：根据当前状态，预计还有多少天进入最佳观赏期，或最佳观赏期还能持续多久。

注意："{ViewingStatus.EARLY.value}"的标准必须严格执行：只要绿色明显占多数（超过50%），就必须归为此类，不能归为"{ViewingStatus.SUITABLE.value}"。

请以JSON格式返回结果。"""

ANALYSIS_SCHEMA = types.Schema(
    type=types.Type.OBJECT,
    properties={
        "status": types.Schema(
            type=types.Type.STRING,
            enum=[status.value for status in ViewingStatus],
            description="Viewing suitability based on leaf color: "
                        f"'{ViewingStatus.EARLY.value}' for mostly green (>50%), "
                        f"'{ViewingStatus.SUITABLE.value}' for mixed, "
                        f"'{ViewingStatus.BEST.value}' for mostly golden.",
        ),
        "colorDescription": types.Schema(
            type=types.Type.STRING,
            description="A short, poetic description of the leaf colors (in Chinese).",
        ),
        "percentageYellow": types.Schema(
            type=types.Type.NUMBER,
            description="Estimated percentage of the leaves that have turned yellow (0-100).",
        ),
        "scientificAssessment": types.Schema(
            type=types.Type.STRING,
            description="Phenology assessment based on the yellowing degree, with lighting "
                        "and composition advice where applicable (in Chinese).",
        ),
        "prediction": types.Schema(
            type=types.Type.STRING,
            description="When the best viewing period will arrive or how long it will last, "
                        "e.g. '预计5-7天后进入盛黄期' (in Chinese).",
        ),
    },
    required=["status", "colorDescription", "percentageYellow", "scientificAssessment", "prediction"],
)


class GinkgoAnalyzerService:
    """Sends ginkgo leaf images to a Gemini model and parses the verdict."""

    def __init__(self, client, model: str = "gemini-2.5-flash", temperature: float = 0.4,
                 timeout: float = 60.0):
        self.client = client
        self.model = model
        self.timeout = timeout
        self.config = types.GenerateContentConfig(
            response_mime_type="application/json",
            response_schema=ANALYSIS_SCHEMA,
            temperature=temperature,
        )

    def build_contents(self, image: str) -> list:
        """Build the request parts: the tagged image followed by the prompt."""
        mime_type, payload = split_data_uri(image)
        try:
            image_bytes = base64.b64decode(payload, validate=True)
        except (binascii.Error, ValueError) as e:
            raise AnalysisError(f"Image payload is not valid base64: {str(e)}") from e

        return [
            types.Part.from_bytes(data=image_bytes, mime_type=mime_type),
            types.Part.from_text(text=ANALYSIS_PROMPT),
        ]

    async def analyze(self, image: str) -> GinkgoAnalysis:
        """
        Analyze one image.

        Args:
            image: The image as a data URI, or a bare base64 payload.

        Returns:
            The parsed analysis.

        Raises:
            AnalysisError: for every kind of failure. The cause is logged.
        """
        start_time = time.time()
        contents = self.build_contents(image)

        try:
            response = await asyncio.wait_for(
                self.client.aio.models.generate_content(
                    model=self.model,
                    contents=contents,
                    config=self.config,
                ),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as e:
            logger.error(f"Analysis request timed out after {self.timeout}s")
            raise AnalysisError(f"Analysis timed out after {self.timeout}s") from e
        except Exception as e:
            logger.error(f"Error calling the analysis model: {str(e)}", exc_info=True)
            raise AnalysisError(f"Analysis model call failed: {str(e)}") from e

        analysis = parse_analysis(getattr(response, "text", None))

        processing_time = int((time.time() - start_time) * 1000)
        logger.info(f"Analysis finished in {processing_time} ms: {analysis.status.value}, "
                    f"{analysis.percentage_yellow}% yellow")
        return analysis


def build_genai_client(settings: Settings) -> genai.Client:
    if not settings.GEMINI_API_KEY:
        raise ConfigurationError("GEMINI_API_KEY is not configured")
    return genai.Client(api_key=settings.GEMINI_API_KEY)


@lru_cache()
def get_analyzer_service() -> GinkgoAnalyzerService:
    """Return the process-wide analyzer, built on first use"""
    settings = get_settings()
    return GinkgoAnalyzerService(
        client=build_genai_client(settings),
        model=settings.GEMINI_MODEL,
        temperature=settings.ANALYSIS_TEMPERATURE,
        timeout=settings.ANALYSIS_TIMEOUT_SECONDS,
    )


class ConfiguredAnalyzer:
    """Forwards to the process-wide analyzer, which is only built once an image is analysed."""

    async def analyze(self, image: str) -> GinkgoAnalysis:
        return await get_analyzer_service().analyze(image)
