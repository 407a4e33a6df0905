# ginkgo_vision/services/session.py
import asyncio
import logging
from typing import Optional

from ginkgo_vision.models.errors import AcquisitionError, InvalidImageError
from ginkgo_vision.models.ginkgo_analysis import GinkgoAnalysis
from ginkgo_vision.models.session import SessionSnapshot
from ginkgo_vision.services.acquisition import ImageAcquisition, ImageSource

logger = logging.getLogger(__name__)

ANALYSIS_FAILED_MESSAGE = "无法分析图片，请稍后重试或更换一张图片。"


class AnalysisSession:
    """
    Holds the current image, analysis, loading flag and error message,
    and moves between the idle, loading, result and error phases.

    Must be driven from a single event loop. Every started analysis is
    tagged with a generation number; only the latest generation may
    change the state, and older in-flight analyses are cancelled.
    """

    def __init__(self, analyzer, acquisition: Optional[ImageAcquisition] = None,
                 error_message: str = ANALYSIS_FAILED_MESSAGE):
        self.analyzer = analyzer
        self.acquisition = acquisition or ImageAcquisition()
        self.error_message = error_message

        self._image: Optional[str] = None
        self._analysis: Optional[GinkgoAnalysis] = None
        self._is_loading = False
        self._error: Optional[str] = None

        self._generation = 0
        self._task: Optional[asyncio.Task] = None

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            image=self._image,
            analysis=self._analysis,
            is_loading=self._is_loading,
            error=self._error,
        )

    def select_image(self, image: str) -> asyncio.Task:
        """Hold a new image and start analysing it."""
        self._image = image
        return self._start_analysis()

    async def select_file(self, upload, source: ImageSource = ImageSource.PICKER) -> Optional[asyncio.Task]:
        """
        Acquire an uploaded file and start analysing it.

        Raises:
            InvalidImageError: the upload is not an image. The state is left untouched.
        """
        self.acquisition.validate(upload)
        generation = self._supersede()

        try:
            image = await self.acquisition.acquire(upload, source)
        except InvalidImageError:
            raise
        except AcquisitionError:
            if generation == self._generation:
                self._image = None
                self._fail()
            return None

        if generation != self._generation:
            logger.info(f"Discarding image acquired for superseded request {generation}")
            return None
        return self.select_image(image)

    def reanalyze(self) -> Optional[asyncio.Task]:
        """Analyse the held image again. Rejected when no image is held."""
        if self._image is None:
            logger.info("Reanalyze requested without an image, ignoring")
            return None
        return self.select_image(self._image)

    def reset(self) -> None:
        self._supersede()
        self._image = None
        self._analysis = None
        self._is_loading = False
        self._error = None

    async def wait(self) -> None:
        """Wait until no analysis is outstanding."""
        while self._task is not None and not self._task.done():
            task = self._task
            try:
                await asyncio.shield(task)
            except asyncio.CancelledError:
                # superseded while waiting; follow the newer task
                if not task.cancelled():
                    raise

    def _supersede(self) -> int:
        """Invalidate the outstanding analysis and return the new generation."""
        self._generation += 1
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None
        return self._generation

    def _start_analysis(self) -> asyncio.Task:
        generation = self._supersede()
        self._analysis = None
        self._error = None
        self._is_loading = True
        self._task = asyncio.get_running_loop().create_task(self._run(generation, self._image))
        return self._task

    async def _run(self, generation: int, image: str) -> None:
        try:
            analysis = await self.analyzer.analyze(image)
        except Exception as e:
            if generation != self._generation:
                logger.info(f"Ignoring failure of superseded analysis {generation}: {str(e)}")
                return
            logger.warning(f"Analysis {generation} failed: {str(e)}", exc_info=True)
            self._fail()
            return

        if generation != self._generation:
            logger.info(f"Discarding result of superseded analysis {generation}")
            return

        self._analysis = analysis
        self._error = None
        self._is_loading = False

    def _fail(self) -> None:
        self._analysis = None
        self._error = self.error_message
        self._is_loading = False
