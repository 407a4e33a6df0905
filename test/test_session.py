import asyncio

import pytest

from ginkgo_vision.models.errors import AnalysisError, InvalidImageError
from ginkgo_vision.models.ginkgo_analysis import ViewingStatus, parse_analysis
from ginkgo_vision.models.session import SessionPhase
from ginkgo_vision.services.acquisition import ImageAcquisition, encode_data_uri
from ginkgo_vision.services.session import ANALYSIS_FAILED_MESSAGE, AnalysisSession

from conftest import BEST_RESPONSE, EARLY_RESPONSE, PNG_BYTES, UnreadableUpload, as_json, make_upload

pytestmark = pytest.mark.asyncio

IMAGE_A = encode_data_uri(b"leaf-a", "image/jpeg")
IMAGE_B = encode_data_uri(b"leaf-b", "image/jpeg")
ANALYSIS_A = parse_analysis(as_json(EARLY_RESPONSE))
ANALYSIS_B = parse_analysis(as_json(BEST_RESPONSE))


class ControlledAnalyzer:
    """Analyzer whose calls finish only when the test resolves them."""

    def __init__(self):
        self.pending = {}

    async def analyze(self, image):
        future = asyncio.get_running_loop().create_future()
        self.pending[image] = future
        return await future


class UncancellableAnalyzer(ControlledAnalyzer):
    """Keeps waiting for its result even when the calling task is cancelled."""

    async def analyze(self, image):
        future = asyncio.get_running_loop().create_future()
        self.pending[image] = future
        while True:
            try:
                return await asyncio.shield(future)
            except asyncio.CancelledError:
                continue


async def settle():
    for _ in range(5):
        await asyncio.sleep(0)


async def test_new_session_is_idle():
    session = AnalysisSession(ControlledAnalyzer())

    snapshot = session.snapshot()
    assert snapshot.phase == SessionPhase.IDLE
    assert snapshot.image is None and snapshot.analysis is None and snapshot.error is None


async def test_end_to_end_best_result(analyzer, fake_client):
    fake_client.respond_with(as_json(BEST_RESPONSE))
    session = AnalysisSession(analyzer)

    session.select_image(IMAGE_A)
    assert session.snapshot().phase == SessionPhase.LOADING
    await session.wait()

    snapshot = session.snapshot()
    assert snapshot.phase == SessionPhase.RESULT
    assert snapshot.analysis.percentage_yellow == 95
    assert snapshot.analysis.status == ViewingStatus.BEST
    assert snapshot.image == IMAGE_A
    assert snapshot.error is None


async def test_empty_response_then_successful_reanalyze(analyzer, fake_client):
    fake_client.respond_with("", as_json(BEST_RESPONSE))
    session = AnalysisSession(analyzer)

    session.select_image(IMAGE_A)
    await session.wait()

    snapshot = session.snapshot()
    assert snapshot.phase == SessionPhase.ERROR
    assert snapshot.error == ANALYSIS_FAILED_MESSAGE
    assert snapshot.image == IMAGE_A
    assert snapshot.analysis is None

    assert session.reanalyze() is not None
    await session.wait()

    snapshot = session.snapshot()
    assert snapshot.phase == SessionPhase.RESULT
    assert snapshot.analysis.status == ViewingStatus.BEST
    assert snapshot.error is None
    assert len(fake_client.models.calls) == 2


async def test_reanalyze_without_image_is_rejected():
    analyzer = ControlledAnalyzer()
    session = AnalysisSession(analyzer)

    assert session.reanalyze() is None

    assert session.snapshot().phase == SessionPhase.IDLE
    assert analyzer.pending == {}


async def test_reanalyze_keeps_image_and_replaces_analysis():
    analyzer = ControlledAnalyzer()
    session = AnalysisSession(analyzer)
    session.select_image(IMAGE_A)
    await settle()
    analyzer.pending[IMAGE_A].set_result(ANALYSIS_A)
    await session.wait()

    session.reanalyze()
    await settle()
    assert session.snapshot().phase == SessionPhase.LOADING
    assert session.snapshot().analysis is None
    analyzer.pending[IMAGE_A].set_result(ANALYSIS_B)
    await session.wait()

    snapshot = session.snapshot()
    assert snapshot.image == IMAGE_A
    assert snapshot.analysis == ANALYSIS_B


async def test_reset_from_result(analyzer):
    session = AnalysisSession(analyzer)
    session.select_image(IMAGE_A)
    await session.wait()
    assert session.snapshot().phase == SessionPhase.RESULT

    session.reset()

    snapshot = session.snapshot()
    assert snapshot.phase == SessionPhase.IDLE
    assert snapshot.image is None and snapshot.analysis is None and snapshot.error is None


async def test_reset_from_error(analyzer, fake_client):
    fake_client.respond_with(AnalysisError("boom"))
    session = AnalysisSession(analyzer)
    session.select_image(IMAGE_A)
    await session.wait()
    assert session.snapshot().phase == SessionPhase.ERROR

    session.reset()

    snapshot = session.snapshot()
    assert snapshot.phase == SessionPhase.IDLE
    assert snapshot.image is None and snapshot.analysis is None and snapshot.error is None


async def test_reset_while_loading_discards_late_result():
    analyzer = UncancellableAnalyzer()
    session = AnalysisSession(analyzer)
    session.select_image(IMAGE_A)
    await settle()

    session.reset()
    analyzer.pending[IMAGE_A].set_result(ANALYSIS_A)
    await settle()

    snapshot = session.snapshot()
    assert snapshot.phase == SessionPhase.IDLE
    assert snapshot.image is None and snapshot.analysis is None and snapshot.error is None


async def test_newer_selection_wins_when_older_call_is_cancelled():
    analyzer = ControlledAnalyzer()
    session = AnalysisSession(analyzer)

    task_a = session.select_image(IMAGE_A)
    await settle()
    task_b = session.select_image(IMAGE_B)
    await settle()

    analyzer.pending[IMAGE_B].set_result(ANALYSIS_B)
    await session.wait()

    assert task_a.cancelled()
    assert task_b.done()
    snapshot = session.snapshot()
    assert snapshot.image == IMAGE_B
    assert snapshot.analysis == ANALYSIS_B


async def test_newer_selection_wins_when_older_call_finishes_last():
    analyzer = UncancellableAnalyzer()
    session = AnalysisSession(analyzer)

    session.select_image(IMAGE_A)
    await settle()
    session.select_image(IMAGE_B)
    await settle()

    analyzer.pending[IMAGE_B].set_result(ANALYSIS_B)
    await session.wait()
    analyzer.pending[IMAGE_A].set_result(ANALYSIS_A)
    await settle()

    snapshot = session.snapshot()
    assert snapshot.phase == SessionPhase.RESULT
    assert snapshot.image == IMAGE_B
    assert snapshot.analysis == ANALYSIS_B


async def test_late_failure_of_superseded_call_is_ignored():
    analyzer = UncancellableAnalyzer()
    session = AnalysisSession(analyzer)

    session.select_image(IMAGE_A)
    await settle()
    session.select_image(IMAGE_B)
    await settle()

    analyzer.pending[IMAGE_B].set_result(ANALYSIS_B)
    await session.wait()
    analyzer.pending[IMAGE_A].set_exception(AnalysisError("late failure"))
    await settle()

    snapshot = session.snapshot()
    assert snapshot.phase == SessionPhase.RESULT
    assert snapshot.error is None


async def test_select_file_runs_acquisition_and_analysis(analyzer, fake_client):
    session = AnalysisSession(analyzer)

    task = await session.select_file(make_upload(PNG_BYTES, "image/png"))
    await task

    snapshot = session.snapshot()
    assert snapshot.phase == SessionPhase.RESULT
    assert snapshot.image == encode_data_uri(PNG_BYTES, "image/png")
    assert fake_client.models.calls[0]["contents"][0].inline_data.data == PNG_BYTES


async def test_select_file_with_non_image_changes_nothing(analyzer):
    messages = []
    session = AnalysisSession(analyzer, acquisition=ImageAcquisition(notify=messages.append))
    session.select_image(IMAGE_A)
    await session.wait()
    before = session.snapshot()

    with pytest.raises(InvalidImageError):
        await session.select_file(make_upload(b"%PDF-1.7", "application/pdf", "manual.pdf"))

    assert session.snapshot() == before
    assert len(messages) == 1


async def test_unreadable_file_moves_to_error_instead_of_loading(analyzer):
    session = AnalysisSession(analyzer)

    assert await session.select_file(UnreadableUpload()) is None

    snapshot = session.snapshot()
    assert snapshot.phase == SessionPhase.ERROR
    assert snapshot.error == ANALYSIS_FAILED_MESSAGE
    assert snapshot.image is None
    assert not snapshot.is_loading
