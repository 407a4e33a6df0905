import asyncio
import io
import json
import sys
from pathlib import Path
from types import SimpleNamespace

import pytest
from fastapi import UploadFile
from starlette.datastructures import Headers

# Add the project root directory to the Python path to allow importing ginkgo_vision
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from ginkgo_vision.services.analyzer import GinkgoAnalyzerService

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + bytes(range(64))

BEST_RESPONSE = {
    "status": "最佳观赏",
    "colorDescription": "金黄灿烂",
    "percentageYellow": 95,
    "scientificAssessment": "叶片已基本完全黄化，建议在上午侧光下拍摄。",
    "prediction": "预计可持续5天",
}

EARLY_RESPONSE = {
    "status": "较适宜观赏",
    "colorDescription": "青翠中透出一丝淡黄",
    "percentageYellow": 20,
    "scientificAssessment": "仍处于变色初期。",
    "prediction": "预计10天后进入盛黄期",
}


class FakeModels:
    """Stands in for ``client.aio.models`` of google-genai.

    Every queued item is used for one call: a string (or None) becomes the
    response text, an exception is raised, a future is awaited first.
    """

    def __init__(self):
        self.calls = []
        self.queue = []

    async def generate_content(self, *, model, contents, config):
        self.calls.append({"model": model, "contents": contents, "config": config})
        item = self.queue.pop(0) if self.queue else json.dumps(BEST_RESPONSE)
        if isinstance(item, asyncio.Future):
            item = await item
        if isinstance(item, BaseException):
            raise item
        return SimpleNamespace(text=item)


class FakeGenaiClient:
    def __init__(self):
        self.models = FakeModels()
        self.aio = SimpleNamespace(models=self.models)

    def respond_with(self, *items):
        self.models.queue.extend(items)


class UnreadableUpload:
    filename = "broken.jpg"
    content_type = "image/jpeg"

    async def read(self):
        raise OSError("device disconnected")


def make_upload(data: bytes = PNG_BYTES, content_type: str = "image/png", filename: str = "leaf.png") -> UploadFile:
    return UploadFile(file=io.BytesIO(data), filename=filename, headers=Headers({"content-type": content_type}))


def as_json(payload) -> str:
    return json.dumps(payload, ensure_ascii=False)


@pytest.fixture
def fake_client() -> FakeGenaiClient:
    return FakeGenaiClient()


@pytest.fixture
def analyzer(fake_client) -> GinkgoAnalyzerService:
    return GinkgoAnalyzerService(client=fake_client, model="gemini-test", temperature=0.4, timeout=5.0)
