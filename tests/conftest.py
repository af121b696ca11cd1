import io
import os

# Keep test runs from writing rotating log files into the working tree
os.environ.setdefault("LOG_DIR", "")

import pytest
from PIL import Image

from simpledo.models import SearchAnswer, Source
from simpledo.services.pipeline import ImageSearchPipeline
from simpledo.services.storage_service import LocalStorageService
from simpledo.services.todo_store import TodoStore


class FakeGeminiClient:
    """Plays back scripted outcomes. An Exception outcome is raised, anything else returned."""

    def __init__(self, ocr=None, search=None, on_extract=None):
        self.ocr_outcomes = list(ocr or [])
        self.search_outcomes = list(search or [])
        self.on_extract = on_extract
        self.ocr_calls = []
        self.search_calls = []

    def extract_text(self, image, mime_type):
        self.ocr_calls.append((image, mime_type))
        if self.on_extract:
            self.on_extract()
        return self._next(self.ocr_outcomes)

    def grounded_search(self, query):
        self.search_calls.append(query)
        return self._next(self.search_outcomes)

    @staticmethod
    def _next(outcomes):
        outcome = outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class RecordingSleep:
    def __init__(self):
        self.delays = []

    def __call__(self, seconds):
        self.delays.append(seconds)


@pytest.fixture
def png_bytes():
    img = Image.new("RGB", (64, 32), color=(255, 255, 255))
    for x in range(10, 50):
        img.putpixel((x, 16), (0, 0, 0))
    buffer = io.BytesIO()
    img.save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def storage(tmp_path):
    return LocalStorageService(str(tmp_path / "local_storage.json"))


@pytest.fixture
def store(storage):
    return TodoStore(storage)


@pytest.fixture
def fake_sleep():
    return RecordingSleep()


@pytest.fixture
def invoice_answer():
    return SearchAnswer(
        text="## Option 1: **Invoice #123 found** ##",
        sources=[Source(uri="https://x.test", title="Source")],
    )


@pytest.fixture
def make_pipeline(fake_sleep):
    def _make(client, **kwargs):
        kwargs.setdefault("sleep", fake_sleep)
        return ImageSearchPipeline(client, **kwargs)
    return _make
