# simpledo/services/pipeline.py

import threading
import uuid
from typing import Callable, Dict, Optional, Tuple
from loguru import logger

from ..models import PipelineRun, RunStatus, SourceImage
from .gemini import GeminiClient
from .image_utils import preprocess_image
from .render import render_markdown
from .retry import DEFAULT_MAX_ATTEMPTS, exponential_backoff, with_retry

NO_TEXT_MESSAGE = "Could not extract text from the image."
UNEXPECTED_ERROR_MESSAGE = "An error occurred during image processing."


class RunToken:
    """Identifies one pipeline run. Cancelling it wakes any pending retry wait."""

    def __init__(self, run_id: str):
        self.run_id = run_id
        self._cancelled = threading.Event()

    def cancel(self) -> None:
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def wait(self, seconds: float) -> bool:
        return self._cancelled.wait(seconds)


class PreviewStore:
    """Temporary references to pasted images, valid until revoked."""

    def __init__(self):
        self._lock = threading.Lock()
        self._images: Dict[str, SourceImage] = {}

    def create(self, image: SourceImage) -> str:
        preview_id = uuid.uuid4().hex
        with self._lock:
            self._images[preview_id] = image
        return preview_id

    def get(self, preview_id: str) -> Optional[SourceImage]:
        with self._lock:
            return self._images.get(preview_id)

    def revoke(self, preview_id: Optional[str]) -> None:
        if not preview_id:
            return
        with self._lock:
            self._images.pop(preview_id, None)


class ImageSearchPipeline:
    def __init__(
        self,
        client: GeminiClient,
        previews: Optional[PreviewStore] = None,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        backoff: Callable[[int], float] = exponential_backoff,
        sleep: Optional[Callable[[float], object]] = None,
        preprocess: bool = False,
    ):
        """
        Paste -> OCR -> grounded search. Only the most recently started run
        may change the shared state; results from older runs are dropped.

        `sleep` replaces the retry wait (tests pass a fake clock). By default
        the wait is the run token's, so cancelling a run cuts it short.
        """
        self.client = client
        self.previews = previews or PreviewStore()
        self.max_attempts = max_attempts
        self.backoff = backoff
        self._sleep = sleep
        self.preprocess = preprocess
        self._lock = threading.Lock()
        self._current = PipelineRun()
        self._token: Optional[RunToken] = None

    def snapshot(self) -> PipelineRun:
        with self._lock:
            return self._current.model_copy(deep=True)

    def start(self, image: SourceImage) -> Tuple[PipelineRun, RunToken]:
        with self._lock:
            if self._token is not None:
                self._token.cancel()
            self.previews.revoke(self._current.preview_id)

            token = RunToken(uuid.uuid4().hex)
            self._token = token
            self._current = PipelineRun(
                run_id=token.run_id,
                source_image=image,
                preview_id=self.previews.create(image),
                status=RunStatus.EXTRACTING,
            )
            logger.info(f"Started run {token.run_id} for a {image.mime_type} image ({len(image.data)} bytes)")
            return self._current.model_copy(deep=True), token

    def reset(self) -> PipelineRun:
        with self._lock:
            if self._token is not None:
                self._token.cancel()
                logger.info(f"Run {self._token.run_id} cancelled by reset")
            self.previews.revoke(self._current.preview_id)
            self._token = None
            self._current = PipelineRun()
            return self._current.model_copy(deep=True)

    def _update(self, token: RunToken, **changes) -> bool:
        with self._lock:
            if token is not self._token or token.cancelled:
                logger.info(f"Discarding stale result from run {token.run_id}")
                return False
            self._current = self._current.model_copy(update=changes)
            return True

    def _fail(self, token: RunToken, message: str) -> None:
        if self._update(token, status=RunStatus.FAILED, error_message=message):
            logger.error(f"Run {token.run_id} failed: {message}")

    def _retry(self, token: RunToken, call, label: str):
        return with_retry(
            call,
            max_attempts=self.max_attempts,
            backoff=self.backoff,
            sleep=self._sleep or token.wait,
            label=label,
            is_cancelled=lambda: token.cancelled,
        )

    def execute(self, token: RunToken, image: SourceImage) -> None:
        try:
            self._execute(token, image)
        except Exception:
            logger.exception(f"Unexpected error in run {token.run_id}")
            self._fail(token, UNEXPECTED_ERROR_MESSAGE)

    def _execute(self, token: RunToken, image: SourceImage) -> None:
        data, mime_type = image.data, image.mime_type
        if self.preprocess:
            processed = preprocess_image(data)
            if processed is not data:
                data, mime_type = processed, "image/png"
        ocr = self._retry(token, lambda: self.client.extract_text(data, mime_type), "process image")
        if ocr.cancelled:
            return
        if not ocr.ok:
            self._fail(token, ocr.error)
            return

        text = (ocr.value or "").strip()
        if not text:
            self._fail(token, NO_TEXT_MESSAGE)
            return
        if not self._update(token, extracted_text=text, status=RunStatus.SEARCHING):
            return
        logger.info(f"Run {token.run_id} extracted {len(text)} characters, searching...")

        search = self._retry(token, lambda: self.client.grounded_search(text), "perform search")
        if search.cancelled:
            return
        if not search.ok:
            self._fail(token, search.error)
            return

        answer = search.value
        if self._update(
            token,
            status=RunStatus.DONE,
            search_result=answer.text,
            search_result_html=render_markdown(answer.text),
            sources=list(answer.sources),
        ):
            logger.success(f"Run {token.run_id} done with {len(answer.sources)} source(s)")

    def run(self, image: SourceImage) -> PipelineRun:
        """
        Starts a run and processes it in the calling thread. The API goes
        through start() and execute() instead; this is for tests and scripts.
        """
        _, token = self.start(image)
        self.execute(token, image)
        return self.snapshot()
