"""
engine.py

Long-lived text recognition engine with an explicit lifecycle.

State machine:
    uninitialized -> initializing -> ready
    ready -> error (failed call) -> initializing (next call retries)
    any -> terminated (shutdown; no further use)

One engine wraps one TextRecognizer backend. Backends are stateful and
not safe for concurrent use, so every entry point takes the engine lock:
verification requests run in parallel but recognition is serial.

Ownership is scoped: the application acquires the engine through
``open_engine()`` and the context manager guarantees ``shutdown()`` on
normal return, exception, or SystemExit raised from a signal handler.
"""

import logging
import threading
from contextlib import contextmanager
from typing import Iterator, List, Optional

from CertVerifier import config
from CertVerifier.recognizers import TextRecognizer, build_recognizer
from CertVerifier.schemas import EngineState, EngineStatus, RecognizedText
from CertVerifier.utils import ImageFileError, decode_image

logger = logging.getLogger(__name__)


class RecognitionError(Exception):
    """Recognition could not produce text. Fatal to a verification."""

    pass


class EngineInitializationError(RecognitionError):
    """The backend could not be brought to the ready state."""

    pass


class EngineShutdownError(RecognitionError):
    """The engine was used after shutdown."""

    pass


class RecognitionEngine:
    """
    Serialized owner of a TextRecognizer backend.

    Initialization is lazy: the first ``recognize()`` (or an explicit
    ``ensure_ready()``) loads the backend. A failed load or a failed
    recognition leaves the engine in ``error`` and the next call retries
    initialization.
    """

    def __init__(
        self,
        recognizer: TextRecognizer,
        languages: Optional[List[str]] = None,
    ):
        self._recognizer = recognizer
        self._languages = list(
            languages
            if languages is not None
            else getattr(recognizer, "languages", config.OCR_LANGUAGES)
        )
        self._state = EngineState.UNINITIALIZED
        self._lock = threading.Lock()

    @property
    def state(self) -> EngineState:
        return self._state

    def ensure_ready(self) -> None:
        """Bring the backend to ``ready``, initializing it if needed."""
        with self._lock:
            self._ensure_ready_locked()

    def _ensure_ready_locked(self) -> None:
        if self._state == EngineState.TERMINATED:
            raise EngineShutdownError("Recognition engine has been shut down")
        if self._state == EngineState.READY:
            return

        if self._state == EngineState.ERROR:
            logger.info("Re-initializing %s engine after error", self._recognizer.name)

        self._state = EngineState.INITIALIZING
        try:
            self._recognizer.load()
        except Exception as e:
            self._state = EngineState.ERROR
            logger.error("Failed to initialize %s engine: %s", self._recognizer.name, e)
            raise EngineInitializationError(
                f"Failed to initialize {self._recognizer.name} engine: {e}"
            ) from e

        self._state = EngineState.READY
        logger.info(
            "%s engine initialized with languages: %s",
            self._recognizer.name,
            "+".join(self._languages),
        )

    def recognize(self, image: bytes) -> RecognizedText:
        """
        Recognize text in an encoded image buffer.

        Raises:
            EngineShutdownError: If called after ``shutdown()``.
            EngineInitializationError: If the backend cannot be loaded.
            RecognitionError: If decoding or recognition fails.
        """
        with self._lock:
            self._ensure_ready_locked()

            try:
                decoded = decode_image(image)
            except ImageFileError as e:
                raise RecognitionError(str(e)) from e

            try:
                result = self._recognizer.recognize(decoded)
            except Exception as e:
                self._state = EngineState.ERROR
                logger.error("Recognition failed: %s", e)
                raise RecognitionError(f"Text recognition failed: {e}") from e

        logger.info(
            "Recognized %d line(s), confidence=%.1f",
            len(result.lines),
            result.confidence,
        )
        return result

    def shutdown(self) -> None:
        """Release backend resources. The engine cannot be used afterwards."""
        with self._lock:
            if self._state == EngineState.TERMINATED:
                logger.warning("Recognition engine already shut down")
                return

            try:
                self._recognizer.release()
            finally:
                self._state = EngineState.TERMINATED
                logger.info("%s engine shut down", self._recognizer.name)

    def status(self) -> EngineStatus:
        return EngineStatus(
            state=self._state,
            backend=self._recognizer.name,
            languages=self._languages,
            ready=self._state == EngineState.READY,
        )


@contextmanager
def open_engine(
    backend: Optional[str] = None,
    languages: Optional[List[str]] = None,
    recognizer: Optional[TextRecognizer] = None,
) -> Iterator[RecognitionEngine]:
    """
    Acquire a recognition engine for the duration of a ``with`` block.

    Args:
        backend: Backend name, defaults to ``config.OCR_BACKEND``.
        languages: Language set, defaults to ``config.OCR_LANGUAGES``.
        recognizer: Pre-built backend; ``backend`` is ignored when given.

    The engine is shut down when the block exits, however it exits.
    """
    if recognizer is None:
        recognizer = build_recognizer(backend, languages=languages)

    engine = RecognitionEngine(recognizer, languages=languages)
    try:
        yield engine
    finally:
        engine.shutdown()
