"""Language classification using langdetect."""

from __future__ import annotations

import logging
import threading

from langdetect.detector_factory import PROFILES_DIRECTORY, DetectorFactory
from langdetect.lang_detect_exception import LangDetectException

from src.config_utils import DEFAULT_MAX_TEXT_CHARS, LanguageDetectionSettings

logger = logging.getLogger(__name__)

_CLASSIFIER_LOCK = threading.Lock()
_CLASSIFIER_INSTANCE: LanguageClassifier | None = None


class ModelLoadError(Exception):
    """Raised when the language profiles cannot be loaded."""


class ClassificationError(Exception):
    """Raised when a text cannot be assigned a language."""


class LanguageClassifier:
    """Shared language detector that resets itself after every detection.

    A langdetect ``Detector`` accumulates the text appended to it, so each
    call appends, detects and then swaps in a fresh detector under one lock.
    Callers never see the underlying detector.
    """

    def __init__(
        self,
        factory: DetectorFactory,
        *,
        max_text_chars: int = DEFAULT_MAX_TEXT_CHARS,
    ) -> None:
        self._factory = factory
        self._max_text_chars = max_text_chars
        self._lock = threading.Lock()
        self._detector = self._new_detector()

    def _new_detector(self):
        detector = self._factory.create()
        detector.set_max_text_length(self._max_text_chars)
        return detector

    def detect(self, text: str) -> str:
        """Return the language code for ``text``."""
        with self._lock:
            try:
                self._detector.append(text)
                code = self._detector.detect()
            except LangDetectException as exc:
                raise ClassificationError(f"Language detection failed: {exc}") from exc
            finally:
                self._detector = self._new_detector()
        logger.debug("Language detected: %s", code)
        return code


def load_language_classifier(
    settings: LanguageDetectionSettings | None = None,
) -> LanguageClassifier:
    """Load the language profiles and build a classifier around them."""
    settings = settings or LanguageDetectionSettings()
    profiles_dir = str(settings.profiles_dir or PROFILES_DIRECTORY)

    factory = DetectorFactory()
    try:
        factory.load_profile(profiles_dir)
    except (LangDetectException, OSError) as exc:
        raise ModelLoadError(
            f"Failed to load language profiles from {profiles_dir}: {exc}"
        ) from exc
    factory.set_seed(settings.seed)

    logger.info(
        "Loaded %d language profiles from %s",
        len(factory.get_lang_list()),
        profiles_dir,
    )
    return LanguageClassifier(factory, max_text_chars=settings.max_text_chars)


def get_shared_classifier(
    settings: LanguageDetectionSettings | None = None,
) -> LanguageClassifier:
    """Return the process-wide classifier, loading it on first use."""
    global _CLASSIFIER_INSTANCE
    if _CLASSIFIER_INSTANCE is not None:
        return _CLASSIFIER_INSTANCE
    with _CLASSIFIER_LOCK:
        if _CLASSIFIER_INSTANCE is not None:
            return _CLASSIFIER_INSTANCE
        _CLASSIFIER_INSTANCE = load_language_classifier(settings)
        return _CLASSIFIER_INSTANCE
