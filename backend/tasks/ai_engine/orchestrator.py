# tasks/ai_engine/orchestrator.py

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol

from .cache import IntentCache, normalize_utterance
from .external_classifier import RemoteClassifierError, RemoteFallbackClassifier
from .intents import IntentType, TaskIntent
from .rules import LocalPatternClassifier

# Configure logging for pipeline auditing
logger = logging.getLogger(__name__)

LOCAL_CONFIDENCE_THRESHOLD = 0.7
REMOTE_CONFIDENCE_THRESHOLD = 0.6

RECOGNITION_METHOD_EMPTY = "empty"
RECOGNITION_METHOD_CACHE = "cached"
RECOGNITION_METHOD_LOCAL = "local"
RECOGNITION_METHOD_REMOTE = "remote"
RECOGNITION_METHOD_FALLBACK = "local_fallback"


class IntentClassifier(Protocol):
    """Strategy interface shared by the local and remote classifiers."""

    def classify(self, utterance: str) -> TaskIntent:
        ...


@dataclass(frozen=True)
class RecognitionResult:
    intent: TaskIntent
    method: str


class IntentRecognizer:
    """
    The central coordination layer for intent recognition.

    Short-circuits in order:
      1. empty input -> unknown intent, confidence 0.0 (not cached)
      2. cache hit on the normalized utterance
      3. local classifier at or above LOCAL_CONFIDENCE_THRESHOLD
      4. remote classifier (only if configured) at or above REMOTE_CONFIDENCE_THRESHOLD
      5. the local result, whatever its confidence

    Remote failures are logged and absorbed here; recognition never raises
    for a low-confidence or unreachable-remote case.
    """

    def __init__(
        self,
        local_classifier: Optional[IntentClassifier] = None,
        remote_classifier: Optional[IntentClassifier] = None,
        cache: Optional[IntentCache] = None,
        skip_remote_init: bool = False,
    ):
        """
        Args:
            local_classifier: Deterministic classifier (default: LocalPatternClassifier).
            remote_classifier: Fallback classifier; built from settings unless given
                or ``skip_remote_init`` is set.
            cache: Intent cache (default: IntentCache on INTENT_CACHE_ALIAS).
            skip_remote_init: Never build a remote classifier (tests, offline use).
        """
        self.local_classifier = local_classifier or LocalPatternClassifier()
        self.cache = cache if cache is not None else IntentCache()
        if remote_classifier is None and not skip_remote_init:
            remote_classifier = RemoteFallbackClassifier()
        self.remote_classifier = remote_classifier

    @property
    def remote_available(self) -> bool:
        return bool(self.remote_classifier is not None and getattr(self.remote_classifier, "is_configured", True))

    def recognize_intent(self, utterance: str) -> TaskIntent:
        return self.recognize(utterance).intent

    def recognize(self, utterance: str) -> RecognitionResult:
        """Recognizes one utterance and reports which layer produced the result."""

        # --- LAYER 0: EMPTY INPUT ---
        if not utterance or not utterance.strip():
            return RecognitionResult(
                TaskIntent(
                    intent=IntentType.UNKNOWN,
                    task_description="",
                    raw_transcript=utterance or "",
                    confidence=0.0,
                ),
                RECOGNITION_METHOD_EMPTY,
            )

        key = normalize_utterance(utterance)

        # --- LAYER 1: CACHE ---
        cached = self.cache.lookup(key)
        if cached is not None:
            return RecognitionResult(cached, RECOGNITION_METHOD_CACHE)

        # --- LAYER 2: LOCAL PATTERNS ---
        local_intent = self.local_classifier.classify(utterance)
        if local_intent.confidence >= LOCAL_CONFIDENCE_THRESHOLD:
            self.cache.store(key, local_intent)
            return RecognitionResult(local_intent, RECOGNITION_METHOD_LOCAL)

        # --- LAYER 3: REMOTE FALLBACK ---
        if self.remote_available:
            try:
                remote_intent = self.remote_classifier.classify(utterance)
            except RemoteClassifierError as e:
                logger.warning(f"Recognizer: remote classification failed for '{utterance}': {e}")
            else:
                if remote_intent.confidence >= REMOTE_CONFIDENCE_THRESHOLD:
                    self.cache.store(key, remote_intent)
                    return RecognitionResult(remote_intent, RECOGNITION_METHOD_REMOTE)
                logger.info(
                    f"Recognizer: remote confidence {remote_intent.confidence:.2f} "
                    f"below threshold for '{utterance}'"
                )

        # --- LAYER 4: BEST LOCAL GUESS ---
        return RecognitionResult(local_intent, RECOGNITION_METHOD_FALLBACK)

    def health_check(self) -> Dict[str, Any]:
        remote_health = getattr(self.remote_classifier, "health_check", None)
        return {
            "recognizer": "healthy",
            "local_classifier": "healthy",
            "remote_available": self.remote_available,
            "remote_classifier": remote_health() if callable(remote_health) else None,
            "cache": self.cache.stats(),
        }
