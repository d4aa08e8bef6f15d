# tasks/ai_engine/__init__.py
"""
AI Engine Package
=================

This package contains the intent recognition pipeline and the
deterministic priority scoring engine behind the voice task assistant.

Modules:
--------
- intents: TaskIntent and the intent/action enumerations
- rules: Local keyword/phrase classifier (fast, never fails)
- external_classifier: OpenAI fallback classifier for low-confidence input
- cache: Django-cache-backed memo of utterance -> intent
- orchestrator: Recognition coordinator (cache, local, remote, fallback)
- scoring: Seven sub-scores and the weighted composite priority score
- ranking: Prioritized order, filtered views and rank explanations
- celery_tasks: Periodic and on-demand rescoring via Celery

Architecture:
-------------
Every utterance flows through the IntentRecognizer, which returns exactly
one TaskIntent and reports which layer produced it:

Recognition Methods:
--------------------
- "empty": Blank input, unknown intent with zero confidence
- "cached": Retrieved from the intent cache
- "local": Local classifier at or above the 0.7 confidence threshold
- "remote": OpenAI fallback at or above the 0.6 confidence threshold
- "local_fallback": Best local guess (remote absent, failed or unsure)

Scoring and ranking never read the clock; callers pass a TimeContext.

Usage:
------
    from tasks.ai_engine import IntentRecognizer, prioritize
    from tasks.clock import TimeContext

    recognizer = IntentRecognizer()
    intent = recognizer.recognize_intent("remind me to email the client tomorrow")
    ranked = prioritize(tasks, TimeContext.current())
"""

from .cache import IntentCache, normalize_utterance
from .celery_tasks import rescore_open_tasks, rescore_task
from .external_classifier import (
    ParseFailedError,
    RemoteClassifierError,
    RemoteFallbackClassifier,
    RemoteUnavailableError,
    RequestFailedError,
)
from .intents import IntentType, TaskAction, TaskIntent
from .orchestrator import (
    RECOGNITION_METHOD_CACHE,
    RECOGNITION_METHOD_EMPTY,
    RECOGNITION_METHOD_FALLBACK,
    RECOGNITION_METHOD_LOCAL,
    RECOGNITION_METHOD_REMOTE,
    IntentClassifier,
    IntentRecognizer,
    RecognitionResult,
)
from .ranking import explain_priority, hyperfocus_tasks, optimal_now, prioritize, quick_tasks
from .rules import LocalPatternClassifier
from .scoring import build_task_from_intent, compute_quadrant, score_intent, score_task

__all__ = [
    # Core classes
    "IntentRecognizer",
    "LocalPatternClassifier",
    "RemoteFallbackClassifier",
    "IntentCache",
    "IntentClassifier",
    "RecognitionResult",
    "TaskIntent",
    "IntentType",
    "TaskAction",
    # Errors
    "RemoteClassifierError",
    "RemoteUnavailableError",
    "RequestFailedError",
    "ParseFailedError",
    # Functions
    "normalize_utterance",
    "score_task",
    "score_intent",
    "build_task_from_intent",
    "compute_quadrant",
    "prioritize",
    "optimal_now",
    "quick_tasks",
    "hyperfocus_tasks",
    "explain_priority",
    "rescore_open_tasks",
    "rescore_task",
    # Constants
    "RECOGNITION_METHOD_CACHE",
    "RECOGNITION_METHOD_EMPTY",
    "RECOGNITION_METHOD_FALLBACK",
    "RECOGNITION_METHOD_LOCAL",
    "RECOGNITION_METHOD_REMOTE",
]
