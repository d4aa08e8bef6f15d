# tasks/ai_engine/external_classifier.py
"""
External Intent Classifier
==========================

Language-model fallback for utterances the local classifier is unsure
about, via the OpenAI Chat Completions API.

This module is a pure service with NO Django ORM dependencies. It handles
prompt engineering, API communication and response validation.

Unlike the local classifier this one can fail. Every failure is raised as
a ``RemoteClassifierError`` subclass so the coordinator can log it and fall
back to the local result:

- RemoteUnavailableError: no credential configured
- RequestFailedError: transport failure or non-success status
- ParseFailedError: body is not JSON, misses a required key or carries a
  non-finite confidence
"""

from __future__ import annotations

import json
import logging
import math
import re
from typing import Any, Dict, List, Optional

from django.conf import settings
from openai import APIConnectionError, APIError, APIStatusError, APITimeoutError, OpenAI

from ..models import Category, Priority
from .intents import IntentType, TaskIntent

logger = logging.getLogger(__name__)


REQUIRED_KEYS = (
    "intent",
    "taskDescription",
    "category",
    "urgency",
    "dueDate",
    "context",
    "confidence",
    "estimatedMinutes",
    "keywords",
)

# Enumerations advertised to the model, in the order of the data model.
PROMPT_INTENTS = (
    IntentType.CREATE_TASK, IntentType.REMINDER, IntentType.EDIT_TASK,
    IntentType.DELETE_TASK, IntentType.COMPLETE_TASK, IntentType.LIST_TASKS,
    IntentType.HELP, IntentType.QUESTION, IntentType.UNKNOWN,
)


# ---------------------------------------------------------------------------
# Custom Exceptions
# ---------------------------------------------------------------------------


class RemoteClassifierError(Exception):
    """Base class for every remote classification failure."""


class RemoteUnavailableError(RemoteClassifierError):
    """Raised when no remote credential is configured."""


class RequestFailedError(RemoteClassifierError):
    """Raised when the request fails in transport or returns a non-success status."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class ParseFailedError(RemoteClassifierError):
    """Raised when the response body is not the expected intent JSON."""


# ---------------------------------------------------------------------------
# Main Service Class
# ---------------------------------------------------------------------------


class RemoteFallbackClassifier:
    """
    Classifies an utterance into a TaskIntent using a hosted language model.

    The class uses DEFERRED INITIALIZATION - a missing API key does not raise
    in __init__. ``is_configured`` tells the coordinator whether to try it;
    calling ``classify`` anyway raises RemoteUnavailableError.

    Attributes:
        api_key (str | None): OpenAI API key for authentication.
        client (OpenAI | None): Initialized client, or None if unavailable.
        model (str): The chat model to use.
        timeout (float): Transport timeout for one call, in seconds.
        is_configured (bool): Whether the classifier is ready.
        configuration_error (str | None): Why it is not ready, if it is not.
    """

    name = "remote"

    DEFAULT_MODEL: str = "gpt-4o-mini"
    DEFAULT_TEMPERATURE: float = 0.3
    DEFAULT_MAX_TOKENS: int = 500
    DEFAULT_TIMEOUT: float = 10.0

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        timeout: Optional[float] = None,
        **client_kwargs: Any,
    ) -> None:
        """
        Args:
            api_key: OpenAI API key. Falls back to settings.OPENAI_API_KEY.
            model: Model identifier. Falls back to settings.INTENT_FALLBACK_MODEL.
            timeout: Call timeout in seconds. Falls back to settings.INTENT_FALLBACK_TIMEOUT.
            **client_kwargs: Passed through to the OpenAI client (e.g. base_url).
        """
        self.model: str = model or getattr(settings, "INTENT_FALLBACK_MODEL", None) or self.DEFAULT_MODEL
        self.timeout: float = timeout or getattr(settings, "INTENT_FALLBACK_TIMEOUT", None) or self.DEFAULT_TIMEOUT
        self._client_kwargs: Dict[str, Any] = client_kwargs

        self.api_key: Optional[str] = None
        self.client: Optional[OpenAI] = None
        self.is_configured: bool = False
        self.configuration_error: Optional[str] = None

        self._configure(api_key)

    def _configure(self, api_key: Optional[str] = None) -> None:
        resolved_key = api_key or getattr(settings, "OPENAI_API_KEY", None) or ""
        if not resolved_key:
            self.configuration_error = (
                "OPENAI_API_KEY is not configured. "
                "Remote intent classification is disabled."
            )
            logger.info(f"RemoteFallbackClassifier: {self.configuration_error}")
            return

        try:
            self.api_key = resolved_key
            self.client = OpenAI(api_key=self.api_key, timeout=self.timeout, **self._client_kwargs)
            self.is_configured = True
            self.configuration_error = None
            logger.info(f"RemoteFallbackClassifier initialized with model={self.model}")
        except Exception as e:
            self.configuration_error = f"Failed to initialize OpenAI client: {str(e)}"
            logger.error(f"RemoteFallbackClassifier: {self.configuration_error}")
            self.client = None
            self.is_configured = False

    def classify(self, utterance: str) -> TaskIntent:
        """
        Classify one utterance.

        Raises:
            RemoteUnavailableError: no credential configured.
            RequestFailedError: transport error, timeout or non-success status.
            ParseFailedError: unparseable body or missing schema keys.
        """
        if not self.is_configured or self.client is None:
            raise RemoteUnavailableError(self.configuration_error or "Remote classifier not available")

        messages = self._build_messages(utterance)

        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=messages,
                temperature=self.DEFAULT_TEMPERATURE,
                max_tokens=self.DEFAULT_MAX_TOKENS,
                response_format={"type": "json_object"},
                timeout=self.timeout,
            )
        except APIStatusError as e:
            logger.warning(f"Intent API returned status {e.status_code}")
            raise RequestFailedError(f"Intent API error (status {e.status_code})", e.status_code) from e
        except APITimeoutError as e:
            logger.warning(f"Intent API timeout: {e}")
            raise RequestFailedError("Intent API request timed out") from e
        except APIConnectionError as e:
            logger.warning(f"Intent API connection error: {e}")
            raise RequestFailedError("Could not connect to intent API") from e
        except APIError as e:
            logger.error(f"Intent API failure: {e}")
            raise RequestFailedError(f"Intent API failure: {type(e).__name__}") from e

        try:
            raw_content: str = response.choices[0].message.content or ""
        except (AttributeError, IndexError, TypeError) as e:
            raise ParseFailedError("Response carries no message content") from e

        logger.debug(f"RemoteFallbackClassifier: Raw response: {raw_content[:200]}...")

        result = self._validate_and_parse_response(raw_content, utterance)
        logger.info(
            f"RemoteFallbackClassifier: '{utterance}' -> {result.intent.value} "
            f"(confidence={result.confidence:.2f})"
        )
        return result

    def _build_messages(self, utterance: str) -> List[Dict[str, str]]:
        """
        Construct the system and user messages.

        The instruction pins every closed enumeration, asks for JSON only
        and tells the model to be forgiving of disfluent speech.
        """
        intents = "|".join(i.value for i in PROMPT_INTENTS)
        categories = "|".join(c.value for c in Category)
        urgencies = "|".join(p.value for p in Priority)

        system_prompt = (
            "You are an assistant specialized in understanding spoken task-management "
            "commands from users with ADHD. Analyze the user's speech and extract task "
            "information.\n\n"
            "Return ONLY valid JSON with exactly this structure:\n"
            "{\n"
            f'  "intent": "{intents}",\n'
            '  "taskDescription": "clean, actionable description of the task",\n'
            f'  "category": "{categories}",\n'
            f'  "urgency": "{urgencies}",\n'
            '  "dueDate": "extracted date/time if mentioned, null otherwise",\n'
            '  "context": "additional context or details, null if none",\n'
            '  "confidence": 0.0-1.0,\n'
            '  "estimatedMinutes": estimated_time_in_minutes,\n'
            '  "keywords": ["relevant", "keywords", "from", "speech"]\n'
            "}\n\n"
            "RULES:\n"
            "1. Be forgiving of unclear, disfluent or incomplete speech.\n"
            '2. Default to "medium" urgency if unclear.\n'
            '3. Prefer the "personal" category if ambiguous.\n'
            "4. Set confidence from how clear the intent is.\n"
            '5. Understand expressions like "I need to", "Don\'t forget", "Remember to".\n'
            '6. Recognize time expressions: "today", "tomorrow", "this evening", "next week".\n'
            '7. If there is no clear task, use the "question" or "help" intent.\n'
            "8. Return ONLY the JSON object. No markdown, no commentary."
        )

        return [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": utterance},
        ]

    def _validate_and_parse_response(self, raw_json: str, utterance: str) -> TaskIntent:
        """
        Parse and validate the model's JSON.

        Markdown fences are tolerated; anything else that is not a JSON
        object carrying every required key raises ParseFailedError.
        """
        if not raw_json or not raw_json.strip():
            raise ParseFailedError("Empty response from intent API")

        cleaned = re.sub(r"^```(?:json)?\s*", "", raw_json.strip())
        cleaned = re.sub(r"\s*```$", "", cleaned)

        try:
            data = json.loads(cleaned)
        except json.JSONDecodeError as e:
            logger.error(f"Failed to decode intent response as JSON: {e}")
            raise ParseFailedError("Intent API returned invalid JSON") from e

        if not isinstance(data, dict):
            raise ParseFailedError("Intent API returned a non-object JSON value")

        missing = [key for key in REQUIRED_KEYS if key not in data]
        if missing:
            logger.error(f"Intent response missing keys: {missing}")
            raise ParseFailedError(f"Missing required keys in JSON response: {', '.join(missing)}")

        confidence = data["confidence"]
        if isinstance(confidence, float) and not math.isfinite(confidence):
            logger.error(f"Intent response carries a non-finite confidence: {confidence}")
            raise ParseFailedError("Intent API returned a non-finite confidence")

        # The transcript always comes from the caller, never from the model.
        return TaskIntent.from_dict(data, raw_transcript=utterance)

    def health_check(self) -> Dict[str, Any]:
        return {
            "is_configured": self.is_configured,
            "model": self.model,
            "timeout": self.timeout,
            "configuration_error": self.configuration_error,
        }
