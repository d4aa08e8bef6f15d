# tasks/ai_engine/rules.py

import logging
import re
from typing import List, Optional, Sequence, Tuple

from ..models import Category
from .intents import IntentType, TaskAction, TaskIntent

# Configure logging for rule-engine auditing
logger = logging.getLogger(__name__)


# (intent, action, confidence, trigger phrases)
# Families overlap textually ("complete" vs "delete" utterances), so this
# order is the precedence order: the first matching family wins.
INTENT_PATTERNS: Tuple[Tuple[IntentType, Optional[TaskAction], float, Tuple[str, ...]], ...] = (
    (IntentType.CREATE_TASK, TaskAction.CREATE, 0.8, (
        "create task", "add task", "new task", "make a task",
        "i need to", "i have to", "i should", "remind me to",
        "don't forget to", "remember to", "task:", "todo:",
    )),
    (IntentType.COMPLETE_TASK, TaskAction.COMPLETE, 0.9, (
        "complete", "done", "finished", "mark as done",
        "completed", "finish", "check off",
    )),
    (IntentType.EDIT_TASK, TaskAction.EDIT, 0.85, (
        "edit", "change", "modify", "update", "alter",
    )),
    (IntentType.DELETE_TASK, TaskAction.DELETE, 0.9, (
        "delete", "remove", "cancel", "get rid of",
    )),
    (IntentType.LIST_TASKS, TaskAction.LIST, 0.95, (
        "list tasks", "show tasks", "what tasks", "my tasks",
        "what do i have", "what's on my list",
    )),
    (IntentType.HELP, None, 0.9, (
        "help", "what can you do", "how do i", "explain",
    )),
)

UNMATCHED_CONFIDENCE = 0.3

# First matching set wins; "call" is deliberately absent from WORK.
CATEGORY_KEYWORDS: Tuple[Tuple[Category, Tuple[str, ...]], ...] = (
    (Category.WORK, ("work", "office", "meeting", "email", "project")),
    (Category.HEALTH, ("health", "doctor", "medicine", "exercise", "workout")),
    (Category.LEARNING, ("learn", "study", "read", "course", "tutorial")),
    (Category.SOCIAL, ("social", "friend", "family", "party", "visit")),
    (Category.CREATIVE, ("creative", "art", "music", "write", "design")),
    (Category.URGENT, ("urgent", "asap", "immediately", "now", "emergency")),
    (Category.MAINTENANCE, ("clean", "fix", "repair", "maintain", "organize")),
)

URGENCY_KEYWORDS: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("urgent", ("urgent", "asap", "immediately", "now", "emergency")),
    ("high", ("important", "priority", "high", "critical")),
    ("low", ("low", "whenever", "sometime", "eventually")),
)

DUE_DATE_KEYWORDS: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("today", ("today", "this morning", "this afternoon", "this evening", "tonight")),
    ("tomorrow", ("tomorrow", "next morning", "next afternoon", "next evening")),
    ("next week", ("next week", "next monday", "next tuesday", "next wednesday",
                   "next thursday", "next friday")),
    ("this week", ("this week", "this monday", "this tuesday", "this wednesday",
                   "this thursday", "this friday")),
)

DURATION_KEYWORDS: Tuple[Tuple[int, Tuple[str, ...]], ...] = (
    (5, ("quick", "fast", "briefly", "call", "email", "text")),
    (60, ("meeting", "appointment", "class", "session")),
    (120, ("project", "research", "study", "read", "write")),
)
DEFAULT_MINUTES = 30

STOP_WORDS = frozenset({
    "the", "a", "an", "and", "or", "but", "in", "on", "at", "to", "for", "of",
    "with", "by", "is", "are", "was", "were", "be", "been", "being", "have",
    "has", "had", "do", "does", "did", "will", "would", "could", "should",
    "may", "might", "must", "can", "i", "you", "he", "she", "it", "we", "they",
    "me", "him", "her", "us", "them", "my", "your", "his", "its", "our",
    "their", "this", "that", "these", "those",
})

FILLER_PREFIX = re.compile(
    r"^(create task|add task|new task|remind me to|don't forget to|remember to|"
    r"i need to|i have to|i should|task:|todo:)\s*",
    re.IGNORECASE,
)


def _contains_any(text: str, patterns: Sequence[str]) -> bool:
    return any(pattern in text for pattern in patterns)


class LocalPatternClassifier:
    """
    Deterministic keyword/phrase classifier.

    Never fails: every non-empty utterance yields a TaskIntent. Confidence
    is a fixed constant per intent family, not a measure of match strength.
    Attribute extraction runs regardless of which family matched.
    """

    name = "local"

    def classify(self, utterance: str) -> TaskIntent:
        text = utterance.strip()
        lowered = text.lower()

        intent, action, confidence = self._match_family(lowered)

        result = TaskIntent(
            intent=intent,
            task_description=self.clean_description(text),
            raw_transcript=utterance,
            category=self.extract_category(lowered),
            urgency=self.extract_urgency(lowered),
            due_date=self.extract_due_date(lowered),
            confidence=confidence,
            estimated_minutes=self.estimate_minutes(lowered),
            keywords=self.extract_keywords(lowered),
            action=action,
        )
        logger.debug(f"Local classifier: '{text}' -> {intent.value} ({confidence:.2f})")
        return result

    def _match_family(self, lowered: str) -> Tuple[IntentType, Optional[TaskAction], float]:
        for intent, action, confidence, triggers in INTENT_PATTERNS:
            if _contains_any(lowered, triggers):
                return intent, action, confidence
        # Unclassified speech is treated as a task-creation attempt.
        return IntentType.CREATE_TASK, TaskAction.CREATE, UNMATCHED_CONFIDENCE

    @staticmethod
    def extract_category(lowered: str) -> Category:
        for category, keywords in CATEGORY_KEYWORDS:
            if _contains_any(lowered, keywords):
                return category
        return Category.PERSONAL

    @staticmethod
    def extract_urgency(lowered: str) -> str:
        for tier, keywords in URGENCY_KEYWORDS:
            if _contains_any(lowered, keywords):
                return tier
        return "medium"

    @staticmethod
    def extract_due_date(lowered: str) -> Optional[str]:
        for token, keywords in DUE_DATE_KEYWORDS:
            if _contains_any(lowered, keywords):
                return token
        return None

    @staticmethod
    def extract_keywords(lowered: str) -> List[str]:
        return [word for word in lowered.split() if len(word) > 2 and word not in STOP_WORDS]

    @staticmethod
    def estimate_minutes(lowered: str) -> int:
        for minutes, keywords in DURATION_KEYWORDS:
            if _contains_any(lowered, keywords):
                return minutes
        return DEFAULT_MINUTES

    @staticmethod
    def clean_description(text: str) -> str:
        cleaned = FILLER_PREFIX.sub("", text.strip()).strip()
        if cleaned:
            cleaned = cleaned[0].upper() + cleaned[1:]
        return cleaned
