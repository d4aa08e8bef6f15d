# tasks/ai_engine/intents.py
"""
Recognition output types.

A ``TaskIntent`` is created per utterance, consumed once by the service
layer and then discarded (apart from the intent cache). Its wire form uses
the camelCase keys the remote classifier is instructed to produce.
"""

from __future__ import annotations

import datetime
import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from django.db import models

from ..clock import resolve_due_token
from ..models import MAX_ESTIMATED_MINUTES, Category, Priority

URGENCY_TIERS = ("low", "medium", "high", "urgent")


class IntentType(models.TextChoices):
    CREATE_TASK = "createTask", "Create Task"
    REMINDER = "reminder", "Reminder"
    QUESTION = "question", "Question"
    HELP = "help", "Help"
    EXPLAIN = "explain", "Explain"
    EDIT_TASK = "editTask", "Edit Task"
    DELETE_TASK = "deleteTask", "Delete Task"
    COMPLETE_TASK = "completeTask", "Complete Task"
    PAUSE_TASK = "pauseTask", "Pause Task"
    RESUME_TASK = "resumeTask", "Resume Task"
    LIST_TASKS = "listTasks", "List Tasks"
    SEARCH_TASKS = "searchTasks", "Search Tasks"
    PRIORITIZE_TASK = "prioritizeTask", "Prioritize Task"
    SCHEDULE = "schedule", "Schedule"
    UNKNOWN = "unknown", "Unknown"

    @classmethod
    def parse(cls, value) -> "IntentType":
        try:
            return cls(str(value).strip())
        except ValueError:
            return cls.UNKNOWN


class TaskAction(models.TextChoices):
    CREATE = "create", "Create"
    EDIT = "edit", "Edit"
    DELETE = "delete", "Delete"
    COMPLETE = "complete", "Complete"
    PAUSE = "pause", "Pause"
    RESUME = "resume", "Resume"
    PRIORITIZE = "prioritize", "Prioritize"
    SCHEDULE = "schedule", "Schedule"
    SEARCH = "search", "Search"
    LIST = "list", "List"

    @classmethod
    def parse(cls, value) -> Optional["TaskAction"]:
        if value is None:
            return None
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return None


def normalize_urgency(value: Any) -> str:
    tier = str(value or "").strip().lower()
    return tier if tier in URGENCY_TIERS else "medium"


@dataclass
class TaskIntent:
    intent: IntentType
    task_description: str
    raw_transcript: str
    category: Category = Category.PERSONAL
    urgency: str = "medium"
    due_date: Optional[str] = None
    context: Optional[str] = None
    confidence: float = 0.0
    estimated_minutes: Optional[int] = None
    keywords: List[str] = field(default_factory=list)
    action: Optional[TaskAction] = None
    target_task_id: Optional[str] = None

    @property
    def priority_level(self) -> Priority:
        return Priority.parse(self.urgency)

    def parsed_due_date(self, now: datetime.datetime) -> Optional[datetime.datetime]:
        return resolve_due_token(self.due_date, now)

    @property
    def is_high_confidence(self) -> bool:
        return self.confidence >= 0.8

    @property
    def is_medium_confidence(self) -> bool:
        return 0.6 <= self.confidence < 0.8

    @property
    def is_low_confidence(self) -> bool:
        return self.confidence < 0.6

    def to_dict(self) -> Dict[str, Any]:
        return {
            "intent": self.intent.value,
            "taskDescription": self.task_description,
            "rawTranscript": self.raw_transcript,
            "category": self.category.value,
            "urgency": self.urgency,
            "dueDate": self.due_date,
            "context": self.context,
            "confidence": self.confidence,
            "estimatedMinutes": self.estimated_minutes,
            "keywords": list(self.keywords),
            "action": self.action.value if self.action else None,
            "targetTaskId": self.target_task_id,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], raw_transcript: Optional[str] = None) -> "TaskIntent":
        """
        Builds an intent from its wire form. Unknown enumeration values map to
        their default variants; numeric fields are coerced and clamped.
        """
        try:
            confidence = float(data.get("confidence", 0.0))
        except (TypeError, ValueError, OverflowError):
            confidence = 0.0
        if not math.isfinite(confidence):
            confidence = 0.0
        confidence = max(0.0, min(1.0, confidence))

        minutes = data.get("estimatedMinutes")
        try:
            minutes = int(minutes) if minutes is not None else None
        except (TypeError, ValueError, OverflowError):
            minutes = None
        if minutes is not None and not 1 <= minutes <= MAX_ESTIMATED_MINUTES:
            minutes = None

        keywords = data.get("keywords") or []
        if not isinstance(keywords, list):
            keywords = [keywords]

        due_date = data.get("dueDate")
        if due_date is not None:
            due_date = str(due_date).strip() or None
            if due_date and due_date.lower() == "null":
                due_date = None

        target = data.get("targetTaskId")

        return cls(
            intent=IntentType.parse(data.get("intent")),
            task_description=str(data.get("taskDescription") or "").strip(),
            raw_transcript=raw_transcript if raw_transcript is not None else str(data.get("rawTranscript") or ""),
            category=Category.parse(data.get("category")),
            urgency=normalize_urgency(data.get("urgency")),
            due_date=due_date,
            context=(str(data["context"]) if data.get("context") else None),
            confidence=confidence,
            estimated_minutes=minutes,
            keywords=[str(k) for k in keywords],
            action=TaskAction.parse(data.get("action")),
            target_task_id=str(target) if target else None,
        )
