# tasks/services.py

import logging
import random
import re
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence

from .ai_engine.intents import IntentType, TaskIntent
from .ai_engine.orchestrator import IntentRecognizer
from .ai_engine.ranking import explain_priority, optimal_now, prioritize, quick_tasks
from .ai_engine.rules import STOP_WORDS, LocalPatternClassifier
from .ai_engine.scoring import QUICK_TASK_MINUTES, build_task_from_intent
from .clock import TimeContext, to_storage, to_wall_clock
from .models import OPEN_STATUSES, Category, Priority, Status, Task
from .storage import StorageUnavailableError, TaskStorage

# Configure logging
logger = logging.getLogger(__name__)

EMPTY_UTTERANCE_REPLY = "I didn't catch that. Could you try again?"
STORAGE_FAILURE_REPLY = "Sorry, I couldn't complete that."
NO_PENDING_REPLY = "Great job! You have no pending tasks."
CLOSING_ENCOURAGEMENT = "You've got this!"

HELP_MESSAGE = (
    "I can help you manage tasks with voice commands. "
    'Say things like "Create a task to call mom", "Complete grocery shopping", '
    '"List my tasks", or "What should I work on now?". '
    "I understand natural speech and I'm optimized for ADHD brain patterns."
)

CLARIFICATION_REPLIES = (
    "I didn't quite understand that. Could you try rephrasing?",
    "I'm not sure what you meant. Try saying it differently.",
    "Could you clarify what you'd like me to do?",
)

MOTIVATIONAL_PHRASES = (
    "Great idea!",
    "You're being so productive!",
    "I love your motivation!",
    "Perfect!",
    "You're crushing it!",
    "Fantastic!",
    "Keep up the great work!",
    "You're doing amazing!",
    "Way to go!",
    "Brilliant!",
)

CELEBRATIONS = (
    'Awesome! Great job completing "{title}"!',
    'Fantastic work! You finished "{title}"!',
    'Well done! "{title}" is complete!',
    'Amazing! You knocked out "{title}"!',
    'Excellent! "{title}" is done!',
)

MILESTONE_EVERY = 5
LIST_LIMIT = 5
MIN_ENERGY_LEVEL = 1
MAX_ENERGY_LEVEL = 5

# Words that name the command rather than the task it targets.
ACTION_WORDS = frozenset({
    "complete", "completed", "finish", "finished", "done", "mark", "check", "off",
    "delete", "remove", "cancel", "get", "rid", "edit", "change", "modify",
    "update", "alter", "task", "just", "please", "as", "the", "my", "i", "i've",
    "to", "a", "of",
})

_WORD = re.compile(r"[a-z0-9']+")


@dataclass(frozen=True)
class AssistantResponse:
    """Reply to one command plus what the assistant understood and touched."""

    message: str
    intent: TaskIntent
    method: str
    task: Optional[Task] = None


def format_due_date(due_date, ctx: TimeContext) -> str:
    """Speaks a due date relative to today: "today", "tomorrow" or M/D."""
    day = to_wall_clock(due_date).date()
    delta = (day - ctx.today).days
    if delta == 0:
        return "today"
    if delta == 1:
        return "tomorrow"
    return f"{day.month}/{day.day}"


def target_phrase(intent: TaskIntent) -> str:
    """The part of a command that names its target task, lowercased."""
    words = _WORD.findall(intent.task_description.lower())
    return " ".join(word for word in words if word not in ACTION_WORDS)


class VoiceAssistantService:
    """
    Consumer layer on top of the recognition and scoring engine.

    Responsibility:
    - Turn one utterance into one spoken-style reply.
    - Create, complete, edit, delete and list tasks through TaskStorage.
    - Hold the user's current energy level for the optimal-now view.

    Constraints:
    - Storage failures become a generic reply; nothing is retried here.
    - Phrase selection goes through the injected ``rng``.
    """

    def __init__(
        self,
        recognizer: Optional[IntentRecognizer] = None,
        storage: Optional[TaskStorage] = None,
        rng: Optional[random.Random] = None,
        energy_level: int = 3,
        motivational_messages: bool = True,
    ):
        self.recognizer = recognizer or IntentRecognizer()
        self.storage = storage or TaskStorage()
        self.rng = rng or random.Random()
        self.motivational_messages = motivational_messages
        self._energy_level = MIN_ENERGY_LEVEL
        self.energy_level = energy_level

        self._handlers: Dict[IntentType, Callable[[TaskIntent, TimeContext], AssistantResponse]] = {
            IntentType.CREATE_TASK: self._handle_create,
            IntentType.REMINDER: self._handle_create,
            IntentType.COMPLETE_TASK: self._handle_complete,
            IntentType.EDIT_TASK: self._handle_edit,
            IntentType.DELETE_TASK: self._handle_delete,
            IntentType.LIST_TASKS: self._handle_list,
            IntentType.HELP: self._handle_help,
        }

    @property
    def energy_level(self) -> int:
        return self._energy_level

    @energy_level.setter
    def energy_level(self, value: int) -> None:
        self._energy_level = max(MIN_ENERGY_LEVEL, min(MAX_ENERGY_LEVEL, int(value)))

    # -----------------------------------------------------------------------
    # Entry point
    # -----------------------------------------------------------------------

    def process_command(self, utterance: str, ctx: Optional[TimeContext] = None) -> AssistantResponse:
        ctx = ctx or TimeContext.current()
        result = self.recognizer.recognize(utterance)
        intent = result.intent

        if not (utterance or "").strip():
            return AssistantResponse(EMPTY_UTTERANCE_REPLY, intent, result.method)

        logger.info(f"Assistant: '{utterance}' -> {intent.intent.value} via {result.method}")
        handler = self._handlers.get(intent.intent, self._handle_unknown)
        try:
            response = handler(intent, ctx)
        except StorageUnavailableError as e:
            logger.exception(f"Assistant: storage failure while handling '{utterance}': {e}")
            return AssistantResponse(STORAGE_FAILURE_REPLY, intent, result.method)
        return AssistantResponse(response.message, intent, result.method, response.task)

    # -----------------------------------------------------------------------
    # Handlers
    # -----------------------------------------------------------------------

    def _reply(self, message: str, intent: TaskIntent, task: Optional[Task] = None) -> AssistantResponse:
        return AssistantResponse(message, intent, "", task)

    def _handle_create(self, intent: TaskIntent, ctx: TimeContext) -> AssistantResponse:
        task = build_task_from_intent(intent, ctx)
        self.storage.save_task(task, ctx)

        opener = f"{self.rng.choice(MOTIVATIONAL_PHRASES)} " if self.motivational_messages else ""
        message = f'{opener}I\'ve created the task "{task.title}"'
        if task.due_date is not None:
            message += f" due {format_due_date(task.due_date, ctx)}"
        message += f". {explain_priority(task, ctx)}."
        if self.motivational_messages:
            message += f" {CLOSING_ENCOURAGEMENT}"
        return self._reply(message, intent, task)

    def _handle_complete(self, intent: TaskIntent, ctx: TimeContext) -> AssistantResponse:
        candidates = [t for t in self.storage.get_all_tasks() if t.status in OPEN_STATUSES]
        task = self.find_matching_task(intent, candidates)
        if task is None:
            return self._not_found(intent)

        task.transition_to(Status.COMPLETED, ctx.now)
        self.storage.save_task(task, ctx)

        message = self.rng.choice(CELEBRATIONS).format(title=task.title)
        completed_today = self.completed_today(ctx)
        if completed_today and completed_today % MILESTONE_EVERY == 0:
            message += f" That's {completed_today} tasks completed today! You're on fire!"
        return self._reply(message, intent, task)

    def _handle_edit(self, intent: TaskIntent, ctx: TimeContext) -> AssistantResponse:
        task = self.find_matching_task(intent, self.storage.get_all_tasks())
        if task is None:
            return self._not_found(intent)

        changes = []
        if intent.priority_level != Priority.MEDIUM:
            task.priority = intent.priority_level
            changes.append(f"priority {task.priority}")
        if intent.category != Category.PERSONAL:
            task.category = intent.category
            changes.append(f"category {task.category}")
        due_date = intent.parsed_due_date(ctx.now)
        if due_date is not None:
            task.due_date = to_storage(due_date)
            changes.append(f"due {format_due_date(task.due_date, ctx)}")

        if not changes:
            return self._reply(f'I found "{task.title}", but I didn\'t catch what to change.', intent, task)

        self.storage.save_task(task, ctx)
        return self._reply(f'Updated "{task.title}": {", ".join(changes)}.', intent, task)

    def _handle_delete(self, intent: TaskIntent, ctx: TimeContext) -> AssistantResponse:
        task = self.find_matching_task(intent, self.storage.get_all_tasks())
        if task is None:
            return self._not_found(intent)
        self.storage.delete_task(task.pk)
        return self._reply(f'I\'ve deleted "{task.title}".', intent)

    def _handle_list(self, intent: TaskIntent, ctx: TimeContext) -> AssistantResponse:
        pending = [t for t in self.storage.get_all_tasks() if t.status == Status.PENDING]
        if not pending:
            return self._reply(NO_PENDING_REPLY, intent)

        top = prioritize(pending, ctx)[:LIST_LIMIT]
        parts = []
        for position, task in enumerate(top, start=1):
            entry = f"{position}. {task.title}"
            if task.due_date is not None:
                entry += f" (due {format_due_date(task.due_date, ctx)})"
            parts.append(entry + ".")
        return self._reply(f"Here are your top {len(top)} tasks: {' '.join(parts)}", intent)

    def _handle_help(self, intent: TaskIntent, ctx: TimeContext) -> AssistantResponse:
        return self._reply(HELP_MESSAGE, intent)

    def _handle_unknown(self, intent: TaskIntent, ctx: TimeContext) -> AssistantResponse:
        return self._reply(self.rng.choice(CLARIFICATION_REPLIES), intent)

    def _not_found(self, intent: TaskIntent) -> AssistantResponse:
        return self._reply(f'I couldn\'t find a task matching "{intent.task_description}".', intent)

    # -----------------------------------------------------------------------
    # Queries
    # -----------------------------------------------------------------------

    def find_matching_task(self, intent: TaskIntent, tasks: Sequence[Task]) -> Optional[Task]:
        """
        Resolves the task a command refers to.

        Tries, in order: the intent's target id; the first task whose title
        contains the target phrase or is contained in it; the first task
        sharing the most keywords with the phrase (at least one).
        """
        if intent.target_task_id:
            for task in tasks:
                if str(task.pk) == intent.target_task_id:
                    return task

        phrase = target_phrase(intent)
        if not phrase:
            return None

        for task in tasks:
            title = task.title.lower()
            if phrase in title or title in phrase:
                return task

        wanted = set(LocalPatternClassifier.extract_keywords(phrase))
        best, best_overlap = None, 0
        for task in tasks:
            words = {w for w in _WORD.findall(task.title.lower()) if w not in STOP_WORDS}
            words.update(str(tag).lower() for tag in task.tags)
            overlap = len(wanted & words)
            if overlap > best_overlap:
                best, best_overlap = task, overlap
        return best

    def completed_today(self, ctx: TimeContext) -> int:
        return sum(
            1 for t in self.storage.get_all_tasks()
            if t.status == Status.COMPLETED and to_wall_clock(t.completed_at).date() == ctx.today
        )

    def pending_tasks(self) -> List[Task]:
        return [t for t in self.storage.get_all_tasks() if t.status == Status.PENDING]

    def get_optimal_tasks(self, ctx: Optional[TimeContext] = None) -> List[Task]:
        ctx = ctx or TimeContext.current()
        return optimal_now(prioritize(self.pending_tasks(), ctx), self.energy_level, ctx)

    def get_quick_tasks(self, ctx: Optional[TimeContext] = None, max_minutes: int = QUICK_TASK_MINUTES) -> List[Task]:
        ctx = ctx or TimeContext.current()
        return quick_tasks(prioritize(self.pending_tasks(), ctx), max_minutes)

    def welcome_message(self, ctx: Optional[TimeContext] = None) -> str:
        ctx = ctx or TimeContext.current()
        if ctx.hour < 12:
            greeting = "Good morning"
        elif ctx.hour < 17:
            greeting = "Good afternoon"
        else:
            greeting = "Good evening"
        return (
            f"{greeting}! I'm your ADHD-friendly voice assistant. "
            "I'm here to help you manage your tasks. What would you like to work on?"
        )
