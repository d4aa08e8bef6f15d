# tasks/ai_engine/scoring.py
"""
Priority scoring engine.

Computes the 0-100 composite priority score of a task from seven sub-scores.
Every rule is a discrete policy branch and every function takes an explicit
``TimeContext``; nothing here reads the clock.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Dict, Iterable, Tuple

from ..clock import TimeContext, to_storage
from ..models import MAX_ESTIMATED_MINUTES, Category, Priority, Task
from .intents import TaskIntent

# Composite weights (sum to 1.0)
URGENCY_WEIGHT = 0.25
IMPORTANCE_WEIGHT = 0.20
ENERGY_WEIGHT = 0.15
DOPAMINE_WEIGHT = 0.15
TIME_OPTIMIZATION_WEIGHT = 0.10
INTEREST_WEIGHT = 0.10
CONTEXT_WEIGHT = 0.05

# Energy bands (inclusive hours)
HIGH_ENERGY_HOURS = (9, 11)
MEDIUM_ENERGY_HOURS = (17, 20)

WORK_HOURS = (9, 17)
EVENING_START = 17

QUICK_TASK_MINUTES = 15
DEFAULT_INTENT_MINUTES = 30

TIER_URGENCY = {
    Priority.URGENT: 95.0,
    Priority.HIGH: 75.0,
    Priority.MEDIUM: 50.0,
    Priority.LOW: 25.0,
}

CATEGORY_IMPORTANCE = {
    Category.URGENT: 95.0,
    Category.HEALTH: 85.0,
    Category.WORK: 80.0,
    Category.LEARNING: 75.0,
    Category.PERSONAL: 70.0,
    Category.SOCIAL: 65.0,
    Category.CREATIVE: 60.0,
    Category.MAINTENANCE: 55.0,
}

# Inclusive hour windows in which a category is contextually ideal.
CATEGORY_OPTIMAL_HOURS: Dict[Category, Tuple[Tuple[int, int], ...]] = {
    Category.WORK: ((9, 17),),
    Category.CREATIVE: ((10, 12), (19, 22)),
    Category.LEARNING: ((9, 11), (15, 17)),
    Category.SOCIAL: ((17, 22),),
    Category.HEALTH: ((7, 9), (18, 20)),
    Category.MAINTENANCE: ((16, 18),),
    Category.PERSONAL: ((17, 23),),
    Category.URGENT: ((0, 23),),
}

HIGH_INTEREST_CATEGORIES = (Category.CREATIVE, Category.LEARNING)

HIGH_ENERGY_KEYWORDS = ("difficult", "complex", "challenging")
LOW_ENERGY_KEYWORDS = ("easy", "simple", "quick")
HIGH_DOPAMINE_KEYWORDS = ("creative", "fun", "interesting")
LOW_DOPAMINE_KEYWORDS = ("boring", "tedious", "routine")


def _in_band(hour: int, band: Tuple[int, int]) -> bool:
    return band[0] <= hour <= band[1]


def is_high_energy_hour(hour: int) -> bool:
    return _in_band(hour, HIGH_ENERGY_HOURS)


def is_medium_energy_hour(hour: int) -> bool:
    return _in_band(hour, MEDIUM_ENERGY_HOURS)


def is_optimal_hour(category, hour: int) -> bool:
    windows = CATEGORY_OPTIMAL_HOURS[Category.parse(category)]
    return any(_in_band(hour, window) for window in windows)


# ---------------------------------------------------------------------------
# Sub-scores
# ---------------------------------------------------------------------------


def compute_urgency(task: Task, ctx: TimeContext) -> float:
    if task.is_overdue(ctx.now):
        return 100.0
    if task.is_due_today(ctx.now):
        return 90.0
    if task.is_due_soon(ctx.now):
        return 80.0
    return TIER_URGENCY[Priority.parse(task.priority)]


def compute_importance(task: Task) -> float:
    score = CATEGORY_IMPORTANCE[Category.parse(task.category)]
    # Habits and clear deadlines both matter
    if task.is_recurring:
        score += 10.0
    if task.due_date is not None:
        score += 10.0
    return min(100.0, score)


def compute_energy_match(task: Task, ctx: TimeContext) -> float:
    if is_high_energy_hour(ctx.hour):
        return 80.0 if task.energy_level >= 4 else 60.0
    if is_medium_energy_hour(ctx.hour):
        return 80.0 if task.energy_level == 3 else 60.0
    return 80.0 if task.energy_level <= 2 else 40.0


def compute_dopamine(task: Task) -> float:
    return task.dopamine_score * 100.0


def compute_time_optimization(task: Task, ctx: TimeContext) -> float:
    if task.estimated_minutes <= QUICK_TASK_MINUTES and not is_high_energy_hour(ctx.hour):
        return 80.0
    if is_optimal_hour(task.category, ctx.hour):
        return 90.0
    return 50.0


def compute_interest(task: Task) -> float:
    # Coarse, non-personalized proxy
    return 80.0 if Category.parse(task.category) in HIGH_INTEREST_CATEGORIES else 60.0


def compute_context(task: Task, ctx: TimeContext) -> float:
    category = Category.parse(task.category)
    if category == Category.WORK and _in_band(ctx.hour, WORK_HOURS):
        return 90.0
    if category == Category.PERSONAL and ctx.hour >= EVENING_START:
        return 90.0
    return 50.0


@dataclass(frozen=True)
class SubScores:
    urgency: float
    importance: float
    energy_match: float
    dopamine: float
    time_optimization: float
    interest: float
    context: float

    @property
    def composite(self) -> float:
        total = (
            self.urgency * URGENCY_WEIGHT
            + self.importance * IMPORTANCE_WEIGHT
            + self.energy_match * ENERGY_WEIGHT
            + self.dopamine * DOPAMINE_WEIGHT
            + self.time_optimization * TIME_OPTIMIZATION_WEIGHT
            + self.interest * INTEREST_WEIGHT
            + self.context * CONTEXT_WEIGHT
        )
        return max(0.0, min(100.0, total))

    def as_dict(self) -> Dict[str, float]:
        data = asdict(self)
        data["composite"] = self.composite
        return data


def compute_sub_scores(task: Task, ctx: TimeContext) -> SubScores:
    return SubScores(
        urgency=compute_urgency(task, ctx),
        importance=compute_importance(task),
        energy_match=compute_energy_match(task, ctx),
        dopamine=compute_dopamine(task),
        time_optimization=compute_time_optimization(task, ctx),
        interest=compute_interest(task),
        context=compute_context(task, ctx),
    )


def score_task(task: Task, ctx: TimeContext) -> float:
    """Composite priority score in [0, 100]."""
    return compute_sub_scores(task, ctx).composite


def refresh_scores(task: Task, ctx: TimeContext) -> SubScores:
    """Recomputes the derived score fields of ``task`` in place."""
    sub_scores = compute_sub_scores(task, ctx)
    task.urgency_score = sub_scores.urgency
    task.importance_score = sub_scores.importance
    task.priority_score = sub_scores.composite
    return sub_scores


# ---------------------------------------------------------------------------
# Intent-only scoring
# ---------------------------------------------------------------------------


def _has_keyword(keywords: Iterable[str], candidates: Tuple[str, ...]) -> bool:
    return any(k in candidates for k in keywords)


def estimate_energy_level(keywords: Iterable[str]) -> int:
    keywords = list(keywords)
    if _has_keyword(keywords, HIGH_ENERGY_KEYWORDS):
        return 5
    if _has_keyword(keywords, LOW_ENERGY_KEYWORDS):
        return 2
    return 3


def estimate_dopamine(keywords: Iterable[str]) -> float:
    keywords = list(keywords)
    if _has_keyword(keywords, HIGH_DOPAMINE_KEYWORDS):
        return 0.8
    if _has_keyword(keywords, LOW_DOPAMINE_KEYWORDS):
        return 0.3
    return 0.5


def build_task_from_intent(intent: TaskIntent, ctx: TimeContext) -> Task:
    """
    Builds an unsaved Task from a createTask intent.

    Estimated fields are always within their valid ranges, so the result
    passes model validation.
    """
    title = intent.task_description or intent.raw_transcript.strip()
    minutes = intent.estimated_minutes if intent.estimated_minutes and intent.estimated_minutes > 0 else DEFAULT_INTENT_MINUTES
    minutes = min(minutes, MAX_ESTIMATED_MINUTES)
    task = Task(
        title=title[:255],
        description=intent.context or title,
        category=Category.parse(intent.category),
        priority=intent.priority_level,
        due_date=to_storage(intent.parsed_due_date(ctx.now)),
        estimated_minutes=minutes,
        energy_level=estimate_energy_level(intent.keywords),
        dopamine_score=estimate_dopamine(intent.keywords),
        tags=list(intent.keywords),
        created_at=to_storage(ctx.now),
    )
    refresh_scores(task, ctx)
    return task


def score_intent(intent: TaskIntent, ctx: TimeContext) -> float:
    """Estimates the score a task created from ``intent`` would get."""
    return score_task(build_task_from_intent(intent, ctx), ctx)


# ---------------------------------------------------------------------------
# Eisenhower quadrant
# ---------------------------------------------------------------------------

QUADRANT_THRESHOLD = 70.0

QUADRANT_ADVICE = {
    "Q1": "Do this now! High priority task.",
    "Q2": "Schedule this for later. Important for your goals.",
    "Q3": "Can this be delegated or simplified?",
    "Q4": "Consider if this task is really necessary.",
}


def compute_quadrant(urgency: float, importance: float) -> str:
    is_urgent = urgency >= QUADRANT_THRESHOLD
    is_important = importance >= QUADRANT_THRESHOLD
    if is_urgent and is_important:
        return "Q1"
    if is_important:
        return "Q2"
    if is_urgent:
        return "Q3"
    return "Q4"
