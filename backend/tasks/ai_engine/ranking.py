# tasks/ai_engine/ranking.py

import datetime
from typing import List, Sequence, Tuple

from ..clock import TimeContext
from ..models import Priority, Status, Task
from .scoring import QUICK_TASK_MINUTES, is_optimal_hour, score_task

HYPERFOCUS_MIN_MINUTES = 30
HYPERFOCUS_MIN_DOPAMINE = 0.6
HIGH_DOPAMINE_THRESHOLD = 0.7


def _sort_key(task: Task, score: float) -> Tuple[float, int, datetime.datetime]:
    due = task.local_due_date
    # Any due date outranks none; earlier due dates first.
    return (-score, 0 if due is not None else 1, due or datetime.datetime.min)


def prioritize(tasks: Sequence[Task], ctx: TimeContext) -> List[Task]:
    """
    Orders tasks by composite score, highest first.

    Ties go to the earlier due date (a dated task beats an undated one);
    remaining ties keep input order. Callers pass a snapshot, never a
    collection that is being mutated.
    """
    scored = [(task, score_task(task, ctx)) for task in tasks]
    scored.sort(key=lambda pair: _sort_key(*pair))
    return [task for task, _ in scored]


def optimal_now(tasks: Sequence[Task], current_energy_level: int, ctx: TimeContext) -> List[Task]:
    """
    Tasks that fit the current energy level and hour.

    Overdue and due-soon tasks are always kept.
    """
    selected = []
    for task in tasks:
        if task.is_overdue(ctx.now) or task.is_due_soon(ctx.now):
            selected.append(task)
            continue
        if task.energy_level > current_energy_level + 1:
            continue
        if not is_optimal_hour(task.category, ctx.hour):
            continue
        selected.append(task)
    return selected


def quick_tasks(tasks: Sequence[Task], max_minutes: int = QUICK_TASK_MINUTES) -> List[Task]:
    return [
        task for task in tasks
        if task.estimated_minutes <= max_minutes and task.status == Status.PENDING
    ]


def hyperfocus_tasks(tasks: Sequence[Task]) -> List[Task]:
    return [
        task for task in tasks
        if task.estimated_minutes >= HYPERFOCUS_MIN_MINUTES
        and task.dopamine_score >= HYPERFOCUS_MIN_DOPAMINE
        and task.status == Status.PENDING
    ]


def explain_priority(task: Task, ctx: TimeContext) -> str:
    """Human-readable reasons behind a task's rank, in a fixed order."""
    reasons = []

    if task.is_overdue(ctx.now):
        reasons.append("This task is overdue")
    elif task.is_due_today(ctx.now):
        reasons.append("This task is due today")
    elif task.is_due_soon(ctx.now):
        reasons.append("This task is due soon")

    if task.priority == Priority.URGENT:
        reasons.append("Marked as urgent priority")

    if task.dopamine_score >= HIGH_DOPAMINE_THRESHOLD:
        reasons.append("High motivation potential")

    if task.estimated_minutes <= QUICK_TASK_MINUTES:
        reasons.append("Quick task - good for momentum")

    if is_optimal_hour(task.category, ctx.hour):
        reasons.append("Optimal time for this type of task")

    if not reasons:
        reasons.append("Standard priority task")

    return ", ".join(reasons)
