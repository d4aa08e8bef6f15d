# tasks/ai_engine/celery_tasks.py

import logging
from typing import Any, Dict, Optional

from celery import shared_task
from django.db import transaction
from django.utils.dateparse import parse_datetime

from ..clock import TimeContext
from ..models import OPEN_STATUSES, Task
from .scoring import refresh_scores

# Configure logging for background worker monitoring
logger = logging.getLogger(__name__)

SCORE_FIELDS = ['urgency_score', 'importance_score', 'priority_score']


@shared_task(
    bind=True,
    autoretry_for=(Exception,),
    retry_backoff=True,
    retry_backoff_max=600,  # Max backoff of 10 minutes
    max_retries=3,
    time_limit=30,          # Hard limit for the task process
    soft_time_limit=25      # Soft limit to allow cleanup
)
def rescore_task(self, task_id: str) -> Optional[Dict[str, Any]]:
    """
    Worker: recompute one task's derived scores for the current hour and
    persist them. Input = task_id only.
    """
    logger.info(f"Rescoring started for Task {task_id}")
    try:
        with transaction.atomic():
            task = Task.objects.select_for_update().filter(pk=task_id).first()
            if not task:
                logger.warning(f"Task {task_id} not found. Exiting worker.")
                return None

            sub_scores = refresh_scores(task, TimeContext.current())
            Task.objects.filter(pk=task.pk).update(
                urgency_score=task.urgency_score,
                importance_score=task.importance_score,
                priority_score=task.priority_score,
            )

        logger.info(f"Rescoring persisted for Task {task_id}: {task.priority_score:.2f}")
        return sub_scores.as_dict()

    except Exception as exc:
        logger.exception(f"Rescoring failed for Task {task_id}: {exc}")
        # Re-raise for Celery retry policy
        raise


@shared_task(ignore_result=True)
def rescore_open_tasks(now_iso: Optional[str] = None) -> int:
    """
    Periodic job: time-of-day sub-scores drift as the day goes on, so every
    open task is rescored against one shared time context.
    """
    if now_iso:
        now = parse_datetime(now_iso)
        if now is None:
            raise ValueError(f"now_iso is not an ISO 8601 datetime: {now_iso!r}")
        ctx = TimeContext(now)
    else:
        ctx = TimeContext.current()

    tasks = list(Task.objects.filter(status__in=OPEN_STATUSES))
    for task in tasks:
        refresh_scores(task, ctx)

    with transaction.atomic():
        Task.objects.bulk_update(tasks, SCORE_FIELDS)

    logger.info(f"Rescored {len(tasks)} open tasks at {ctx.now:%Y-%m-%d %H:%M}")
    return len(tasks)
