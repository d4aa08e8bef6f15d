# tasks/storage.py
"""
Task storage backed by the Django ORM.

Implements the storage contract the assistant depends on: every call made
before ``initialize()`` (or while the database is unreachable) raises
``StorageUnavailableError``. Saving recomputes the derived score fields
first, so persisted scores always match the persisted inputs.
"""

import logging
import uuid
from typing import Dict, List, Optional, Union

from django.db import DatabaseError, connections, transaction

from .ai_engine.scoring import refresh_scores
from .clock import TimeContext, to_storage
from .models import Category, Status, Task

logger = logging.getLogger(__name__)


class StorageUnavailableError(Exception):
    """Raised when tasks can be neither read nor written."""


class TaskStorage:

    def __init__(self, using: str = "default"):
        self.using = using
        self.is_initialized = False

    def initialize(self) -> None:
        try:
            connections[self.using].ensure_connection()
        except DatabaseError as e:
            logger.exception(f"Task storage failed to initialize: {e}")
            raise StorageUnavailableError("Task storage could not connect to the database") from e
        self.is_initialized = True

    def _require_initialized(self) -> None:
        if not self.is_initialized:
            raise StorageUnavailableError("Storage not initialized")

    def _queryset(self):
        return Task.objects.using(self.using)

    def get_all_tasks(self) -> List[Task]:
        self._require_initialized()
        try:
            return list(self._queryset().order_by("created_at"))
        except DatabaseError as e:
            logger.exception(f"Failed to load tasks: {e}")
            raise StorageUnavailableError("Could not read tasks") from e

    def get_task_by_id(self, task_id: Union[str, uuid.UUID]) -> Optional[Task]:
        self._require_initialized()
        try:
            task_uuid = uuid.UUID(str(task_id))
        except ValueError:
            return None
        try:
            return self._queryset().filter(pk=task_uuid).first()
        except DatabaseError as e:
            logger.exception(f"Failed to load task {task_id}: {e}")
            raise StorageUnavailableError("Could not read task") from e

    def get_tasks_by_status(self, status: str) -> List[Task]:
        self._require_initialized()
        try:
            return list(self._queryset().filter(status=Status.parse(status)).order_by("created_at"))
        except DatabaseError as e:
            logger.exception(f"Failed to load tasks by status: {e}")
            raise StorageUnavailableError("Could not read tasks") from e

    def save_task(self, task: Task, ctx: Optional[TimeContext] = None) -> Task:
        """
        Inserts or updates ``task`` by id.

        created_at is immutable: updating an existing row keeps the stored
        value whatever the instance carries.

        Raises:
            StorageUnavailableError: not initialized or database failure.
            ValidationError: the task violates a field or cross-field invariant.
        """
        self._require_initialized()
        refresh_scores(task, ctx or TimeContext.current())
        try:
            with transaction.atomic(using=self.using):
                existing = self._queryset().filter(pk=task.pk).values_list("created_at", flat=True).first()
                if existing is not None:
                    task.created_at = existing
                    task.save(using=self.using, force_update=True)
                else:
                    task.created_at = to_storage(task.created_at)
                    task.save(using=self.using, force_insert=True)
        except DatabaseError as e:
            logger.exception(f"Failed to save task {task.pk}: {e}")
            raise StorageUnavailableError("Could not save task") from e
        logger.info(f"Saved task {task.pk} (priority score {task.priority_score:.2f})")
        return task

    def delete_task(self, task_id: Union[str, uuid.UUID]) -> bool:
        self._require_initialized()
        try:
            task_uuid = uuid.UUID(str(task_id))
        except ValueError:
            return False
        try:
            deleted, _ = self._queryset().filter(pk=task_uuid).delete()
        except DatabaseError as e:
            logger.exception(f"Failed to delete task {task_id}: {e}")
            raise StorageUnavailableError("Could not delete task") from e
        return deleted > 0

    def delete_completed_tasks(self) -> int:
        self._require_initialized()
        try:
            deleted, _ = self._queryset().filter(status=Status.COMPLETED).delete()
        except DatabaseError as e:
            logger.exception(f"Failed to delete completed tasks: {e}")
            raise StorageUnavailableError("Could not delete tasks") from e
        return deleted

    def task_statistics(self, ctx: Optional[TimeContext] = None) -> Dict[str, int]:
        """Counts by status and category, plus open overdue / due-today counts."""
        ctx = ctx or TimeContext.current()
        tasks = self.get_all_tasks()
        stats: Dict[str, int] = {"total": len(tasks)}
        for status in Status:
            stats[status.value] = sum(1 for t in tasks if t.status == status)
        for category in Category:
            stats[f"category_{category.value}"] = sum(1 for t in tasks if t.category == category)
        open_tasks = [t for t in tasks if t.status != Status.COMPLETED]
        stats["overdue"] = sum(1 for t in open_tasks if t.is_overdue(ctx.now))
        stats["due_today"] = sum(1 for t in open_tasks if t.is_due_today(ctx.now))
        return stats
