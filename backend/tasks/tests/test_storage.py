# tasks/tests/test_storage.py
"""
Task Storage Tests
==================

Tests for the ORM-backed storage contract: initialization gating,
upsert-by-id, immutable creation time and score refresh on save.
"""

from __future__ import annotations

import datetime
import uuid
from unittest.mock import patch

from django.db import DatabaseError
from django.test import TestCase
from django.utils import timezone

from tasks.ai_engine.celery_tasks import rescore_open_tasks, rescore_task
from tasks.clock import TimeContext
from tasks.models import Category, Priority, Status, Task
from tasks.storage import StorageUnavailableError, TaskStorage


def wall(hour: int, day: int = 17) -> datetime.datetime:
    return datetime.datetime(2024, 1, day, hour, 0)


class TestStorageInitialization(TestCase):

    def test_every_call_before_initialize_fails(self) -> None:
        storage = TaskStorage()
        calls = (
            lambda: storage.get_all_tasks(),
            lambda: storage.get_task_by_id(uuid.uuid4()),
            lambda: storage.get_tasks_by_status("pending"),
            lambda: storage.save_task(Task(title="x")),
            lambda: storage.delete_task(uuid.uuid4()),
            lambda: storage.delete_completed_tasks(),
        )
        for call in calls:
            with self.assertRaises(StorageUnavailableError):
                call()

    def test_database_failure_becomes_storage_unavailable(self) -> None:
        storage = TaskStorage()
        storage.initialize()
        with patch.object(TaskStorage, "_queryset", side_effect=DatabaseError("disk gone")):
            with self.assertRaises(StorageUnavailableError):
                storage.get_all_tasks()


class TestTaskStorage(TestCase):

    def setUp(self) -> None:
        self.storage = TaskStorage()
        self.storage.initialize()
        self.ctx = TimeContext(wall(10))

    def test_save_inserts_and_scores(self) -> None:
        task = Task(title="Write report", category=Category.WORK, priority=Priority.HIGH)

        self.storage.save_task(task, self.ctx)

        stored = self.storage.get_task_by_id(task.pk)
        self.assertEqual(stored.title, "Write report")
        self.assertEqual(stored.urgency_score, 75.0)
        self.assertEqual(stored.importance_score, 80.0)
        self.assertGreater(stored.priority_score, 0.0)

    def test_save_upserts_by_id_and_keeps_created_at(self) -> None:
        task = Task(title="Draft", created_at=timezone.now() - datetime.timedelta(days=3))
        self.storage.save_task(task, self.ctx)
        original_created_at = self.storage.get_task_by_id(task.pk).created_at

        replacement = Task(id=task.pk, title="Final", created_at=timezone.now())
        self.storage.save_task(replacement, self.ctx)

        self.assertEqual(Task.objects.count(), 1)
        stored = self.storage.get_task_by_id(task.pk)
        self.assertEqual(stored.title, "Final")
        self.assertEqual(stored.created_at, original_created_at)

    def test_scores_follow_changed_inputs(self) -> None:
        task = Task(title="Chore", priority=Priority.LOW)
        self.storage.save_task(task, self.ctx)
        self.assertEqual(task.urgency_score, 25.0)

        task.priority = Priority.URGENT
        self.storage.save_task(task, self.ctx)
        self.assertEqual(self.storage.get_task_by_id(task.pk).urgency_score, 95.0)

    def test_get_task_by_id_handles_unknown_and_invalid_ids(self) -> None:
        self.assertIsNone(self.storage.get_task_by_id(uuid.uuid4()))
        self.assertIsNone(self.storage.get_task_by_id("not-a-uuid"))

    def test_get_all_tasks_in_creation_order(self) -> None:
        for offset, title in enumerate(["first", "second", "third"]):
            created = timezone.now() - datetime.timedelta(hours=10 - offset)
            self.storage.save_task(Task(title=title, created_at=created), self.ctx)
        self.assertEqual([t.title for t in self.storage.get_all_tasks()], ["first", "second", "third"])

    def test_get_tasks_by_status(self) -> None:
        done = Task(title="done")
        done.transition_to(Status.COMPLETED)
        self.storage.save_task(done, self.ctx)
        self.storage.save_task(Task(title="open"), self.ctx)

        self.assertEqual([t.title for t in self.storage.get_tasks_by_status("completed")], ["done"])
        self.assertEqual([t.title for t in self.storage.get_tasks_by_status("pending")], ["open"])

    def test_delete_task(self) -> None:
        task = self.storage.save_task(Task(title="gone soon"), self.ctx)
        self.assertTrue(self.storage.delete_task(task.pk))
        self.assertFalse(self.storage.delete_task(task.pk))
        self.assertFalse(self.storage.delete_task("not-a-uuid"))

    def test_delete_completed_tasks(self) -> None:
        done = Task(title="done")
        done.transition_to(Status.COMPLETED)
        self.storage.save_task(done, self.ctx)
        self.storage.save_task(Task(title="open"), self.ctx)

        self.assertEqual(self.storage.delete_completed_tasks(), 1)
        self.assertEqual(Task.objects.count(), 1)

    def test_task_statistics(self) -> None:
        self.storage.save_task(
            Task(title="late", category=Category.WORK, due_date=timezone.make_aware(wall(8))), self.ctx
        )
        self.storage.save_task(
            Task(title="tonight", due_date=timezone.make_aware(wall(20))), self.ctx
        )

        stats = self.storage.task_statistics(self.ctx)

        self.assertEqual(stats["total"], 2)
        self.assertEqual(stats["pending"], 2)
        self.assertEqual(stats["category_work"], 1)
        self.assertEqual(stats["overdue"], 1)
        self.assertEqual(stats["due_today"], 2)


class TestRescoringJobs(TestCase):
    """The Celery jobs are called synchronously here."""

    def setUp(self) -> None:
        self.storage = TaskStorage()
        self.storage.initialize()

    def test_rescore_open_tasks_uses_given_time(self) -> None:
        task = Task(title="Team sync", category=Category.WORK)
        self.storage.save_task(task, TimeContext(wall(22)))
        evening_score = self.storage.get_task_by_id(task.pk).priority_score

        rescored = rescore_open_tasks(timezone.make_aware(wall(10)).isoformat())

        self.assertEqual(rescored, 1)
        # Work tasks gain context and window points during work hours.
        self.assertGreater(self.storage.get_task_by_id(task.pk).priority_score, evening_score)

    def test_rescore_open_tasks_skips_closed_tasks(self) -> None:
        done = Task(title="done")
        done.transition_to(Status.COMPLETED)
        self.storage.save_task(done, TimeContext(wall(10)))

        self.assertEqual(rescore_open_tasks(timezone.make_aware(wall(10)).isoformat()), 0)

    def test_rescore_task_returns_sub_scores(self) -> None:
        task = self.storage.save_task(Task(title="Stretch"), TimeContext(wall(10)))

        result = rescore_task(str(task.pk))

        self.assertIn("composite", result)
        self.assertEqual(result["composite"], self.storage.get_task_by_id(task.pk).priority_score)

    def test_rescore_missing_task_returns_none(self) -> None:
        self.assertIsNone(rescore_task(str(uuid.uuid4())))

    def test_rescore_open_tasks_rejects_malformed_time(self) -> None:
        task = self.storage.save_task(Task(title="Stretch"), TimeContext(wall(10)))
        score = task.priority_score

        with self.assertRaisesMessage(ValueError, "not an ISO 8601 datetime"):
            rescore_open_tasks("half past ten")

        self.assertEqual(self.storage.get_task_by_id(task.pk).priority_score, score)
