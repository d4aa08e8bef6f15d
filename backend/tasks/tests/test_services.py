# tasks/tests/test_services.py
"""
Voice Assistant Service Tests
=============================

End-to-end command handling against a real test database, a cleared
intent cache and no remote classifier. Phrase selection is pinned with a
deterministic random source.
"""

from __future__ import annotations

import datetime
import random

from django.test import TestCase

from tasks.ai_engine.cache import IntentCache
from tasks.ai_engine.intents import IntentType, TaskIntent
from tasks.ai_engine.orchestrator import IntentRecognizer
from tasks.clock import TimeContext, to_storage
from tasks.models import MAX_ESTIMATED_MINUTES, Category, Priority, Status, Task
from tasks.services import (
    CLARIFICATION_REPLIES,
    EMPTY_UTTERANCE_REPLY,
    HELP_MESSAGE,
    NO_PENDING_REPLY,
    STORAGE_FAILURE_REPLY,
    VoiceAssistantService,
    format_due_date,
)
from tasks.storage import TaskStorage


# Wednesday, January 17, 2024 at 18:00
NOW = datetime.datetime(2024, 1, 17, 18, 0)


class FirstChoiceRandom(random.Random):
    """Always picks the first option."""

    def choice(self, seq):
        return seq[0]


class FixedClassifier:
    """Local classifier stand-in returning one prepared intent."""

    def __init__(self, intent: TaskIntent):
        self.intent = intent

    def classify(self, utterance: str) -> TaskIntent:
        return self.intent


class AssistantTestCase(TestCase):

    def setUp(self) -> None:
        self.ctx = TimeContext(NOW)
        self.cache = IntentCache()
        self.cache.clear()
        self.storage = TaskStorage()
        self.storage.initialize()
        self.assistant = self.make_assistant()

    def tearDown(self) -> None:
        self.cache.clear()

    def make_assistant(self, local_classifier=None, **kwargs) -> VoiceAssistantService:
        recognizer = IntentRecognizer(
            local_classifier=local_classifier,
            cache=self.cache,
            skip_remote_init=True,
        )
        return VoiceAssistantService(
            recognizer=recognizer,
            storage=kwargs.pop("storage", self.storage),
            rng=FirstChoiceRandom(),
            **kwargs,
        )

    def add_task(self, title: str, **fields) -> Task:
        return self.storage.save_task(Task(title=title, **fields), self.ctx)


# ===========================================================================
# CREATE / REMINDER
# ===========================================================================


class TestCreateCommands(AssistantTestCase):

    def test_create_task_reply_and_persistence(self) -> None:
        response = self.assistant.process_command("I need to call mom this evening", self.ctx)

        self.assertEqual(response.method, "local")
        self.assertEqual(
            response.message,
            'Great idea! I\'ve created the task "Call mom this evening" due today. '
            "This task is due today, Quick task - good for momentum, "
            "Optimal time for this type of task. You've got this!",
        )
        stored = Task.objects.get()
        self.assertEqual(stored.pk, response.task.pk)
        self.assertEqual(stored.category, Category.PERSONAL)
        self.assertEqual(stored.estimated_minutes, 5)
        self.assertEqual(stored.local_due_date, datetime.datetime(2024, 1, 17, 23, 59))
        self.assertGreater(stored.priority_score, 0.0)

    def test_create_without_motivational_messages(self) -> None:
        assistant = self.make_assistant(motivational_messages=False)
        response = assistant.process_command("I need to call mom this evening", self.ctx)

        self.assertTrue(response.message.startswith("I've created the task"))
        self.assertTrue(response.message.endswith("Optimal time for this type of task."))

    def test_reminder_creates_a_task(self) -> None:
        intent = TaskIntent(
            intent=IntentType.REMINDER,
            task_description="Take vitamins",
            raw_transcript="vitamins tomorrow",
            category=Category.HEALTH,
            due_date="tomorrow",
            confidence=0.9,
        )
        assistant = self.make_assistant(local_classifier=FixedClassifier(intent))

        response = assistant.process_command("vitamins tomorrow", self.ctx)

        self.assertIn('"Take vitamins" due tomorrow', response.message)
        self.assertEqual(Task.objects.get().category, Category.HEALTH)

    def test_oversized_estimate_is_bounded(self) -> None:
        intent = TaskIntent(
            intent=IntentType.CREATE_TASK,
            task_description="Write a novel",
            raw_transcript="write a novel",
            confidence=0.9,
            estimated_minutes=10 ** 12,
        )
        assistant = self.make_assistant(local_classifier=FixedClassifier(intent))

        response = assistant.process_command("write a novel", self.ctx)

        self.assertIn('created the task "Write a novel"', response.message)
        self.assertEqual(Task.objects.get().estimated_minutes, MAX_ESTIMATED_MINUTES)


# ===========================================================================
# COMPLETE / EDIT / DELETE
# ===========================================================================


class TestTaskCommands(AssistantTestCase):

    def test_complete_matching_task(self) -> None:
        self.add_task("Grocery shopping")

        response = self.assistant.process_command("Complete grocery shopping", self.ctx)

        self.assertEqual(response.message, 'Awesome! Great job completing "Grocery shopping"!')
        stored = Task.objects.get()
        self.assertEqual(stored.status, Status.COMPLETED)
        self.assertIsNotNone(stored.completed_at)

    def test_every_fifth_completion_is_a_milestone(self) -> None:
        for i in range(4):
            done = Task(title=f"done {i}")
            done.transition_to(Status.COMPLETED, NOW - datetime.timedelta(hours=i + 1))
            self.storage.save_task(done, self.ctx)
        self.add_task("Laundry")

        response = self.assistant.process_command("finished laundry", self.ctx)

        self.assertEqual(
            response.message,
            'Awesome! Great job completing "Laundry"! '
            "That's 5 tasks completed today! You're on fire!",
        )

    def test_complete_without_match(self) -> None:
        response = self.assistant.process_command("Complete the taxes", self.ctx)
        self.assertEqual(response.message, 'I couldn\'t find a task matching "Complete the taxes".')

    def test_completed_tasks_are_not_matched_again(self) -> None:
        done = Task(title="Laundry")
        done.transition_to(Status.COMPLETED, NOW)
        self.storage.save_task(done, self.ctx)

        response = self.assistant.process_command("finished laundry", self.ctx)
        self.assertIn("couldn't find", response.message)

    def test_edit_applies_non_default_attributes(self) -> None:
        task = self.add_task("Laundry", priority=Priority.LOW)

        response = self.assistant.process_command("change laundry to high priority tomorrow", self.ctx)

        self.assertEqual(response.message, 'Updated "Laundry": priority high, due tomorrow.')
        stored = self.storage.get_task_by_id(task.pk)
        self.assertEqual(stored.priority, Priority.HIGH)
        self.assertEqual(stored.local_due_date, datetime.datetime(2024, 1, 18, 23, 59))
        self.assertEqual(stored.urgency_score, 75.0)

    def test_edit_without_changes(self) -> None:
        self.add_task("Laundry")
        response = self.assistant.process_command("edit laundry", self.ctx)
        self.assertEqual(response.message, 'I found "Laundry", but I didn\'t catch what to change.')

    def test_delete_matching_task(self) -> None:
        self.add_task("Laundry")

        response = self.assistant.process_command("delete the laundry task", self.ctx)

        self.assertEqual(response.message, 'I\'ve deleted "Laundry".')
        self.assertFalse(Task.objects.exists())


# ===========================================================================
# LIST / HELP / UNKNOWN / EMPTY
# ===========================================================================


class TestConversationCommands(AssistantTestCase):

    def test_list_top_pending_tasks(self) -> None:
        self.add_task("Water plants", priority=Priority.LOW)
        self.add_task("Pay rent", priority=Priority.URGENT, due_date=to_storage(datetime.datetime(2024, 1, 18, 23, 59)))
        done = Task(title="Old chore")
        done.transition_to(Status.COMPLETED, NOW)
        self.storage.save_task(done, self.ctx)

        response = self.assistant.process_command("list tasks", self.ctx)

        self.assertEqual(
            response.message,
            "Here are your top 2 tasks: 1. Pay rent (due tomorrow). 2. Water plants.",
        )

    def test_list_is_capped_at_five(self) -> None:
        for i in range(7):
            self.add_task(f"Task {i}")
        response = self.assistant.process_command("show tasks", self.ctx)
        self.assertTrue(response.message.startswith("Here are your top 5 tasks:"))

    def test_list_with_nothing_pending(self) -> None:
        response = self.assistant.process_command("what's on my list", self.ctx)
        self.assertEqual(response.message, NO_PENDING_REPLY)

    def test_help(self) -> None:
        response = self.assistant.process_command("what can you do", self.ctx)
        self.assertEqual(response.message, HELP_MESSAGE)

    def test_unhandled_intent_asks_for_clarification(self) -> None:
        intent = TaskIntent(
            intent=IntentType.QUESTION,
            task_description="Why is the sky blue",
            raw_transcript="why is the sky blue",
            confidence=0.9,
        )
        assistant = self.make_assistant(local_classifier=FixedClassifier(intent))

        response = assistant.process_command("why is the sky blue", self.ctx)

        self.assertEqual(response.message, CLARIFICATION_REPLIES[0])

    def test_empty_utterance(self) -> None:
        response = self.assistant.process_command("   ", self.ctx)

        self.assertEqual(response.message, EMPTY_UTTERANCE_REPLY)
        self.assertEqual(response.intent.intent, IntentType.UNKNOWN)
        self.assertFalse(Task.objects.exists())

    def test_storage_failure_has_generic_reply(self) -> None:
        assistant = self.make_assistant(storage=TaskStorage())

        response = assistant.process_command("I need to call mom this evening", self.ctx)

        self.assertEqual(response.message, STORAGE_FAILURE_REPLY)
        self.assertFalse(Task.objects.exists())


# ===========================================================================
# QUERIES & SETTINGS
# ===========================================================================


class TestAssistantQueries(AssistantTestCase):

    def test_energy_level_is_clamped(self) -> None:
        self.assistant.energy_level = 9
        self.assertEqual(self.assistant.energy_level, 5)
        self.assistant.energy_level = 0
        self.assertEqual(self.assistant.energy_level, 1)

    def test_quick_and_optimal_views(self) -> None:
        self.add_task("Text Sam", category=Category.SOCIAL, estimated_minutes=5, energy_level=1)
        self.add_task("Deep clean garage", category=Category.MAINTENANCE, estimated_minutes=120, energy_level=5)

        quick = self.assistant.get_quick_tasks(self.ctx)
        self.assertEqual([t.title for t in quick], ["Text Sam"])

        self.assistant.energy_level = 2
        optimal = self.assistant.get_optimal_tasks(self.ctx)
        self.assertEqual([t.title for t in optimal], ["Text Sam"])

    def test_find_matching_task_by_id_and_keywords(self) -> None:
        groceries = Task(title="Buy groceries")
        landlord = Task(title="Email the landlord about rent")
        tasks = [groceries, landlord]

        by_id = TaskIntent(
            intent=IntentType.COMPLETE_TASK,
            task_description="",
            raw_transcript="",
            target_task_id=str(groceries.pk),
        )
        by_keywords = TaskIntent(
            intent=IntentType.COMPLETE_TASK,
            task_description="Finish writing landlord email",
            raw_transcript="finish writing landlord email",
        )

        self.assertIs(self.assistant.find_matching_task(by_id, tasks), groceries)
        self.assertIs(self.assistant.find_matching_task(by_keywords, tasks), landlord)

    def test_format_due_date(self) -> None:
        self.assertEqual(format_due_date(datetime.datetime(2024, 1, 17, 23, 59), self.ctx), "today")
        self.assertEqual(format_due_date(datetime.datetime(2024, 1, 18, 9, 0), self.ctx), "tomorrow")
        self.assertEqual(format_due_date(datetime.datetime(2024, 2, 3, 9, 0), self.ctx), "2/3")

    def test_welcome_message_greets_by_hour(self) -> None:
        self.assertTrue(self.assistant.welcome_message(TimeContext(NOW.replace(hour=8))).startswith("Good morning!"))
        self.assertTrue(self.assistant.welcome_message(TimeContext(NOW.replace(hour=13))).startswith("Good afternoon!"))
        self.assertTrue(self.assistant.welcome_message(self.ctx).startswith("Good evening!"))
