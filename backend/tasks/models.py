import datetime
import uuid
from typing import Optional

from django.core.exceptions import ValidationError
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from .clock import to_storage, to_wall_clock

# Largest value every supported database accepts in an integer column
MAX_ESTIMATED_MINUTES = 2147483647


class Category(models.TextChoices):
    WORK = 'work', _('Work')
    PERSONAL = 'personal', _('Personal')
    HEALTH = 'health', _('Health')
    LEARNING = 'learning', _('Learning')
    SOCIAL = 'social', _('Social')
    CREATIVE = 'creative', _('Creative')
    MAINTENANCE = 'maintenance', _('Maintenance')
    URGENT = 'urgent', _('Urgent')

    @classmethod
    def parse(cls, value) -> 'Category':
        """Unknown or missing values fall back to PERSONAL."""
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.PERSONAL


class Priority(models.TextChoices):
    LOW = 'low', _('Low')
    MEDIUM = 'medium', _('Medium')
    HIGH = 'high', _('High')
    URGENT = 'urgent', _('Urgent')

    @classmethod
    def parse(cls, value) -> 'Priority':
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.MEDIUM


class Status(models.TextChoices):
    PENDING = 'pending', _('Pending')
    IN_PROGRESS = 'in_progress', _('In Progress')
    PAUSED = 'paused', _('Paused')
    COMPLETED = 'completed', _('Completed')
    CANCELLED = 'cancelled', _('Cancelled')

    @classmethod
    def parse(cls, value) -> 'Status':
        normalized = str(value).strip()
        if normalized == 'inProgress':
            normalized = 'in_progress'
        try:
            return cls(normalized.lower())
        except ValueError:
            return cls.PENDING


class RecurrenceType(models.TextChoices):
    DAILY = 'daily', _('Daily')
    WEEKLY = 'weekly', _('Weekly')
    MONTHLY = 'monthly', _('Monthly')
    YEARLY = 'yearly', _('Yearly')


OPEN_STATUSES = (Status.PENDING, Status.IN_PROGRESS, Status.PAUSED)


class Task(models.Model):
    """
    A persisted unit of work.

    urgency_score, importance_score and priority_score are derived from the
    other fields plus a time context; they are refreshed before every save
    (see tasks.storage) and are never edited directly.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    title = models.CharField(max_length=255, verbose_name=_("title"))
    description = models.TextField(blank=True, default='', verbose_name=_("description"))
    notes = models.TextField(blank=True, default='', verbose_name=_("notes"))

    category = models.CharField(
        max_length=20,
        choices=Category.choices,
        default=Category.PERSONAL,
        verbose_name=_("category")
    )
    priority = models.CharField(
        max_length=10,
        choices=Priority.choices,
        default=Priority.MEDIUM,
        verbose_name=_("priority"),
        help_text=_("Declared tier, distinct from the computed priority score.")
    )
    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.PENDING,
        verbose_name=_("status")
    )

    created_at = models.DateTimeField(default=timezone.now, editable=False, verbose_name=_("created at"))
    updated_at = models.DateTimeField(auto_now=True, verbose_name=_("updated at"))
    due_date = models.DateTimeField(null=True, blank=True, verbose_name=_("due date"))
    completed_at = models.DateTimeField(null=True, blank=True, verbose_name=_("completed at"))

    estimated_minutes = models.PositiveIntegerField(
        default=15,
        validators=[MinValueValidator(1), MaxValueValidator(MAX_ESTIMATED_MINUTES)],
        verbose_name=_("estimated minutes")
    )
    # 1 = barely any effort, 5 = needs a full tank
    energy_level = models.PositiveSmallIntegerField(
        default=3,
        validators=[MinValueValidator(1), MaxValueValidator(5)],
        verbose_name=_("energy level")
    )
    dopamine_score = models.FloatField(
        default=0.5,
        validators=[MinValueValidator(0.0), MaxValueValidator(1.0)],
        verbose_name=_("dopamine score"),
        help_text=_("Estimated intrinsic reward of doing the task (0-1).")
    )
    tags = models.JSONField(default=list, blank=True, verbose_name=_("tags"))

    is_recurring = models.BooleanField(default=False, verbose_name=_("is recurring"))
    recurrence_type = models.CharField(
        max_length=10,
        choices=RecurrenceType.choices,
        null=True, blank=True,
        verbose_name=_("recurrence type")
    )

    urgency_score = models.FloatField(
        default=50.0,
        validators=[MinValueValidator(0.0), MaxValueValidator(100.0)],
        verbose_name=_("urgency score")
    )
    importance_score = models.FloatField(
        default=50.0,
        validators=[MinValueValidator(0.0), MaxValueValidator(100.0)],
        verbose_name=_("importance score")
    )
    priority_score = models.FloatField(
        default=50.0,
        validators=[MinValueValidator(0.0), MaxValueValidator(100.0)],
        verbose_name=_("priority score"),
        help_text=_("Composite ranking value computed by the scoring engine.")
    )

    class Meta:
        verbose_name = _("Task")
        verbose_name_plural = _("Tasks")
        ordering = ['-priority_score', 'due_date', 'created_at']

    def __str__(self):
        return f"{self.title} ({self.status})"

    # -----------------------------------------------------------------------
    # Due-state helpers (explicit "now", wall-clock comparisons)
    # -----------------------------------------------------------------------

    @property
    def local_due_date(self) -> Optional[datetime.datetime]:
        return to_wall_clock(self.due_date)

    def is_overdue(self, now: datetime.datetime) -> bool:
        if self.due_date is None or self.status == Status.COMPLETED:
            return False
        return to_wall_clock(now) > self.local_due_date

    def is_due_today(self, now: datetime.datetime) -> bool:
        if self.due_date is None:
            return False
        return self.local_due_date.date() == to_wall_clock(now).date()

    def is_due_soon(self, now: datetime.datetime) -> bool:
        """True when the due date is 0-24 whole hours away (truncated)."""
        if self.due_date is None:
            return False
        delta = self.local_due_date - to_wall_clock(now)
        hours = int(delta.total_seconds() / 3600)
        return 0 <= hours <= 24

    # -----------------------------------------------------------------------
    # State transitions
    # -----------------------------------------------------------------------

    def transition_to(self, status: str, now: Optional[datetime.datetime] = None) -> None:
        """Changes status, keeping completed_at in step with it."""
        status = Status.parse(status)
        self.status = status
        if status == Status.COMPLETED:
            self.completed_at = to_storage(to_wall_clock(now)) if now is not None else timezone.now()
        else:
            self.completed_at = None

    def mark_completed(self, now: Optional[datetime.datetime] = None) -> None:
        self.transition_to(Status.COMPLETED, now)

    # -----------------------------------------------------------------------
    # Validation
    # -----------------------------------------------------------------------

    def clean(self):
        """
        Enforces the cross-field invariants field validators cannot express.
        """
        errors = {}
        if self.status == Status.COMPLETED and self.completed_at is None:
            errors['completed_at'] = _("A completed task must record when it was completed.")
        if self.status != Status.COMPLETED and self.completed_at is not None:
            errors['completed_at'] = _("Only completed tasks carry a completion time.")
        if not self.is_recurring and self.recurrence_type:
            errors['recurrence_type'] = _("Recurrence type requires a recurring task.")
        if errors:
            raise ValidationError(errors)

    def save(self, *args, **kwargs):
        """
        Overridden to ensure full_clean is called before saving to the database.
        Uniqueness is skipped so that saving a task with a known id upserts it.
        """
        self.full_clean(validate_unique=False)
        super().save(*args, **kwargs)
