# tasks/serializers.py

import logging

from django.core.exceptions import ValidationError as DjangoValidationError
from rest_framework import serializers

from .clock import TimeContext
from .models import Status, Task
from .storage import TaskStorage

logger = logging.getLogger(__name__)


class TaskSerializer(serializers.ModelSerializer):
    class Meta:
        model = Task
        # explicit whitelist: user-truth fields + engine-derived read-only fields
        fields = [
            'id', 'title', 'description', 'notes', 'category', 'priority', 'status',
            'created_at', 'updated_at', 'due_date', 'completed_at',
            'estimated_minutes', 'energy_level', 'dopamine_score', 'tags',
            'is_recurring', 'recurrence_type',
            'urgency_score', 'importance_score', 'priority_score',
        ]
        read_only_fields = [
            'id', 'created_at', 'updated_at', 'completed_at',
            'urgency_score', 'importance_score', 'priority_score',
        ]

    def validate_tags(self, value):
        if not isinstance(value, list) or not all(isinstance(tag, str) for tag in value):
            raise serializers.ValidationError("tags must be a list of strings.")
        return value

    def validate(self, attrs):
        is_recurring = attrs.get('is_recurring', getattr(self.instance, 'is_recurring', False))
        if attrs.get('recurrence_type') and not is_recurring:
            raise serializers.ValidationError(
                {'recurrence_type': "Recurrence type requires a recurring task."}
            )
        return attrs

    def _persist(self, task: Task) -> Task:
        """
        Saves through TaskStorage so derived scores are recomputed with the
        current time context. Model-level invariants surface as 400s.
        """
        storage = TaskStorage()
        storage.initialize()
        try:
            return storage.save_task(task, TimeContext.current())
        except DjangoValidationError as e:
            raise serializers.ValidationError(e.message_dict)

    def create(self, validated_data):
        status = validated_data.pop('status', Status.PENDING)
        task = Task(**validated_data)
        task.transition_to(status)
        return self._persist(task)

    def update(self, instance, validated_data):
        status = validated_data.pop('status', None)
        for attr, value in validated_data.items():
            setattr(instance, attr, value)
        if status is not None and status != instance.status:
            instance.transition_to(status)
        return self._persist(instance)


class TaskIntentSerializer(serializers.Serializer):
    """Wire form of a recognized intent (camelCase keys)."""

    intent = serializers.CharField()
    taskDescription = serializers.CharField(allow_blank=True)
    rawTranscript = serializers.CharField(allow_blank=True)
    category = serializers.CharField()
    urgency = serializers.CharField()
    dueDate = serializers.CharField(allow_null=True)
    context = serializers.CharField(allow_null=True)
    confidence = serializers.FloatField()
    estimatedMinutes = serializers.IntegerField(allow_null=True)
    keywords = serializers.ListField(child=serializers.CharField())
    action = serializers.CharField(allow_null=True)
    targetTaskId = serializers.CharField(allow_null=True)

    def to_representation(self, instance):
        return super().to_representation(instance.to_dict())


class CommandSerializer(serializers.Serializer):
    utterance = serializers.CharField(allow_blank=True, trim_whitespace=False)
