import logging

from rest_framework import generics, permissions, status
from rest_framework.exceptions import ValidationError
from rest_framework.response import Response
from rest_framework.views import APIView

from .ai_engine.ranking import explain_priority, hyperfocus_tasks, optimal_now, prioritize, quick_tasks
from .ai_engine.scoring import QUADRANT_ADVICE, QUICK_TASK_MINUTES, compute_quadrant, compute_sub_scores
from .clock import TimeContext
from .models import Status, Task
from .serializers import CommandSerializer, TaskIntentSerializer, TaskSerializer
from .services import VoiceAssistantService
from .storage import StorageUnavailableError, TaskStorage

logger = logging.getLogger(__name__)

PRIORITIZED_VIEWS = ('all', 'optimal', 'quick', 'hyperfocus')


class TaskListCreateView(generics.ListCreateAPIView):
    """
    GET: List every task, highest stored priority score first.
    POST: Create a new task; derived scores are computed on save.
    """
    serializer_class = TaskSerializer
    permission_classes = [permissions.AllowAny]
    queryset = Task.objects.all()

list_create_view = TaskListCreateView.as_view()


class TaskRetrieveUpdateDestroyView(generics.RetrieveUpdateDestroyAPIView):
    """
    GET, PUT, PATCH, DELETE for a specific task instance.
    Used for completing tasks as well (PATCH status=completed).
    """
    serializer_class = TaskSerializer
    permission_classes = [permissions.AllowAny]
    queryset = Task.objects.all()

retrieve_update_destroy_view = TaskRetrieveUpdateDestroyView.as_view()


def _int_param(request, name, default, minimum=None, maximum=None):
    raw = request.query_params.get(name)
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValidationError({name: "Must be an integer."})
    if minimum is not None:
        value = max(minimum, value)
    if maximum is not None:
        value = min(maximum, value)
    return value


class PrioritizedTaskListView(APIView):
    """
    Returns pending tasks in prioritized order, scored for the current hour.

    ?view=all|optimal|quick|hyperfocus selects the filtered view;
    ?energy=1-5 feeds the optimal view, ?max_minutes the quick view.
    """
    permission_classes = [permissions.AllowAny]

    def get(self, request):
        view = request.query_params.get('view', 'all')
        if view not in PRIORITIZED_VIEWS:
            raise ValidationError({'view': f"Must be one of: {', '.join(PRIORITIZED_VIEWS)}."})

        ctx = TimeContext.current()
        pending = list(Task.objects.filter(status=Status.PENDING))
        ranked = prioritize(pending, ctx)

        if view == 'optimal':
            ranked = optimal_now(ranked, _int_param(request, 'energy', 3, 1, 5), ctx)
        elif view == 'quick':
            ranked = quick_tasks(ranked, _int_param(request, 'max_minutes', QUICK_TASK_MINUTES, 1))
        elif view == 'hyperfocus':
            ranked = hyperfocus_tasks(ranked)

        results = []
        for task in ranked:
            sub_scores = compute_sub_scores(task, ctx)
            quadrant = compute_quadrant(sub_scores.urgency, sub_scores.importance)
            results.append({
                'task': TaskSerializer(task).data,
                'score': round(sub_scores.composite, 2),
                'explanation': explain_priority(task, ctx),
                'quadrant': quadrant,
                'advice': QUADRANT_ADVICE[quadrant],
            })
        return Response({'view': view, 'count': len(results), 'results': results})

tasks_list_view = PrioritizedTaskListView.as_view()


def get_voice_assistant() -> VoiceAssistantService:
    storage = TaskStorage()
    storage.initialize()
    return VoiceAssistantService(storage=storage)


class AssistantCommandView(APIView):
    """
    POST {"utterance": "..."}: runs one command through the voice assistant
    and returns its reply with the recognized intent.
    """
    permission_classes = [permissions.AllowAny]

    def post(self, request):
        serializer = CommandSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            assistant = get_voice_assistant()
        except StorageUnavailableError as e:
            logger.error(f"Assistant unavailable: {e}")
            return Response(
                {'detail': "Sorry, I couldn't complete that."},
                status=status.HTTP_503_SERVICE_UNAVAILABLE,
            )

        response = assistant.process_command(serializer.validated_data['utterance'])
        return Response({
            'message': response.message,
            'method': response.method,
            'intent': TaskIntentSerializer(response.intent).data,
            'task': TaskSerializer(response.task).data if response.task is not None else None,
        })

command_view = AssistantCommandView.as_view()
