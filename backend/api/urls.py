from django.urls import path, include

urlpatterns = [
    path('v1/tasks/', include('tasks.urls')),
    path('v1/assistant/', include('tasks.assistant_urls')),
]
