from django.urls import path
from .views import command_view

urlpatterns=[
    # POST (Run one utterance through the voice assistant)
    path('command/',command_view,name="assistant-command"),
]
