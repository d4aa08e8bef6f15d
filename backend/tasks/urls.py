from django.urls import path
from .views import list_create_view
from .views import retrieve_update_destroy_view
from .views import tasks_list_view

urlpatterns=[
    # GET and POST (List tasks and Create new task)
    path('',list_create_view,name="create-list-view"),

    # GET (Prioritized / filtered views scored for the current hour)
    path('prioritized/',tasks_list_view,name="prioritized-list"),

    # GET, PUT, PATCH, DELETE (Detail and Manipulation)
    path('<uuid:pk>/',retrieve_update_destroy_view,name="task-detail")

]
