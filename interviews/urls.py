from django.urls import path

from interviews import views

app_name = "interviews"

urlpatterns = [
    path("start-interview/", views.start_interview_view, name="start_interview"),
    path("complete-interview/", views.complete_interview_view, name="complete_interview"),
]
