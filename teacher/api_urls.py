"""Teacher API URLs – all JSON endpoints under /api/teacher/."""
from django.urls import path

from .views import api

app_name = 'teacher_api'

urlpatterns = [
    path('exams/<uuid:exam_id>/publish/', api.toggle_publish, name='toggle_publish'),
    path('exams/<uuid:exam_id>/extend/', api.extend_exam, name='extend_exam'),
    path('exams/<uuid:exam_id>/results/', api.exam_results, name='exam_results'),
]
