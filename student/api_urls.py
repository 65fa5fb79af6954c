"""Student API URLs – all JSON endpoints under /api/student/."""
from django.urls import path

from .views import api

app_name = 'student_api'

urlpatterns = [
    # ── Dashboard ───────────────────────────────────────────────────────────
    path('exams/', api.available_exams, name='available_exams'),
    path('classes/', api.enrolled_classes, name='enrolled_classes'),

    # ── Attempt lifecycle ───────────────────────────────────────────────────
    path('exams/<uuid:exam_id>/start/', api.start_exam, name='start_exam'),
    path('sessions/<uuid:session_id>/clock/', api.session_clock, name='session_clock'),
    path('sessions/<uuid:session_id>/violation/', api.report_violation, name='report_violation'),
    path('sessions/<uuid:session_id>/submit/', api.submit_exam, name='submit_exam'),

    # ── Results ─────────────────────────────────────────────────────────────
    path('exams/<uuid:exam_id>/result/', api.exam_result, name='exam_result'),
]
