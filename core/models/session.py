"""
ExamSession and ViolationLog models.
"""
import uuid
from django.conf import settings
from django.db import models
from django.utils import timezone


class ExamSession(models.Model):
    """One student's single attempt at one exam."""

    STATUS_IN_PROGRESS = 'in-progress'
    STATUS_SUBMITTED = 'submitted'
    STATUS_TERMINATED = 'terminated'
    STATUS_CHOICES = [
        (STATUS_IN_PROGRESS, 'In progress'),
        (STATUS_SUBMITTED, 'Submitted'),
        (STATUS_TERMINATED, 'Terminated'),
    ]
    TERMINAL_STATUSES = (STATUS_SUBMITTED, STATUS_TERMINATED)

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    student = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE,
        related_name='exam_sessions', db_index=True
    )
    exam = models.ForeignKey(
        'core.Exam', on_delete=models.CASCADE, related_name='sessions', db_index=True
    )

    status = models.CharField(
        max_length=20, choices=STATUS_CHOICES, default=STATUS_IN_PROGRESS, db_index=True
    )

    # Server clock only
    start_time = models.DateTimeField(default=timezone.now, editable=False)
    end_time = models.DateTimeField(null=True, blank=True)

    # [{"question_id": int, "selected_option_id": int}, ...] frozen at finalization
    answers = models.JSONField(default=list, blank=True)
    # Null until the terminal transition writes it
    score = models.IntegerField(null=True, blank=True)

    violation_count = models.PositiveIntegerField(default=0)
    last_violation_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = 'exam_sessions'
        constraints = [
            models.UniqueConstraint(
                fields=['student', 'exam'],
                name='unique_student_exam_session'
            ),
        ]
        indexes = [
            models.Index(fields=['exam', 'status'], name='idx_session_exam_status'),
        ]

    def __str__(self):
        return f'Session {self.student_id} @ {self.exam_id} ({self.status})'

    @property
    def is_terminal(self):
        return self.status in self.TERMINAL_STATUSES

    @property
    def is_in_progress(self):
        return self.status == self.STATUS_IN_PROGRESS

    def to_dict(self, include_violations=False):
        data = {
            'id': str(self.id),
            'student_id': self.student_id,
            'exam_id': str(self.exam_id),
            'status': self.status,
            'start_time': self.start_time.isoformat(),
            'end_time': self.end_time.isoformat() if self.end_time else None,
            'answers': list(self.answers or []),
            'score': self.score,
            'violation_count': self.violation_count,
        }
        if include_violations:
            data['violation_logs'] = [v.to_dict() for v in self.violation_logs.all()]
        return data


class ViolationLog(models.Model):
    """An accepted integrity event recorded against a session."""

    TYPE_TAB_SWITCH = 'tab_switch'
    TYPE_FOCUS_LOSS = 'focus_loss'
    TYPE_FULLSCREEN_EXIT = 'fullscreen_exit'
    TYPE_OTHER = 'other'
    TYPE_CHOICES = [
        (TYPE_TAB_SWITCH, 'Tab switch'),
        (TYPE_FOCUS_LOSS, 'Focus lost'),
        (TYPE_FULLSCREEN_EXIT, 'Fullscreen exit'),
        (TYPE_OTHER, 'Other'),
    ]

    id = models.BigAutoField(primary_key=True)
    session = models.ForeignKey(
        ExamSession, on_delete=models.CASCADE,
        related_name='violation_logs', db_index=True
    )
    violation_type = models.CharField(max_length=20, choices=TYPE_CHOICES)
    timestamp = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = 'violation_logs'
        ordering = ['timestamp', 'id']

    def __str__(self):
        return f'{self.violation_type} @ {self.timestamp:%H:%M:%S}'

    @classmethod
    def valid_types(cls):
        return {value for value, _ in cls.TYPE_CHOICES}

    def to_dict(self):
        return {
            'type': self.violation_type,
            'timestamp': self.timestamp.isoformat(),
        }
