"""
Exam, Question, and Option models.
"""
import uuid
from datetime import timedelta

from django.conf import settings
from django.db import models
from .mixins import TimestampMixin


class Exam(TimestampMixin):
    """A scheduled, timed multiple-choice examination."""

    ACCESS_PUBLIC = 'public'
    ACCESS_PRIVATE = 'private'
    ACCESS_CHOICES = [
        (ACCESS_PUBLIC, 'Public'),
        (ACCESS_PRIVATE, 'Private (class only)'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    title = models.CharField(max_length=200)
    description = models.TextField(blank=True, default='')

    duration_minutes = models.PositiveIntegerField()
    total_marks = models.PositiveIntegerField()
    passing_marks = models.PositiveIntegerField(default=0)

    scheduled_start = models.DateTimeField()
    scheduled_end = models.DateTimeField()

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE,
        related_name='created_exams', db_index=True
    )

    # Draft until published
    is_active = models.BooleanField(default=False, db_index=True)
    access_type = models.CharField(max_length=20, choices=ACCESS_CHOICES, default=ACCESS_PUBLIC)
    classroom = models.ForeignKey(
        'core.Classroom', on_delete=models.SET_NULL,
        null=True, blank=True, related_name='exams', db_index=True
    )
    strict_mode = models.BooleanField(default=True)

    class Meta:
        db_table = 'exams'
        ordering = ['-scheduled_start']

    def __str__(self):
        return self.title

    # ------------------------------------------------------------------
    # Scheduling
    # ------------------------------------------------------------------
    @property
    def duration(self):
        return timedelta(minutes=self.duration_minutes)

    def is_open_at(self, moment):
        return self.scheduled_start <= moment <= self.scheduled_end

    def has_ended(self, moment):
        return moment >= self.scheduled_end

    def extend(self, extra_minutes):
        """Push both the per-attempt duration and the window end outward."""
        self.duration_minutes += extra_minutes
        self.scheduled_end = self.scheduled_end + timedelta(minutes=extra_minutes)
        self.save(update_fields=['duration_minutes', 'scheduled_end'])

    # ------------------------------------------------------------------
    # Access
    # ------------------------------------------------------------------
    @property
    def is_private(self):
        return self.access_type == self.ACCESS_PRIVATE

    def is_accessible_by(self, student):
        if not self.is_private:
            return True
        if self.classroom_id is None:
            return False
        return self.classroom.is_enrolled(student)

    # ------------------------------------------------------------------
    # Marks
    # ------------------------------------------------------------------
    def get_question_marks_total(self):
        return sum(q.marks for q in self.questions.all())

    def to_dict(self, include_questions=False, reveal_answers=False):
        data = {
            'id': str(self.id),
            'title': self.title,
            'description': self.description,
            'duration_minutes': self.duration_minutes,
            'total_marks': self.total_marks,
            'passing_marks': self.passing_marks,
            'scheduled_start': self.scheduled_start.isoformat(),
            'scheduled_end': self.scheduled_end.isoformat(),
            'is_active': self.is_active,
            'access_type': self.access_type,
            'classroom': self.classroom.to_dict() if self.classroom_id else None,
            'strict_mode': self.strict_mode,
        }
        if include_questions:
            data['questions'] = [
                q.to_dict(reveal_answers=reveal_answers)
                for q in self.questions.prefetch_related('options')
            ]
        return data


class Question(TimestampMixin):
    """A single multiple-choice question within an exam."""

    id = models.AutoField(primary_key=True)
    exam = models.ForeignKey(
        Exam, on_delete=models.CASCADE, related_name='questions', db_index=True
    )

    number = models.PositiveIntegerField()
    text = models.TextField()
    marks = models.PositiveIntegerField(default=1)

    class Meta:
        db_table = 'questions'
        ordering = ['number']
        constraints = [
            models.UniqueConstraint(
                fields=['exam', 'number'],
                name='unique_exam_question_number'
            ),
        ]

    def __str__(self):
        return f'Q{self.number}: {self.text[:40]}'

    def to_dict(self, reveal_answers=False):
        return {
            'id': self.id,
            'number': self.number,
            'text': self.text,
            'marks': self.marks,
            'options': [o.to_dict(reveal_answers=reveal_answers) for o in self.options.all()],
        }


class Option(TimestampMixin):
    """Answer option; ``is_correct`` stays server-side until grading."""

    id = models.AutoField(primary_key=True)
    question = models.ForeignKey(
        Question, on_delete=models.CASCADE, related_name='options', db_index=True
    )

    number = models.PositiveIntegerField()
    text = models.TextField()
    is_correct = models.BooleanField(default=False)

    class Meta:
        db_table = 'options'
        ordering = ['number']
        constraints = [
            models.UniqueConstraint(
                fields=['question', 'number'],
                name='unique_question_option_number'
            ),
        ]

    def __str__(self):
        letter = chr(64 + self.number) if 0 < self.number <= 26 else str(self.number)
        return f'Option {letter}: {self.text[:30]}'

    def to_dict(self, reveal_answers=False):
        data = {
            'id': self.id,
            'number': self.number,
            'text': self.text,
        }
        if reveal_answers:
            data['is_correct'] = self.is_correct
        return data
