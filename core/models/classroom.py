"""
Classroom model – the enrollment list private exams are linked to.
"""
from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from .mixins import TimestampMixin


class Classroom(TimestampMixin):
    """A subject class with exactly one teacher and a capped student list."""

    STATUS_DRAFT = 'draft'
    STATUS_ACTIVE = 'active'
    STATUS_ARCHIVED = 'archived'
    STATUS_CHOICES = [
        (STATUS_DRAFT, 'Draft'),
        (STATUS_ACTIVE, 'Active'),
        (STATUS_ARCHIVED, 'Archived'),
    ]

    id = models.AutoField(primary_key=True)
    name = models.CharField(max_length=100)
    subject_code = models.CharField(max_length=20, blank=True, default='', db_index=True)
    batch = models.CharField(max_length=50, blank=True, default='')

    teacher = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL,
        null=True, blank=True, related_name='taught_classes', db_index=True
    )
    students = models.ManyToManyField(
        settings.AUTH_USER_MODEL, blank=True, related_name='enrolled_classes'
    )

    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_DRAFT)

    class Meta:
        db_table = 'classrooms'
        ordering = ['name']

    def __str__(self):
        if self.subject_code:
            return f'{self.subject_code}: {self.name}'
        return self.name

    def save(self, *args, **kwargs):
        self.subject_code = (self.subject_code or '').strip().upper()
        super().save(*args, **kwargs)

    @property
    def max_capacity(self):
        return getattr(settings, 'CLASSROOM_MAX_CAPACITY', 50)

    def is_enrolled(self, student):
        if student is None or student.pk is None:
            return False
        return self.students.filter(pk=student.pk).exists()

    def enroll(self, *students):
        """Add students, refusing to go over the capacity limit."""
        new_ids = {s.pk for s in students} - set(self.students.values_list('pk', flat=True))
        if self.students.count() + len(new_ids) > self.max_capacity:
            raise ValidationError(
                f'Class capacity cannot exceed {self.max_capacity} students.'
            )
        self.students.add(*students)

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'subject_code': self.subject_code,
            'batch': self.batch,
            'status': self.status,
        }
