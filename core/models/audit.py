"""
AuditLog model – records every significant action in the system.
"""
from django.conf import settings
from django.db import models
from django.utils import timezone


class AuditLog(models.Model):
    """Append-only trail of session, exam and login actions."""

    ACTION_CHOICES = [
        ('START', 'Start Exam'),
        ('SUBMIT', 'Submit Exam'),
        ('VIOLATION', 'Violation'),
        ('TERMINATE', 'Terminate'),
        ('PUBLISH', 'Publish Exam'),
        ('UNPUBLISH', 'Unpublish Exam'),
        ('EXTEND', 'Extend Exam'),
        ('VIEW', 'View'),
        ('LOGIN', 'Login'),
        ('LOGOUT', 'Logout'),
    ]

    id = models.BigAutoField(primary_key=True)
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL,
        null=True, blank=True, related_name='audit_logs'
    )
    username = models.CharField(max_length=80, blank=True, default='')

    action = models.CharField(max_length=20, choices=ACTION_CHOICES)
    resource_type = models.CharField(max_length=50)  # e.g. 'ExamSession', 'Exam'
    resource_id = models.CharField(max_length=36, blank=True, default='')

    description = models.TextField(blank=True, default='')
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    user_agent = models.TextField(blank=True, default='')
    extra_data = models.JSONField(null=True, blank=True)

    timestamp = models.DateTimeField(default=timezone.now, db_index=True)

    class Meta:
        db_table = 'audit_logs'
        ordering = ['-timestamp']
        indexes = [
            models.Index(fields=['user', 'action'], name='idx_audit_user_action'),
            models.Index(fields=['resource_type', 'resource_id'], name='idx_audit_resource'),
        ]

    def __str__(self):
        return f'[{self.action}] {self.username} on {self.resource_type} {self.resource_id}'
