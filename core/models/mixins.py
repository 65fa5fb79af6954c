"""
Base model mixins for the exam portal.
"""
from django.db import models
from django.utils import timezone


class TimestampMixin(models.Model):
    """Abstract mixin that stamps creation and last-update times."""

    created_at = models.DateTimeField(
        default=timezone.now, editable=False,
        help_text="When the row was created"
    )
    updated_at = models.DateTimeField(
        null=True, blank=True,
        help_text="When the row was last saved"
    )

    class Meta:
        abstract = True

    def save(self, *args, **kwargs):
        self.updated_at = timezone.now()
        update_fields = kwargs.get('update_fields')
        if update_fields is not None and 'updated_at' not in update_fields:
            kwargs['update_fields'] = list(update_fields) + ['updated_at']
        super().save(*args, **kwargs)
