"""
Clock reconciliation – remaining exam time from server-held timestamps.

Nothing here accepts client-reported elapsed or remaining time. Every call
re-reads ``duration_minutes`` and ``scheduled_end`` from the exam it is given,
so an extension (or a window pulled back) takes effect on the next contact.
"""
from datetime import timedelta

from django.utils import timezone


def allowed_end(session, exam):
    """min(start_time + duration, scheduled_end)"""
    by_duration = session.start_time + timedelta(minutes=exam.duration_minutes)
    return min(by_duration, exam.scheduled_end)


def remaining_seconds(session, exam, now=None):
    now = now or timezone.now()
    remaining = (allowed_end(session, exam) - now).total_seconds()
    return max(0, int(remaining))


def has_expired(session, exam, now=None):
    return remaining_seconds(session, exam, now) == 0


def snapshot(session, exam, now=None):
    """Payload returned on start, periodic resync and submit."""
    now = now or timezone.now()
    remaining = remaining_seconds(session, exam, now)
    return {
        'server_time': now.isoformat(),
        'start_time': session.start_time.isoformat(),
        'allowed_end': allowed_end(session, exam).isoformat(),
        'remaining_seconds': remaining,
        'expired': remaining == 0,
    }
