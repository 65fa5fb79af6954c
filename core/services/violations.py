"""
Violation tracker – debounced integrity events and the termination threshold.

The debounce anchor is the persisted ``last_violation_at`` column, read and
written under the session row lock, so two tabs reporting the same blur land
on one counted violation no matter which process serves them.
"""
import logging
from collections import namedtuple
from datetime import timedelta

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from core.models import Exam, ExamSession, ViolationLog
from . import scoring
from .errors import InvalidState, ValidationError
from .sessions import finalize, get_owned_session

logger = logging.getLogger('proctor.engine')

ViolationOutcome = namedtuple(
    'ViolationOutcome', ['violation_count', 'is_terminated', 'score', 'accepted']
)


def warning_limit():
    """Accepted violations tolerated; the next one terminates."""
    return getattr(settings, 'PROCTOR_VIOLATION_WARNINGS', 2)


def debounce_window():
    return timedelta(seconds=getattr(settings, 'PROCTOR_VIOLATION_DEBOUNCE_SECONDS', 1.0))


def is_debounced(session, now):
    if session.last_violation_at is None:
        return False
    return now - session.last_violation_at < debounce_window()


def report_violation(session_id, student, violation_type, answers=None):
    """
    Record one integrity event against an in-progress session.

    ``answers`` is the client's current answer set; it is only used if this
    report terminates the attempt, in which case it is scored and frozen.
    """
    if violation_type not in ViolationLog.valid_types():
        raise ValidationError(
            f'Unknown violation type: {violation_type!r}',
            allowed=sorted(ViolationLog.valid_types()),
        )
    answers = scoring.normalize_answers(answers)

    with transaction.atomic():
        session = get_owned_session(session_id, student, lock=True)
        if not session.is_in_progress:
            raise InvalidState('Invalid session: attempt already finished')

        now = timezone.now()
        if is_debounced(session, now):
            logger.debug(
                'VIOLATION_DEBOUNCED | session=%s | type=%s', session.id, violation_type
            )
            return ViolationOutcome(session.violation_count, False, None, False)

        ViolationLog.objects.create(
            session=session, violation_type=violation_type, timestamp=now,
        )
        session.violation_count += 1
        session.last_violation_at = now

        if session.violation_count <= warning_limit():
            session.save(update_fields=['violation_count', 'last_violation_at'])
            logger.info(
                'VIOLATION | session=%s | student=%s | type=%s | count=%s',
                session.id, student.username, violation_type, session.violation_count,
            )
            return ViolationOutcome(session.violation_count, False, None, True)

        exam = Exam.objects.get(pk=session.exam_id)
        score = finalize(session, exam, ExamSession.STATUS_TERMINATED, answers, now)

    logger.warning(
        'SESSION_TERMINATE | session=%s | student=%s | type=%s | count=%s | score=%s',
        session.id, student.username, violation_type, session.violation_count, score,
    )
    return ViolationOutcome(session.violation_count, True, score, True)
