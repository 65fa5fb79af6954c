"""
Session state machine – the lifecycle of one student's attempt at one exam.

    in-progress ──submit──────────────▶ submitted
         │
         └──3rd accepted violation──▶ terminated

Both right-hand states are terminal. Every mutation runs inside
``transaction.atomic()`` with the session row locked, and re-checks the status
after acquiring the lock, so a submit racing a violation report cannot both
win: the loser sees a terminal status and gets InvalidState.
"""
import logging
from collections import namedtuple

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import IntegrityError, transaction
from django.utils import timezone

from core.models import Exam, ExamSession
from . import clock, scoring
from .errors import InvalidState, NotFound, Unauthorized

logger = logging.getLogger('proctor.engine')

SubmitOutcome = namedtuple('SubmitOutcome', ['session', 'score', 'total_marks'])


# ── Lookups ────────────────────────────────────────────────────────

def load_exam(exam_id):
    try:
        return Exam.objects.select_related('classroom').get(pk=exam_id)
    except (Exam.DoesNotExist, ValueError, DjangoValidationError):
        raise NotFound('Exam not found')


def get_owned_session(session_id, student, lock=False):
    """Fetch a session and check that ``student`` owns it."""
    qs = ExamSession.objects.all()
    if lock:
        qs = qs.select_for_update()
    try:
        session = qs.get(pk=session_id)
    except (ExamSession.DoesNotExist, ValueError, DjangoValidationError):
        raise NotFound('Session not found')
    if session.student_id != student.pk:
        raise Unauthorized('This session belongs to another student')
    return session


def sanitize_exam(exam):
    """Exam payload for an attempt: questions and options, no answer key."""
    return exam.to_dict(include_questions=True, reveal_answers=False)


# ── Transitions ────────────────────────────────────────────────────

def start_session(student, exam_id):
    """
    Create the student's session for an exam, or return the in-progress one.

    Returns (session, exam, created). Re-issuing start never resets
    ``start_time``.
    """
    exam = load_exam(exam_id)
    now = timezone.now()

    if not exam.is_active:
        raise InvalidState('Exam is not active')
    if not exam.is_open_at(now):
        raise InvalidState(
            'Exam is not reachable currently',
            scheduled_start=exam.scheduled_start.isoformat(),
            scheduled_end=exam.scheduled_end.isoformat(),
        )
    if not exam.is_accessible_by(student):
        raise Unauthorized('You are not enrolled in the class for this exam')

    with transaction.atomic():
        session = (
            ExamSession.objects.select_for_update()
            .filter(student=student, exam=exam)
            .first()
        )
        created = False
        if session is None:
            try:
                with transaction.atomic():
                    session = ExamSession.objects.create(
                        student=student, exam=exam, start_time=now,
                    )
                created = True
            except IntegrityError:
                # A parallel start won the insert
                session = ExamSession.objects.get(student=student, exam=exam)

        if session.is_terminal:
            raise InvalidState('You have already attempted this exam')

    if created:
        logger.info(
            'SESSION_START | session=%s | student=%s | exam=%s | allowed_end=%s',
            session.id, student.username, exam.id,
            clock.allowed_end(session, exam).isoformat(),
        )
    else:
        logger.info(
            'SESSION_RESUME | session=%s | student=%s | remaining=%ss | expired=%s',
            session.id, student.username, clock.remaining_seconds(session, exam, now),
            clock.has_expired(session, exam, now),
        )
    return session, exam, created


def finalize(session, exam, status, answers, now):
    """
    Terminal write shared by submit and violation termination.

    Caller must hold the row lock inside an atomic block. Scores exactly the
    answers recorded here, then freezes status, end_time and score together.
    """
    if session.is_terminal:
        raise InvalidState('Session already finished')

    answer_key = scoring.build_answer_key(exam)
    recorded = scoring.recordable_answers(answer_key, answers)

    session.answers = recorded
    session.score = scoring.score_answers(answer_key, recorded)
    session.status = status
    session.end_time = max(now, session.start_time)
    session.save(update_fields=[
        'answers', 'score', 'status', 'end_time',
        'violation_count', 'last_violation_at',
    ])
    return session.score


def submit_session(session_id, student, answers):
    """Grade and close an in-progress session."""
    answers = scoring.normalize_answers(answers)

    with transaction.atomic():
        session = get_owned_session(session_id, student, lock=True)
        if not session.is_in_progress:
            raise InvalidState('Session already submitted')
        exam = Exam.objects.get(pk=session.exam_id)
        now = timezone.now()
        score = finalize(session, exam, ExamSession.STATUS_SUBMITTED, answers, now)

    logger.info(
        'SESSION_SUBMIT | session=%s | student=%s | score=%s/%s | late=%s',
        session.id, student.username, score, exam.total_marks,
        clock.has_expired(session, exam, now),
    )
    return SubmitOutcome(session=session, score=score, total_marks=exam.total_marks)


def resync(session_id, student):
    """Periodic clock read; never mutates the session."""
    session = get_owned_session(session_id, student)
    exam = Exam.objects.get(pk=session.exam_id)
    data = clock.snapshot(session, exam)
    data['status'] = session.status
    data['violation_count'] = session.violation_count
    return data
