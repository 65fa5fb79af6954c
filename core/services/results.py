"""
Session query service – read-only, access-controlled views of attempts.
"""
from django.conf import settings
from django.db.models import Count, F, Q
from django.utils import timezone

from core.models import Classroom, Exam, ExamSession
from . import clock
from .errors import NotFound, ResultNotYetAvailable, SessionStillInProgress

NOT_STARTED = 'not-started'
NOT_ATTENDED = 'not-attended'


def _best_first(queryset):
    return queryset.order_by(F('score').desc(nulls_last=True), '-start_time')


def is_practically_closed(session, exam, now=None):
    """An in-progress attempt whose allowed end passed counts as closed."""
    if session.is_terminal:
        return True
    return clock.has_expired(session, exam, now)


def get_result(student, exam_id, now=None):
    """
    The student's graded attempt, once the exam window has closed.

    Raises NotFound, ResultNotYetAvailable (window still open, whatever this
    attempt's status) or SessionStillInProgress (window closed but the attempt
    was never submitted).
    """
    now = now or timezone.now()
    sessions = list(_best_first(
        ExamSession.objects.filter(student=student, exam_id=exam_id)
        .select_related('exam', 'exam__classroom')
    ))
    if not sessions:
        raise NotFound('Exam attempt not found')

    exam = sessions[0].exam
    if now < exam.scheduled_end:
        raise ResultNotYetAvailable(
            'Results are hidden until the exam period is over',
            scheduled_end=exam.scheduled_end.isoformat(),
        )

    for session in sessions:
        if session.is_terminal:
            return session

    raise SessionStillInProgress('Exam is still in progress')


def serialize_result(session):
    data = session.to_dict(include_violations=True)
    data['exam'] = session.exam.to_dict(include_questions=True, reveal_answers=True)
    return data


def available_exams(student, now=None):
    """Published exams the student may see, with their own attempt status."""
    now = now or timezone.now()
    enrolled_ids = Classroom.objects.filter(students=student).values_list('pk', flat=True)
    limit = getattr(settings, 'PROCTOR_RESULTS_PAGE_LIMIT', 9)

    exams = list(
        Exam.objects.filter(is_active=True)
        .filter(
            Q(access_type=Exam.ACCESS_PUBLIC)
            | Q(access_type=Exam.ACCESS_PRIVATE, classroom_id__in=enrolled_ids)
        )
        .select_related('classroom')
        .order_by('-scheduled_start')[:limit]
    )
    sessions = {
        s.exam_id: s
        for s in ExamSession.objects.filter(student=student, exam__in=exams)
    }

    listing = []
    for exam in exams:
        data = exam.to_dict()
        session = sessions.get(exam.id)
        if session is None:
            data.update({
                'status': NOT_STARTED,
                'score': None,
                'session_start_time': None,
                'can_resume': False,
            })
        else:
            data.update({
                'status': session.status,
                'score': session.score,
                'session_start_time': session.start_time.isoformat(),
                'can_resume': not is_practically_closed(session, exam, now),
            })
        listing.append(data)
    return listing


def enrolled_classes(student):
    classes = (
        Classroom.objects.filter(students=student)
        .annotate(exam_count=Count(
            'exams',
            filter=Q(exams__is_active=True, exams__access_type=Exam.ACCESS_PRIVATE),
        ))
        .order_by('name')
    )
    return [dict(c.to_dict(), exam_count=c.exam_count) for c in classes]


def exam_results(exam):
    """
    Teacher results board: one row per student.

    For a class exam every enrolled student appears, with a not-attended
    placeholder when there is no attempt. Attended rows come first by score,
    absentees after by name.
    """
    best = {}
    for session in _best_first(exam.sessions.select_related('student')):
        best.setdefault(session.student_id, session)

    rows = []
    if exam.classroom_id:
        for student in exam.classroom.students.all():
            session = best.get(student.pk)
            if session is not None:
                rows.append(dict(session.to_dict(), student=student.to_dict()))
            else:
                rows.append({
                    'id': None,
                    'student': student.to_dict(),
                    'status': NOT_ATTENDED,
                    'score': None,
                    'violation_count': 0,
                    'start_time': None,
                })
    else:
        rows = [dict(s.to_dict(), student=s.student.to_dict()) for s in best.values()]

    attended = [r for r in rows if r['status'] != NOT_ATTENDED]
    absent = [r for r in rows if r['status'] == NOT_ATTENDED]
    attended.sort(key=lambda r: r['score'] if r['score'] is not None else -1, reverse=True)
    absent.sort(key=lambda r: (r['student']['full_name'] or r['student']['username']).lower())
    return attended + absent
