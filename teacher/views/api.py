"""
Teacher API views – exam publishing, time extension and the results board.
"""
import json
import logging
from datetime import timedelta

from django.conf import settings
from django.contrib.auth.decorators import login_required
from django.db import transaction
from django.http import JsonResponse
from django.utils import timezone
from django.views.decorators.http import require_GET, require_POST

from core.models import Exam
from core.services import notifications, results
from core.services.errors import InvalidState, NotFound, SessionError, ValidationError, error_response
from core.utils.audit import log_action

logger = logging.getLogger('proctor.audit')


def _parse_json_body(request):
    """Safely parse JSON request body. Returns (data, error_response)."""
    if not request.body:
        return {}, None
    try:
        data = json.loads(request.body)
    except (json.JSONDecodeError, ValueError):
        return None, JsonResponse({'error': 'Invalid JSON body', 'code': 'validation_error'}, status=400)
    if not isinstance(data, dict):
        return None, JsonResponse({'error': 'JSON body must be an object', 'code': 'validation_error'}, status=400)
    return data, None


def _owned_exam(request, exam_id, lock=False):
    """Exams are only visible to their author (admins see all)."""
    qs = Exam.objects.select_related('classroom')
    if lock:
        qs = qs.select_for_update(of=('self',))
    if not (request.user.is_admin or request.user.is_superuser):
        qs = qs.filter(created_by=request.user)
    try:
        return qs.get(pk=exam_id)
    except Exam.DoesNotExist:
        raise NotFound('Exam not found')


def _check_publish_lock(exam, now):
    """No status change once the exam is within the lock window of its start."""
    lock = timedelta(seconds=getattr(settings, 'PROCTOR_PUBLISH_LOCK_SECONDS', 60))
    if exam.scheduled_start - now < lock:
        raise InvalidState('Cannot change exam status less than 1 minute before start time')


# ── Publishing ─────────────────────────────────────────────────────

@login_required
@require_POST
def toggle_publish(request, exam_id):
    """Publish a draft exam or pull a published one back to draft."""
    now = timezone.now()
    try:
        with transaction.atomic():
            exam = _owned_exam(request, exam_id, lock=True)

            question_count = exam.questions.count()
            if question_count == 0:
                raise InvalidState('Cannot publish exam with 0 questions')

            _check_publish_lock(exam, now)

            if not exam.is_active:
                current_total = exam.get_question_marks_total()
                if current_total != exam.total_marks:
                    raise ValidationError(
                        f'Cannot publish: Total Question Marks ({current_total}) '
                        f'do not match Exam Total Marks ({exam.total_marks})',
                        question_marks=current_total,
                        total_marks=exam.total_marks,
                    )

            exam.is_active = not exam.is_active
            exam.save(update_fields=['is_active'])
    except SessionError as exc:
        return error_response(exc)

    action = 'PUBLISH' if exam.is_active else 'UNPUBLISH'
    log_action(request, action, 'Exam', exam.id,
               f'{action.title()}ed exam "{exam.title}"')
    logger.info('EXAM_%s | user=%s | exam=%s', action, request.user.username, exam.id)

    notified = 0
    if exam.is_active:
        notified = notifications.notify_exam_published(exam, request.user)

    message = f'Exam {"published" if exam.is_active else "unpublished"}'
    if notified:
        message += f'. Notification sent to {notified} students.'

    return JsonResponse({'message': message, 'is_active': exam.is_active, 'notified': notified})


# ── Time extension ─────────────────────────────────────────────────

@login_required
@require_POST
def extend_exam(request, exam_id):
    """Add minutes to the duration and the scheduled end; running attempts see it on resync."""
    data, err = _parse_json_body(request)
    if err:
        return err

    extra = data.get('extra_minutes')
    if isinstance(extra, bool) or not isinstance(extra, int) or extra <= 0:
        return error_response(ValidationError('Extra minutes must be a positive integer'))

    try:
        with transaction.atomic():
            exam = _owned_exam(request, exam_id, lock=True)
            exam.extend(extra)
    except SessionError as exc:
        return error_response(exc)

    log_action(request, 'EXTEND', 'Exam', exam.id,
               f'Extended exam "{exam.title}" by {extra} minutes',
               extra_data={'extra_minutes': extra, 'scheduled_end': exam.scheduled_end.isoformat()})
    logger.info(
        'EXAM_EXTEND | user=%s | exam=%s | minutes=%s | new_end=%s',
        request.user.username, exam.id, extra, exam.scheduled_end.isoformat(),
    )

    return JsonResponse({
        'message': f'Exam time extended by {extra} minutes',
        'duration_minutes': exam.duration_minutes,
        'scheduled_end': exam.scheduled_end.isoformat(),
    })


# ── Results board ──────────────────────────────────────────────────

@login_required
@require_GET
def exam_results(request, exam_id):
    try:
        exam = _owned_exam(request, exam_id)
    except SessionError as exc:
        return error_response(exc)

    log_action(request, 'VIEW', 'Exam', exam.id, f'Viewed results for "{exam.title}"')
    return JsonResponse({
        'exam': exam.to_dict(),
        'results': results.exam_results(exam),
    })
