"""
Student API views – JSON endpoints for the exam-taking client.

The client is untrusted: it never supplies elapsed time, and every answer set
it sends is re-graded server-side from the answer key.
"""
import json

from django.contrib.auth.decorators import login_required
from django.http import JsonResponse
from django.utils import timezone
from django.views.decorators.http import require_GET, require_POST

from core.services import results, sessions, violations
from core.services.clock import snapshot
from core.services.errors import SessionError, error_response
from core.utils.audit import log_action


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


# ── Dashboard ──────────────────────────────────────────────────────

@login_required
@require_GET
def available_exams(request):
    """Public exams plus private exams of enrolled classes."""
    return JsonResponse(results.available_exams(request.user), safe=False)


@login_required
@require_GET
def enrolled_classes(request):
    return JsonResponse(results.enrolled_classes(request.user), safe=False)


# ── Attempt lifecycle ──────────────────────────────────────────────

@login_required
@require_POST
def start_exam(request, exam_id):
    """Create the attempt, or resume the in-progress one without resetting its clock."""
    try:
        session, exam, created = sessions.start_session(request.user, exam_id)
    except SessionError as exc:
        return error_response(exc)

    if created:
        log_action(request, 'START', 'ExamSession', session.id,
                   f'Started exam "{exam.title}"',
                   extra_data={'exam_id': str(exam.id)})

    now = timezone.now()
    # An expired attempt is closed for re-entry; only submit is left to it
    can_resume = not results.is_practically_closed(session, exam, now)

    return JsonResponse({
        'session': session.to_dict(),
        'exam': sessions.sanitize_exam(exam) if can_resume else exam.to_dict(),
        'clock': snapshot(session, exam, now),
        'resumed': not created,
        'can_resume': can_resume,
    }, status=201 if created else 200)


@login_required
@require_GET
def session_clock(request, session_id):
    """Periodic resync: authoritative remaining time for the attempt."""
    try:
        data = sessions.resync(session_id, request.user)
    except SessionError as exc:
        return error_response(exc)
    return JsonResponse(data)


@login_required
@require_POST
def report_violation(request, session_id):
    """Record a tab switch / focus loss / fullscreen exit; may terminate."""
    data, err = _parse_json_body(request)
    if err:
        return err

    try:
        outcome = violations.report_violation(
            session_id, request.user, data.get('type'), data.get('answers'),
        )
    except SessionError as exc:
        return error_response(exc)

    if outcome.is_terminated:
        log_action(request, 'TERMINATE', 'ExamSession', session_id,
                   f'Terminated after {outcome.violation_count} violations; score {outcome.score}',
                   extra_data={'type': data.get('type'), 'score': outcome.score})
        message = ('Exam terminated due to violations. Your answers have been '
                   'auto-submitted and evaluated.')
    elif outcome.accepted:
        log_action(request, 'VIOLATION', 'ExamSession', session_id,
                   f'Violation #{outcome.violation_count}: {data.get("type")}')
        message = 'Violation logged'
    else:
        message = 'Duplicate event ignored'

    resp = {
        'message': message,
        'violation_count': outcome.violation_count,
        'is_terminated': outcome.is_terminated,
        'accepted': outcome.accepted,
        'warnings_left': max(0, violations.warning_limit() - outcome.violation_count),
    }
    if outcome.is_terminated:
        resp['score'] = outcome.score
    return JsonResponse(resp)


@login_required
@require_POST
def submit_exam(request, session_id):
    """Grade the supplied answers and close the attempt."""
    data, err = _parse_json_body(request)
    if err:
        return err

    try:
        outcome = sessions.submit_session(session_id, request.user, data.get('answers'))
    except SessionError as exc:
        return error_response(exc)

    log_action(request, 'SUBMIT', 'ExamSession', session_id,
               f'Submitted with score {outcome.score}/{outcome.total_marks}')

    return JsonResponse({
        'message': 'Exam submitted successfully',
        'score': outcome.score,
        'total_marks': outcome.total_marks,
    })


# ── Results ────────────────────────────────────────────────────────

@login_required
@require_GET
def exam_result(request, exam_id):
    """The graded attempt, only once the exam window has closed."""
    try:
        session = results.get_result(request.user, exam_id)
    except SessionError as exc:
        return error_response(exc)
    return JsonResponse(results.serialize_result(session))
