"""
Error kinds raised by the exam session engine.

Each carries the HTTP status the API layer answers with, so views only have to
catch ``SessionError`` and call ``error_response``.
"""
from django.http import JsonResponse


class SessionError(Exception):
    """Base class for every engine error surfaced to the caller."""

    code = 'error'
    status_code = 400

    def __init__(self, message, **details):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self):
        data = {'error': self.message, 'code': self.code}
        data.update(self.details)
        return data


class NotFound(SessionError):
    """No such session or exam."""
    code = 'not_found'
    status_code = 404


class Unauthorized(SessionError):
    """Student not enrolled, or not the owner of the session."""
    code = 'unauthorized'
    status_code = 403


class InvalidState(SessionError):
    """Operation on a terminal session, or outside the scheduled window."""
    code = 'invalid_state'
    status_code = 400


class ValidationError(SessionError):
    """Malformed payload."""
    code = 'validation_error'
    status_code = 400


class ResultNotYetAvailable(InvalidState):
    """Results are withheld until the exam window has closed."""
    code = 'not_yet_available'
    status_code = 403


class SessionStillInProgress(InvalidState):
    """The window closed but the attempt never reached a terminal status."""
    code = 'still_in_progress'
    status_code = 409


def error_response(exc):
    return JsonResponse(exc.to_dict(), status=exc.status_code)
