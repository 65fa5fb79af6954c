"""
Custom error handlers – JSON bodies, no internals leaked.
"""
import logging

from django.http import JsonResponse

logger = logging.getLogger(__name__)


def handler404(request, exception=None):
    """Custom 404 error handler."""
    return JsonResponse({'error': 'Not found', 'code': 'not_found'}, status=404)


def handler500(request):
    """Custom 500 error handler."""
    logger.error('SERVER_ERROR | path=%s', request.path)
    return JsonResponse({'error': 'Server Error', 'code': 'server_error'}, status=500)


def handler403(request, exception=None):
    """Custom 403 error handler."""
    return JsonResponse({'error': 'Forbidden', 'code': 'unauthorized'}, status=403)


def handler400(request, exception=None):
    """Custom 400 error handler."""
    return JsonResponse({'error': 'Bad request', 'code': 'validation_error'}, status=400)
