"""
Audit logging utility for recording user actions.
"""
from django.conf import settings

from core.models.audit import AuditLog


def log_action(request, action, resource_type, resource_id='', description='', extra_data=None):
    """
    Create an audit log entry.

    Args:
        request: Django HttpRequest (can be None for system actions)
        action: Action type string (START, SUBMIT, VIOLATION, TERMINATE, ...)
        resource_type: Model name or resource category
        resource_id: Primary key of affected resource
        description: Human-readable description
        extra_data: Optional dict with extra context
    """
    user = None
    username = 'system'
    ip_address = None
    user_agent = ''

    if request is not None:
        if hasattr(request, 'user') and request.user.is_authenticated:
            user = request.user
            username = user.username
        ip_address = get_client_ip(request)
        user_agent = request.META.get('HTTP_USER_AGENT', '')

    return AuditLog.objects.create(
        user=user,
        username=username,
        action=action,
        resource_type=resource_type,
        resource_id=str(resource_id),
        description=description,
        ip_address=ip_address,
        user_agent=user_agent[:500],
        extra_data=extra_data,
    )


def get_client_ip(request):
    """
    Client IP, honouring X-Forwarded-For only when the request came through
    one of settings.TRUSTED_PROXIES (or when none are configured).
    """
    trusted = getattr(settings, 'TRUSTED_PROXIES', [])
    remote = request.META.get('REMOTE_ADDR', '')
    forwarded = request.META.get('HTTP_X_FORWARDED_FOR')
    if forwarded and (not trusted or remote in trusted):
        return forwarded.split(',')[0].strip()
    return remote or None
