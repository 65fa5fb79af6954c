"""
Login audit signal handlers.

Listens to Django's user_logged_in, user_login_failed and user_logged_out
signals and writes one AuditLog row plus one 'proctor.auth' log line per
authentication event.
"""
import logging

from django.contrib.auth.signals import user_logged_in, user_login_failed, user_logged_out
from django.dispatch import receiver

from core.models import AuditLog
from core.utils.audit import get_client_ip, log_action

auth_logger = logging.getLogger('proctor.auth')


@receiver(user_logged_in)
def log_successful_login(sender, request, user, **kwargs):
    """Record a successful login."""
    ip = get_client_ip(request) if request is not None else None
    AuditLog.objects.create(
        user=user,
        username=user.username,
        action='LOGIN',
        resource_type='Account',
        resource_id=str(user.pk),
        description='Login succeeded',
        ip_address=ip,
    )
    auth_logger.info('LOGIN_SUCCESS | user=%s | role=%s | ip=%s', user.username, user.role, ip)


@receiver(user_login_failed)
def log_failed_login(sender, credentials, request=None, **kwargs):
    """Record a failed login attempt."""
    username = credentials.get('username', '<unknown>')
    ip = get_client_ip(request) if request is not None else None
    AuditLog.objects.create(
        username=username[:80],
        action='LOGIN',
        resource_type='Account',
        description='Login failed',
        ip_address=ip,
    )
    auth_logger.warning('LOGIN_FAILED | username=%s | ip=%s', username, ip)


@receiver(user_logged_out)
def log_logout(sender, request, user, **kwargs):
    if user is None:
        return
    log_action(request, 'LOGOUT', 'Account', user.pk, 'Logged out')
    auth_logger.info('LOGOUT | user=%s', user.username)
