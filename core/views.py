"""
Core views – JSON authentication endpoints shared by all roles.
"""
import json
import logging

from axes.decorators import axes_dispatch
from django.contrib.auth import authenticate, login, logout
from django.contrib.auth.decorators import login_required
from django.http import JsonResponse
from django.views.decorators.cache import never_cache
from django.views.decorators.http import require_GET, require_POST

auth_logger = logging.getLogger('proctor.auth')


@axes_dispatch
@never_cache
@require_POST
def login_view(request):
    """POST {username, password} → the logged-in account."""
    try:
        data = json.loads(request.body or b'{}')
    except (json.JSONDecodeError, ValueError):
        return JsonResponse({'error': 'Invalid JSON body', 'code': 'validation_error'}, status=400)

    username = (data.get('username') or '').strip()
    password = data.get('password') or ''
    if not username or not password:
        return JsonResponse(
            {'error': 'Please provide both username and password.', 'code': 'validation_error'},
            status=400,
        )

    user = authenticate(request, username=username, password=password)
    if user is None:
        return JsonResponse({'error': 'Invalid credentials', 'code': 'unauthorized'}, status=401)

    login(request, user)
    return JsonResponse({'user': user.to_dict()})


@login_required
@require_POST
def logout_view(request):
    logout(request)
    return JsonResponse({'message': 'Logged out'})


@login_required
@require_GET
def me_view(request):
    return JsonResponse({'user': request.user.to_dict()})
