"""
Access-control and security-header middleware for the exam portal.
"""
from django.http import JsonResponse

from core.models import Account


class RoleBasedAccessMiddleware:
    """
    Keeps each role on its own API surface:
        student  -> /api/student/ only
        teacher  -> /api/teacher/ only (superusers and admins pass too)

    Anonymous requests are left to ``login_required`` on the views.
    """

    ROLE_PREFIXES = {
        '/api/student/': (Account.ROLE_STUDENT,),
        '/api/teacher/': (Account.ROLE_TEACHER, Account.ROLE_ADMIN),
    }

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        user = getattr(request, 'user', None)
        if user is not None and user.is_authenticated:
            for prefix, roles in self.ROLE_PREFIXES.items():
                if not request.path.startswith(prefix):
                    continue
                allowed = getattr(user, 'role', None) in roles
                if prefix == '/api/teacher/' and user.is_superuser:
                    allowed = True
                if not allowed:
                    return JsonResponse(
                        {'error': 'Not allowed for your role', 'code': 'unauthorized'},
                        status=403,
                    )

        return self.get_response(request)


class SecurityHeadersMiddleware:
    """
    Sets the security headers a JSON API needs: CSP locked to self,
    Referrer-Policy, and a Permissions-Policy that denies device access
    except fullscreen (the exam client requests it).
    """

    CSP_DIRECTIVES = {
        "default-src": "'self'",
        "img-src": "'self' data:",
        "frame-ancestors": "'none'",
        "form-action": "'self'",
        "base-uri": "'self'",
    }

    def __init__(self, get_response):
        self.get_response = get_response
        self.csp_value = "; ".join(
            f"{key} {value}" for key, value in self.CSP_DIRECTIVES.items()
        )

    def __call__(self, request):
        response = self.get_response(request)
        response["Content-Security-Policy"] = self.csp_value
        response["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response["Permissions-Policy"] = (
            "camera=(), microphone=(), geolocation=(), payment=(), fullscreen=(self)"
        )
        return response
