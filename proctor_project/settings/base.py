"""
Base Django settings for proctor_project.
Common settings shared between development and production.
"""
import os
import sys
from datetime import timedelta
from pathlib import Path
import environ

# Build paths
BASE_DIR = Path(__file__).resolve().parent.parent.parent

# Check if running tests
TESTING = 'test' in sys.argv or 'pytest' in sys.modules

# Environment variables
env = environ.Env(
    DEBUG=(bool, False),
    ALLOWED_HOSTS=(list, ['*']),
    PROCTOR_VIOLATION_WARNINGS=(int, 2),
    PROCTOR_VIOLATION_DEBOUNCE_SECONDS=(float, 1.0),
    PROCTOR_ASYNC_NOTIFICATIONS=(bool, True),
)
environ.Env.read_env(os.path.join(BASE_DIR, '.env'))

# SECURITY WARNING: keep the secret key used in production secret!
SECRET_KEY = env('SECRET_KEY', default='django-insecure-change-me-in-production')

# Application definition
INSTALLED_APPS = [
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',
    # Third-party apps
    'axes',
    # Project apps
    'core.apps.CoreConfig',
    'student.apps.StudentConfig',
    'teacher.apps.TeacherConfig',
]

MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
    # Django-axes rate limiting (must be after AuthenticationMiddleware)
    'axes.middleware.AxesMiddleware',
    # Role-based access control (must be after AuthenticationMiddleware)
    'core.middleware.RoleBasedAccessMiddleware',
    'core.middleware.SecurityHeadersMiddleware',
]

ROOT_URLCONF = 'proctor_project.urls'

TEMPLATES = [
    {
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
        'DIRS': [],
        'APP_DIRS': True,
        'OPTIONS': {
            'context_processors': [
                'django.template.context_processors.debug',
                'django.template.context_processors.request',
                'django.contrib.auth.context_processors.auth',
                'django.contrib.messages.context_processors.messages',
            ],
        },
    },
]

WSGI_APPLICATION = 'proctor_project.wsgi.application'

# Custom user model
AUTH_USER_MODEL = 'core.Account'

# Password validation
AUTH_PASSWORD_VALIDATORS = [
    {'NAME': 'django.contrib.auth.password_validation.UserAttributeSimilarityValidator'},
    {'NAME': 'django.contrib.auth.password_validation.MinimumLengthValidator',
     'OPTIONS': {'min_length': 8}},
    {'NAME': 'django.contrib.auth.password_validation.CommonPasswordValidator'},
    {'NAME': 'django.contrib.auth.password_validation.NumericPasswordValidator'},
]

# Internationalization
LANGUAGE_CODE = 'en-us'
TIME_ZONE = 'UTC'
USE_I18N = True
USE_TZ = True

# Static files
STATIC_URL = 'static/'
STATIC_ROOT = BASE_DIR / 'staticfiles'

# Default primary key field type
DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

# Anonymous API calls are redirected here by login_required
LOGIN_URL = '/api/auth/login/'

# Admin lives under a configurable prefix
ADMIN_URL = env('ADMIN_URL', default='admin')

SESSION_COOKIE_AGE = 60 * 60 * 4  # long enough for the longest exam
SESSION_COOKIE_HTTPONLY = True
SESSION_COOKIE_SAMESITE = 'Lax'

# X-Forwarded-For is only trusted from these addresses (empty = trust any)
TRUSTED_PROXIES = env.list('TRUSTED_PROXIES', default=[])

# ==========================================================================
# EXAM SESSION ENGINE
# ==========================================================================
# Accepted violations tolerated before termination (the next one is fatal)
PROCTOR_VIOLATION_WARNINGS = env('PROCTOR_VIOLATION_WARNINGS')
# Reports closer than this to the last accepted one are dropped
PROCTOR_VIOLATION_DEBOUNCE_SECONDS = env('PROCTOR_VIOLATION_DEBOUNCE_SECONDS')
# Max exams listed on the student dashboard
PROCTOR_RESULTS_PAGE_LIMIT = 9
# Publish/unpublish is frozen this close to the scheduled start
PROCTOR_PUBLISH_LOCK_SECONDS = 60
# Send publish notifications on a background thread
PROCTOR_ASYNC_NOTIFICATIONS = env('PROCTOR_ASYNC_NOTIFICATIONS')

CLASSROOM_MAX_CAPACITY = 50

# ==========================================================================
# EMAIL
# ==========================================================================
EMAIL_CONFIG = env.email_url('EMAIL_URL', default='consolemail://')
vars().update(EMAIL_CONFIG)
DEFAULT_FROM_EMAIL = env('DEFAULT_FROM_EMAIL', default='Exam Portal Admin <noreply@proctor.local>')

# ==========================================================================
# LOGGING
# ==========================================================================
LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'verbose': {
            'format': '{asctime} [{levelname}] {name}: {message}',
            'style': '{',
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'verbose',
        },
    },
    'loggers': {
        'proctor.audit': {'handlers': ['console'], 'level': 'INFO', 'propagate': False},
        'proctor.auth': {'handlers': ['console'], 'level': 'INFO', 'propagate': False},
        'proctor.engine': {'handlers': ['console'], 'level': 'INFO', 'propagate': False},
        'proctor.mail': {'handlers': ['console'], 'level': 'INFO', 'propagate': False},
    },
    'root': {'handlers': ['console'], 'level': 'WARNING'},
}

# ==========================================================================
# DJANGO-AXES RATE LIMITING
# ==========================================================================
if TESTING:
    # Don't use axes in tests (it requires request object)
    AUTHENTICATION_BACKENDS = [
        'django.contrib.auth.backends.ModelBackend',
    ]
else:
    AUTHENTICATION_BACKENDS = [
        'axes.backends.AxesBackend',  # AxesBackend with ModelBackend fallback
        'django.contrib.auth.backends.ModelBackend',
    ]

# Lock out after 5 failed attempts
AXES_FAILURE_LIMIT = 5
# Lock out for 15 minutes
AXES_COOLOFF_TIME = timedelta(minutes=15)
# Lock based on username and IP
AXES_LOCKOUT_PARAMETERS = ['username', 'ip_address']
# Reset attempts on successful login
AXES_RESET_ON_SUCCESS = True
