"""
Settings entry point.
DJANGO_ENV=production selects production.py; anything else runs development.py.
"""
import os

if os.environ.get('DJANGO_ENV', 'development') == 'production':
    from .production import *
else:
    from .development import *
