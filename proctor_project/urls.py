"""
Root URL configuration for the proctored exam portal.
"""
from django.conf import settings
from django.contrib import admin
from django.urls import path, include

urlpatterns = [
    path(f"{settings.ADMIN_URL}/", admin.site.urls),
    path('api/auth/', include('core.urls')),
    path('api/student/', include('student.api_urls')),
    path('api/teacher/', include('teacher.api_urls')),
]

# Everything under /api/ answers in JSON
handler404 = 'core.error_handlers.handler404'
handler500 = 'core.error_handlers.handler500'
handler403 = 'core.error_handlers.handler403'
handler400 = 'core.error_handlers.handler400'
