from django.apps import AppConfig


class CoreConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'core'
    verbose_name = 'Exam Portal Core'

    def ready(self):
        # Login/logout audit receivers
        import core.signals  # noqa: F401
