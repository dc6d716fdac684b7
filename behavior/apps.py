from django.apps import AppConfig


class BehaviorConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'behavior'
    verbose_name = 'Behavior Tracking'
