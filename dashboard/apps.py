from django.apps import AppConfig


class DashboardConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "dashboard"
    verbose_name = "Marketing dashboard"

    def ready(self):
        from .table import use_system_collation

        use_system_collation()
