from django.apps import AppConfig
from django.db.models.signals import post_migrate  # type: ignore


class StudioConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "apps.studio"
    label = "studio"

    def ready(self) -> None:
        from . import handlers
        from .constraints import install_booking_constraint

        handlers.register()
        post_migrate.connect(install_booking_constraint, sender=self, dispatch_uid="studio_booking_constraint")
