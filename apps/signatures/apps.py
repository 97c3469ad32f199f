from django.apps import AppConfig


class SignaturesConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "apps.signatures"
    label = "signatures"

    def ready(self) -> None:
        from . import handlers

        handlers.register()
