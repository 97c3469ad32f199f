from django.apps import AppConfig
from django.db.models.signals import post_migrate  # type: ignore


class InventoryConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "apps.inventory"
    label = "inventory"

    def ready(self) -> None:
        from .constraints import install_reservation_constraint

        post_migrate.connect(install_reservation_constraint, sender=self, dispatch_uid="inventory_reservation_constraint")
