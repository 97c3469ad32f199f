import os

from celery import Celery
from celery.schedules import crontab  # type: ignore

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings.dev")

app = Celery("horizon")

app.config_from_object("django.conf:settings", namespace="CELERY")
app.autodiscover_tasks()


# ============================================================================
# CELERY BEAT SCHEDULE (Periodic Tasks)
# ============================================================================

app.conf.beat_schedule = {
    # Poll the e-signature provider for envelopes whose webhook never arrived
    "refresh-outstanding-envelopes": {
        "task": "signatures.refresh_outstanding_envelopes",
        "schedule": crontab(minute="*/15"),
        "options": {"expires": 600},
    },
}
