"""ASGI config for Horizon Studio Ops.

Production servers should set DJANGO_SETTINGS_MODULE accordingly.
"""

import os
from django.core.asgi import get_asgi_application  # type: ignore

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings.dev')

application = get_asgi_application()
