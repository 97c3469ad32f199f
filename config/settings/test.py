"""Test settings for Horizon Studio Ops.

In-memory SQLite, eager Celery and no outbound HTTP by default: the advisory
collaborator is disabled and the signature provider emulates envelopes.
"""

from .base import *  # noqa: F401,F403

DEBUG = False

SECRET_KEY = 'test-secret-key'

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': ':memory:',
    }
}

PASSWORD_HASHERS = ['django.contrib.auth.hashers.MD5PasswordHasher']

STORAGES = {
    'default': {'BACKEND': 'django.core.files.storage.FileSystemStorage'},
    'staticfiles': {'BACKEND': 'django.contrib.staticfiles.storage.StaticFilesStorage'},
}

CELERY_TASK_ALWAYS_EAGER = True
CELERY_TASK_EAGER_PROPAGATES = True
CELERY_BROKER_URL = 'memory://'
CELERY_RESULT_BACKEND = 'cache+memory://'

TIME_ZONE = 'UTC'

ADVISORY_BACKEND = 'apps.inventory.advisory.NullAdvisory'
ADVISORY_API_KEY = ''

ESIGN_ACCOUNT_ID = ''
ESIGN_ACCESS_TOKEN = ''
ESIGN_WEBHOOK_SECRET = 'test-webhook-secret'
ESIGN_WEBHOOK_REQUIRE_SIGNATURE = True

LOGGING['root']['level'] = 'CRITICAL'  # noqa: F405
