"""
Test settings: SQLite in-memory database, no retry back-off.
"""
from .settings import *  # noqa: F401,F403

DEBUG = False

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': ':memory:',
    }
}

PASSWORD_HASHERS = ['django.contrib.auth.hashers.MD5PasswordHasher']

CONSULTATION_WORKFLOW = {
    **CONSULTATION_WORKFLOW,  # noqa: F405
    'MAX_RETRIES': 3,
    'RETRY_BASE_DELAY_SECONDS': 0,
    'RETRY_MAX_DELAY_SECONDS': 0,
}

# Application loggers propagate so pytest's caplog sees them
LOGGING['loggers']['apps']['propagate'] = True  # noqa: F405
