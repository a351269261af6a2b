from .base import *  # noqa

DEBUG = True

# Attribution cookies are served over plain http on localhost.
ATTRIBUTION_COOKIE_SECURE = False

# Use local memory cache in development to avoid requiring Redis.
CACHES = {
    "default": {
        "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
    }
}

# Run accrual retries inline unless a broker is configured.
CELERY_TASK_ALWAYS_EAGER = os.getenv("CELERY_BROKER_URL") is None  # noqa: F405

LOGGING["loggers"]["apps"]["level"] = "DEBUG"  # noqa: F405
