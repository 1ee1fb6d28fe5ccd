from celery.schedules import crontab

from .base import *  # Import defaults from base.py

# SECURITY WARNING: don't run with debug turned on in production!
DEBUG = env.bool("DEBUG", default=True)

ALLOWED_HOSTS = ["*"]

# Redis Cache
CACHES = {
    "default": {
        "BACKEND": "django_redis.cache.RedisCache",
        "LOCATION": env("REDIS_URL", default="redis://redis:6379/0"),
        "OPTIONS": {
            "CLIENT_CLASS": "django_redis.client.DefaultClient",
        },
    }
}

EMAIL_BACKEND = "django.core.mail.backends.console.EmailBackend"

# --- CELERY SETTINGS ---
CELERY_BROKER_URL = env("REDIS_URL", default="redis://redis:6379/0")
CELERY_RESULT_BACKEND = env("REDIS_URL", default="redis://redis:6379/0")

CELERY_ACCEPT_CONTENT = ["application/json"]
CELERY_TASK_SERIALIZER = "json"
CELERY_RESULT_SERIALIZER = "json"
CELERY_TIMEZONE = TIME_ZONE

CELERY_BEAT_SCHEDULE = {
    "expire_stale_redemptions_hourly": {
        "task": "loyalty.tasks.expire_stale_redemptions",
        "schedule": crontab(minute=5),
    },
    "refresh_statistics_nightly": {
        "task": "loyalty.tasks.refresh_all_statistics",
        "schedule": crontab(minute=30, hour=3),
    },
}

LOGGING["root"]["level"] = "DEBUG" if DEBUG else "INFO"
