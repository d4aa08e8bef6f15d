"""
Django settings for the focushome project.

All deployment-specific values come from the environment (optionally a
``.env`` file loaded through python-dotenv).
"""

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

BASE_DIR = Path(__file__).resolve().parent.parent

SECRET_KEY = os.getenv('DJANGO_SECRET_KEY', 'django-insecure-change-me')

DEBUG = os.getenv('DJANGO_DEBUG', 'false').lower() in ('1', 'true', 'yes')

ALLOWED_HOSTS = [h for h in os.getenv('DJANGO_ALLOWED_HOSTS', 'localhost,127.0.0.1,testserver').split(',') if h]


# Application definition

INSTALLED_APPS = [
    'django.contrib.contenttypes',
    'django.contrib.auth',
    'rest_framework',
    'tasks',
]

MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'django.middleware.common.CommonMiddleware',
]

ROOT_URLCONF = 'focushome.urls'

WSGI_APPLICATION = 'focushome.wsgi.application'


# Database

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': os.getenv('DATABASE_PATH', str(BASE_DIR / 'db.sqlite3')),
    }
}

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'


# Internationalization / time
# Due-date "today" comparisons use the local wall-clock day of TIME_ZONE.

LANGUAGE_CODE = 'en-us'
TIME_ZONE = os.getenv('DJANGO_TIME_ZONE', 'UTC')
USE_I18N = True
USE_TZ = True


# Caches
# The intent cache gets its own alias. With REDIS_URL it shares the Redis
# database with the Celery broker, so IntentCache.clear() only drops intent
# keys and never flushes the backend. Entries never expire (timeout=None).

INTENT_CACHE_ALIAS = os.getenv('INTENT_CACHE_ALIAS', 'intents')
INTENT_CACHE_MAX_ENTRIES = int(os.getenv('INTENT_CACHE_MAX_ENTRIES', 100000))

REDIS_URL = os.getenv('REDIS_URL', '')

if REDIS_URL:
    _intent_cache = {
        'BACKEND': 'django.core.cache.backends.redis.RedisCache',
        'LOCATION': REDIS_URL,
        'KEY_PREFIX': 'focushome',
        'TIMEOUT': None,
    }
else:
    _intent_cache = {
        'BACKEND': 'django.core.cache.backends.locmem.LocMemCache',
        'LOCATION': 'focushome-intents',
        'TIMEOUT': None,
        'OPTIONS': {'MAX_ENTRIES': INTENT_CACHE_MAX_ENTRIES},
    }

CACHES = {
    'default': {
        'BACKEND': 'django.core.cache.backends.locmem.LocMemCache',
        'LOCATION': 'focushome-default',
    },
    INTENT_CACHE_ALIAS: _intent_cache,
}


# Remote intent classifier (OpenAI chat completions)
# An empty key disables the remote fallback entirely.

OPENAI_API_KEY = os.getenv('OPENAI_API_KEY', '')
INTENT_FALLBACK_MODEL = os.getenv('INTENT_FALLBACK_MODEL', 'gpt-4o-mini')
INTENT_FALLBACK_TIMEOUT = float(os.getenv('INTENT_FALLBACK_TIMEOUT', 10.0))


# Django REST framework
# Single-user assistant: no authentication layer in this core.

REST_FRAMEWORK = {
    'DEFAULT_AUTHENTICATION_CLASSES': [],
    'DEFAULT_PERMISSION_CLASSES': ['rest_framework.permissions.AllowAny'],
    'UNAUTHENTICATED_USER': None,
    'DEFAULT_RENDERER_CLASSES': ['rest_framework.renderers.JSONRenderer'],
}


# Celery

CELERY_BROKER_URL = os.getenv('CELERY_BROKER_URL', REDIS_URL or 'memory://')
CELERY_RESULT_BACKEND = os.getenv('CELERY_RESULT_BACKEND', None)
CELERY_TASK_SERIALIZER = 'json'
CELERY_ACCEPT_CONTENT = ['json']
CELERY_TIMEZONE = TIME_ZONE

RESCORE_INTERVAL_MINUTES = int(os.getenv('RESCORE_INTERVAL_MINUTES', 15))

CELERY_BEAT_SCHEDULE = {
    'rescore-open-tasks': {
        'task': 'tasks.ai_engine.celery_tasks.rescore_open_tasks',
        'schedule': RESCORE_INTERVAL_MINUTES * 60.0,
    },
}


# Logging

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'verbose': {
            'format': '{asctime} {levelname} {name}: {message}',
            'style': '{',
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'verbose',
        },
    },
    'root': {
        'handlers': ['console'],
        'level': 'WARNING',
    },
    'loggers': {
        'tasks': {
            'handlers': ['console'],
            'level': os.getenv('DJANGO_LOG_LEVEL', 'INFO'),
            'propagate': False,
        },
    },
}
