"""
Django settings for app_backend project.

Values come from the environment (a .env file at the repository root is
loaded first); defaults are for local development and tests.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

# Build paths inside the project like this: BASE_DIR / 'subdir'.
BASE_DIR = Path(__file__).resolve().parent.parent.parent

load_dotenv(os.path.join(BASE_DIR, '..', '.env'))


def env_int(name, default):
    return int(os.getenv(name, default))


def env_float(name, default):
    return float(os.getenv(name, default))


SECRET_KEY = os.getenv('SECRET_KEY', 'django-insecure-dev-key-change-me')

DEBUG = os.getenv('DEBUG', 'True') == 'True'

ALLOWED_HOSTS = os.getenv('ALLOWED_HOSTS', '*').split(',')


# Application definition

INSTALLED_APPS = [
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',

    # Third party
    'rest_framework',
    'corsheaders',
    'channels',

    # Local apps
    'accounts',
    'drivers',
    'rides',
    'realtime',
]

MIDDLEWARE = [
    'corsheaders.middleware.CorsMiddleware',
    'django.middleware.security.SecurityMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
]

ROOT_URLCONF = 'app_backend.urls'

TEMPLATES = [
    {
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
        'DIRS': [],
        'APP_DIRS': True,
        'OPTIONS': {
            'context_processors': [
                'django.template.context_processors.request',
                'django.contrib.auth.context_processors.auth',
                'django.contrib.messages.context_processors.messages',
            ],
        },
    },
]

WSGI_APPLICATION = 'app_backend.wsgi.application'
ASGI_APPLICATION = 'app_backend.asgi.application'


# Database
# PostgreSQL with pgRouting in production; sqlite for development and tests

DATABASES = {
    'default': {
        'ENGINE': os.getenv('DB_ENGINE', 'django.db.backends.sqlite3'),
        'NAME': os.getenv('DB_NAME', str(BASE_DIR / 'db.sqlite3')),
        'USER': os.getenv('DB_USER', ''),
        'PASSWORD': os.getenv('DB_PASSWORD', ''),
        'HOST': os.getenv('DB_HOST', ''),
        'PORT': os.getenv('DB_PORT', ''),
    }
}

AUTH_USER_MODEL = 'accounts.User'

AUTH_PASSWORD_VALIDATORS = [
    {'NAME': 'django.contrib.auth.password_validation.UserAttributeSimilarityValidator'},
    {'NAME': 'django.contrib.auth.password_validation.MinimumLengthValidator'},
    {'NAME': 'django.contrib.auth.password_validation.CommonPasswordValidator'},
    {'NAME': 'django.contrib.auth.password_validation.NumericPasswordValidator'},
]


# Internationalization

LANGUAGE_CODE = 'en-us'
TIME_ZONE = 'UTC'
USE_I18N = True
USE_TZ = True

STATIC_URL = 'static/'
STATIC_ROOT = BASE_DIR / 'staticfiles'

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'


# REST framework

REST_FRAMEWORK = {
    'DEFAULT_AUTHENTICATION_CLASSES': (
        'rest_framework.authentication.SessionAuthentication',
        'rest_framework.authentication.BasicAuthentication',
    ),
    'DEFAULT_PERMISSION_CLASSES': (
        'rest_framework.permissions.IsAuthenticated',
    ),
}

CORS_ALLOW_ALL_ORIGINS = DEBUG


# Redis: Celery broker, cache and channel layer in production

REDIS_URL = os.getenv('REDIS_URL', 'redis://localhost:6379/0')

CHANNEL_LAYERS = {
    'default': {
        'BACKEND': 'channels.layers.InMemoryChannelLayer',
    }
}

# The single-flight guard of the periodic jobs lives in this cache
CACHES = {
    'default': {
        'BACKEND': 'django.core.cache.backends.locmem.LocMemCache',
    }
}


# Celery

CELERY_BROKER_URL = os.getenv('CELERY_BROKER_URL', REDIS_URL)
CELERY_RESULT_BACKEND = os.getenv('CELERY_RESULT_BACKEND', REDIS_URL)
CELERY_ACCEPT_CONTENT = ['json']
CELERY_TASK_SERIALIZER = 'json'
CELERY_RESULT_SERIALIZER = 'json'
CELERY_TIMEZONE = TIME_ZONE
CELERY_TASK_ALWAYS_EAGER = os.getenv('CELERY_TASK_ALWAYS_EAGER', 'False') == 'True'

RIDE_NEW_REQUEST_INTERVAL = env_float('RIDE_NEW_REQUEST_INTERVAL', 5)
RIDE_PROXIMITY_INTERVAL = env_float('RIDE_PROXIMITY_INTERVAL', 5)
NOTIFICATION_DISPATCH_INTERVAL = env_float('NOTIFICATION_DISPATCH_INTERVAL', 3)
NOTIFICATION_DISPATCH_BATCH = env_int('NOTIFICATION_DISPATCH_BATCH', 5)
SCHEDULER_LOCK_TIMEOUT = env_int('SCHEDULER_LOCK_TIMEOUT', 60)

CELERY_BEAT_SCHEDULE = {
    'create-new-request-notifications': {
        'task': 'rides.tasks.create_new_request_notifications_task',
        'schedule': RIDE_NEW_REQUEST_INTERVAL,
    },
    'check-driver-proximity': {
        'task': 'rides.tasks.check_driver_proximity_task',
        'schedule': RIDE_PROXIMITY_INTERVAL,
    },
    'dispatch-notifications': {
        'task': 'rides.tasks.dispatch_notifications_task',
        'schedule': NOTIFICATION_DISPATCH_INTERVAL,
    },
}


# Routing

ROUTING_PROVIDER = os.getenv('ROUTING_PROVIDER', 'pgrouting')
ROUTING_DATABASE_ALIAS = os.getenv('ROUTING_DATABASE_ALIAS', 'default')
OSRM_BASE_URL = os.getenv('OSRM_BASE_URL', 'http://localhost:5000')
ROUTING_TIMEOUT_SECONDS = env_float('ROUTING_TIMEOUT_SECONDS', 10)
ROUTING_MAX_RETRIES = env_int('ROUTING_MAX_RETRIES', 3)
ROUTING_RETRY_BACKOFF_SECONDS = env_float('ROUTING_RETRY_BACKOFF_SECONDS', 0.25)
ROUTING_SNAP_TOLERANCE_METERS = env_float('ROUTING_SNAP_TOLERANCE_METERS', 50)
ROUTE_MAX_OPTIMIZED_WAYPOINTS = env_int('ROUTE_MAX_OPTIMIZED_WAYPOINTS', 8)


# Rides

RIDE_PROXIMITY_NOTIFY_METERS = env_float('RIDE_PROXIMITY_NOTIFY_METERS', 100)
RIDE_PICKUP_ARRIVAL_METERS = env_float('RIDE_PICKUP_ARRIVAL_METERS', 1000)
COMPENSATION_BASE_FARE = env_float('COMPENSATION_BASE_FARE', 2.00)
COMPENSATION_PRICE_PER_KM = env_float('COMPENSATION_PRICE_PER_KM', 0.25)


# Logging

LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'verbose': {
            'format': '{levelname} {asctime} {name} {message}',
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
        'level': LOG_LEVEL,
    },
    'loggers': {
        'django': {
            'handlers': ['console'],
            'level': os.getenv('DJANGO_LOG_LEVEL', 'WARNING'),
            'propagate': False,
        },
    },
}
