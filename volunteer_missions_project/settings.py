# volunteer_missions_project/settings.py

from pathlib import Path
import environ
import os

# Build paths inside the project like this: BASE_DIR / 'subdir'.
BASE_DIR = Path(__file__).resolve().parent.parent

# Define ALL environment variables with their types and defaults here.
env = environ.Env(
    # set casting, default value
    DEBUG=(bool, True),
    SECRET_KEY=(str, 'django-insecure-a-default-secret-key-for-dev'),
    ALLOWED_HOSTS=(list, ['localhost', '127.0.0.1']),
    TIME_ZONE=(str, 'UTC'),
    LOG_LEVEL=(str, 'INFO'),

    # DB
    DATABASE_URL=(str, f"sqlite:///{BASE_DIR / 'db.sqlite3'}"),

    # Attendance engine
    QR_TOKEN_SECRET=(str, ''),
    GEOFENCE_RADIUS_METERS=(int, 100),
    CHECK_IN_EARLY_MINUTES=(int, 30),

    # Realtime (channels)
    CHANNEL_LAYER_BACKEND=(str, 'channels.layers.InMemoryChannelLayer'),
    REDIS_URL=(str, ''),

    # VAPID
    VAPID_PUBLIC_KEY=(str, ''),
    VAPID_PRIVATE_KEY=(str, ''),
    VAPID_ADMIN_EMAIL=(str, ''),
)
environ.Env.read_env(os.path.join(BASE_DIR, '.env'))


# SECURITY WARNING: keep the secret key used in production secret!
SECRET_KEY = env('SECRET_KEY')

# SECURITY WARNING: don't run with debug turned on in production!
DEBUG = env('DEBUG')

ALLOWED_HOSTS = env.list('ALLOWED_HOSTS')

# Application definition
INSTALLED_APPS = [
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',
    # Third-party apps
    'channels',
    # Local apps
    'missions',
]

MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
]

ROOT_URLCONF = 'volunteer_missions_project.urls'

TEMPLATES = [
    {
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
        'DIRS': [],
        'APP_DIRS': True,
        'OPTIONS': {
            'context_processors': [
                'django.template.context_processors.debug',
                'django.template.context_processors.request',
                'django.contrib.auth.context_processors.auth',
                'django.contrib.messages.context_processors.messages',
            ],
        },
    },
]

WSGI_APPLICATION = 'volunteer_missions_project.wsgi.application'
ASGI_APPLICATION = 'volunteer_missions_project.asgi.application'

# Database
# SQLite by default; point DATABASE_URL at Postgres/MySQL in production so that
# select_for_update() takes real row locks.
DATABASES = {
    'default': env.db('DATABASE_URL'),
}

if DATABASES['default']['ENGINE'] == 'django.db.backends.sqlite3':
    # No row locks on SQLite: writers take the database lock at BEGIN
    DATABASES['default'].setdefault('OPTIONS', {}).update({
        'transaction_mode': 'IMMEDIATE',
        'timeout': 20,
    })
    # File-backed test database so threads share it
    DATABASES['default']['TEST'] = {'NAME': str(BASE_DIR / 'test_db.sqlite3')}

# Internationalization
LANGUAGE_CODE = 'en-us'
TIME_ZONE = env('TIME_ZONE')
USE_I18N = True
USE_TZ = True

STATIC_URL = '/static/'
STATIC_ROOT = os.path.join(BASE_DIR, 'staticfiles')

# Default primary key field type
DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

# Tell Django to use the custom User model from the 'missions' app
AUTH_USER_MODEL = 'missions.User'

# Channels: domain events are pushed to groups on this layer
if env('REDIS_URL'):
    CHANNEL_LAYERS = {
        'default': {
            'BACKEND': 'channels_redis.core.RedisChannelLayer',
            'CONFIG': {'hosts': [env('REDIS_URL')]},
        }
    }
else:
    CHANNEL_LAYERS = {
        'default': {'BACKEND': env('CHANNEL_LAYER_BACKEND')}
    }

# WebPush Configuration
WEBPUSH_SETTINGS = {
    "VAPID_PUBLIC_KEY": env('VAPID_PUBLIC_KEY'),
    "VAPID_PRIVATE_KEY": env('VAPID_PRIVATE_KEY'),
    "VAPID_ADMIN_EMAIL": env('VAPID_ADMIN_EMAIL')
}

# Attendance & capacity engine
MISSIONS = {
    'QR_TOKEN_SECRET': env('QR_TOKEN_SECRET') or SECRET_KEY,
    'QR_TOKEN_MAX_AGE_SECONDS': 300,
    'GEOFENCE_RADIUS_METERS': env('GEOFENCE_RADIUS_METERS'),
    'CHECK_IN_EARLY_MINUTES': env('CHECK_IN_EARLY_MINUTES'),
    'COORDINATOR_FEED_GROUP': 'coordinator_feed',
}

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'verbose': {
            'format': '[{asctime}] {levelname} {name}: {message}',
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
        'missions': {
            'handlers': ['console'],
            'level': env('LOG_LEVEL'),
            'propagate': False,
        },
    },
}
