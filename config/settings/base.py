"""
Base settings for Urban Climate API project.
"""
import os
from pathlib import Path

from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parent.parent.parent

load_dotenv(BASE_DIR / '.env')

SECRET_KEY = os.environ.get('DJANGO_SECRET_KEY', 'insecure-dev-key-change-me')

DEBUG = os.environ.get('DJANGO_DEBUG', 'False').lower() == 'true'

ALLOWED_HOSTS = [h for h in os.environ.get('DJANGO_ALLOWED_HOSTS', 'localhost,127.0.0.1').split(',') if h]

INSTALLED_APPS = [
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',

    # Third party
    'rest_framework',

    # Local apps
    'apps.core',
    'apps.location',
    'apps.adapters',
    'apps.readings',
    'apps.aggregation',
    'apps.forecast',
    'apps.collection',
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

ROOT_URLCONF = 'config.urls'

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

DATABASES = {
    'default': {
        'ENGINE': os.environ.get('DB_ENGINE', 'django.db.backends.sqlite3'),
        'NAME': os.environ.get('DB_NAME', str(BASE_DIR / 'db.sqlite3')),
        'USER': os.environ.get('DB_USER', ''),
        'PASSWORD': os.environ.get('DB_PASSWORD', ''),
        'HOST': os.environ.get('DB_HOST', ''),
        'PORT': os.environ.get('DB_PORT', ''),
    }
}

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

LANGUAGE_CODE = 'en-us'
TIME_ZONE = 'Asia/Kolkata'
USE_I18N = True
USE_TZ = True

STATIC_URL = 'static/'

REST_FRAMEWORK = {
    'DEFAULT_RENDERER_CLASSES': [
        'rest_framework.renderers.JSONRenderer',
    ],
    'DATETIME_FORMAT': 'iso-8601',
}

# External API keys
API_KEYS = {
    'weatherunion': os.environ.get('WEATHERUNION_API_KEY', ''),
}

# Urban Climate specific settings
URBAN_CLIMATE_SETTINGS = {
    # HTTP
    'REQUEST_TIMEOUT': int(os.environ.get('REQUEST_TIMEOUT', 10)),
    'MAX_RETRIES': int(os.environ.get('MAX_RETRIES', 0)),
    'RETRY_BACKOFF_FACTOR': 1,
    'ADAPTER_FAILURE_LIMIT': 10,

    # Collection
    'COLLECTION_TIMEOUT': int(os.environ.get('COLLECTION_TIMEOUT', 10)),
    'COLLECTION_MAX_WORKERS': 8,

    # Aggregation
    'EXPECTED_READINGS_PER_DAY': 24,

    # Consensus: earlier entries win; unlisted sources rank after all of these
    'SOURCE_PRIORITY': [
        'IMD',
        'OpenMeteo',
        'WeatherUnion',
        'OpenMeteo-AQI',
        'OpenAQ',
        'KSNDMC (Karnataka)',
        'IMD (via OpenMeteo)',
        'UrbanEmission',
        'OpenCity',
    ],
    'FORECAST_SOURCE_PRIORITY': {
        'OpenMeteo': 1,
        'IMD': 2,
        'WeatherUnion': 3,
        'OpenMeteo-AQI': 4,
        'OpenAQ': 5,
        'KSNDMC (Karnataka)': 6,
        'IMD (via OpenMeteo)': 7,
        'UrbanEmission': 8,
        'OpenCity': 9,
    },

    # Cache TTLs (seconds)
    'CACHE_TTL': {
        'DEFAULT': 3600,
        'TRENDS': 3600,
        'CORRELATION': 3600,
        'HEATMAP': 1800,
        'COMPARISON': 1800,
        'ANOMALIES': 3600,
        'SERIES': 900,
    },
    'CACHE_SWEEP_INTERVAL': 300,

    # Analytics / forecasting
    'FORECAST_DAYS': 7,
    'ANOMALY_THRESHOLD': 3.0,
}

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
        'level': 'INFO',
    },
    'loggers': {
        'django': {
            'handlers': ['console'],
            'level': 'INFO',
            'propagate': False,
        },
        'apps': {
            'handlers': ['console'],
            'level': 'INFO',
            'propagate': False,
        },
    },
}
