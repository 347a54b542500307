# threadart_project/settings.py

import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent

SECRET_KEY = os.environ.get('DJANGO_SECRET_KEY', 'dev-only-insecure-key')
DEBUG = os.environ.get('DJANGO_DEBUG', '1') == '1'
ALLOWED_HOSTS = os.environ.get('DJANGO_ALLOWED_HOSTS', 'localhost,127.0.0.1,testserver').split(',')

INSTALLED_APPS = [
    'django.contrib.staticfiles',
    'threadart_app',
]

MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
]

ROOT_URLCONF = 'threadart_project.urls'
WSGI_APPLICATION = 'threadart_project.wsgi.application'

# No models are persisted; jobs live in memory for the life of the process.
DATABASES = {}

# Uploads are decoded in memory; 20 MB is plenty for a photo.
DATA_UPLOAD_MAX_MEMORY_SIZE = 20 * 1024 * 1024
FILE_UPLOAD_MAX_MEMORY_SIZE = 20 * 1024 * 1024

STATIC_URL = 'static/'
USE_TZ = True

# === threadart ===
# Steps between progress messages (and cancellation-friendly yields).
THREADART_PROGRESS_INTERVAL = int(os.environ.get('THREADART_PROGRESS_INTERVAL', 100))
# How often SSE streams poll the job registries.
THREADART_SSE_POLL_SECONDS = 0.2
# Largest canvas or preview edge accepted from web requests.
THREADART_MAX_RESOLUTION = int(os.environ.get('THREADART_MAX_RESOLUTION', 1000))
# Finished jobs kept for download before the oldest are evicted.
THREADART_MAX_FINISHED_JOBS = int(os.environ.get('THREADART_MAX_FINISHED_JOBS', 20))

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'simple': {'format': '%(asctime)s %(levelname)s %(name)s: %(message)s'},
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'simple',
            'level': os.environ.get('THREADART_LOG_LEVEL', 'INFO'),
        },
    },
    'loggers': {
        'threadart_app': {
            'handlers': ['console'],
            'level': os.environ.get('THREADART_LOG_LEVEL', 'INFO'),
        },
    },
}
