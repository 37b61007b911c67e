import os
from datetime import timedelta
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent


def env_bool(name, default=False):
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


SECRET_KEY = os.environ.get('DJANGO_SECRET_KEY', 'artmarket-insecure-dev-key')
DEBUG = env_bool('DJANGO_DEBUG', False)
ALLOWED_HOSTS = os.environ.get('DJANGO_ALLOWED_HOSTS', 'localhost,127.0.0.1').split(',')

INSTALLED_APPS = [
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'rest_framework',
    'artmarket',
]

MIDDLEWARE = [
    'django.middleware.common.CommonMiddleware',
]

USE_TZ = True
TIME_ZONE = 'Asia/Seoul'
LANGUAGE_CODE = 'ko-kr'
DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

# POSTGRES_DB 가 없으면 로컬 SQLite 사용
if os.environ.get('POSTGRES_DB'):
    DATABASES = {
        'default': {
            'ENGINE': 'django.db.backends.postgresql',
            'NAME': os.environ['POSTGRES_DB'],
            'USER': os.environ.get('POSTGRES_USER', 'postgres'),
            'PASSWORD': os.environ.get('POSTGRES_PASSWORD', ''),
            'HOST': os.environ.get('POSTGRES_HOST', 'localhost'),
            'PORT': os.environ.get('POSTGRES_PORT', '5432'),
        }
    }
else:
    DATABASES = {
        'default': {
            'ENGINE': 'django.db.backends.sqlite3',
            'NAME': BASE_DIR / 'db.sqlite3',
        }
    }

REST_FRAMEWORK = {
    'EXCEPTION_HANDLER': 'artmarket.exceptions.artmarket_exception_handler',
}

# Redis (입찰 락)
REDIS_URL = os.environ.get('REDIS_URL', 'redis://localhost:6379/0')

# Celery (이벤트 디스패치, 경매 상태 갱신)
CELERY_BROKER_URL = os.environ.get('CELERY_BROKER_URL', REDIS_URL)
CELERY_TASK_ALWAYS_EAGER = env_bool('CELERY_TASK_ALWAYS_EAGER', False)
CELERY_TASK_SERIALIZER = 'json'
CELERY_ACCEPT_CONTENT = ['json']
CELERY_BEAT_SCHEDULE = {
    'refresh-auction-statuses': {
        'task': 'artmarket.tasks.refresh_auction_statuses',
        'schedule': timedelta(minutes=1),
    },
}

# 이미지 저장소 (S3)
ARTMARKET_S3_BUCKET = os.environ.get('ARTMARKET_S3_BUCKET', 'artmarket-images')
ARTMARKET_STORAGE_URL = os.environ.get(
    'ARTMARKET_STORAGE_URL',
    f'https://{ARTMARKET_S3_BUCKET}.s3.amazonaws.com/',
)

# 입찰 동시성 제어
ARTMARKET_BID_LOCK_TIMEOUT = float(os.environ.get('ARTMARKET_BID_LOCK_TIMEOUT', '5'))  # 락 TTL (초)
ARTMARKET_BID_LOCK_WAIT = float(os.environ.get('ARTMARKET_BID_LOCK_WAIT', '3'))  # 락 대기 한도 (초)
ARTMARKET_BID_MAX_RETRIES = int(os.environ.get('ARTMARKET_BID_MAX_RETRIES', '3'))
ARTMARKET_CHECK_WINDOW_ON_EVERY_BID = env_bool('ARTMARKET_CHECK_WINDOW_ON_EVERY_BID', True)

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'default': {
            'format': '%(asctime)s %(levelname)s %(name)s %(message)s',
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'default',
        },
    },
    'loggers': {
        'artmarket': {
            'handlers': ['console'],
            'level': os.environ.get('ARTMARKET_LOG_LEVEL', 'INFO'),
        },
    },
}
