import os

from celery import Celery

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings')

app = Celery('artmarket')

# CELERY_ 로 시작하는 Django 설정을 그대로 사용
app.config_from_object('django.conf:settings', namespace='CELERY')
app.autodiscover_tasks()
