"""
Celery application for background jobs (daily protocol reminder sweep).
"""
import os

from celery import Celery

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings')

app = Celery('aivf')
app.config_from_object('django.conf:settings', namespace='CELERY')
app.autodiscover_tasks()
