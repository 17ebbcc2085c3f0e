"""
Celery configuration for the store admin API.
"""
import os
from celery import Celery
from celery.schedules import crontab

# Set the default Django settings module
os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'main.settings')

app = Celery('store_admin')

# Load config from Django settings, using CELERY_ namespace
app.config_from_object('django.conf:settings', namespace='CELERY')

# Auto-discover tasks in all registered Django apps
app.autodiscover_tasks()

# Celery Beat schedule for periodic tasks
app.conf.beat_schedule = {
    'clear-expired-tokens-daily': {
        'task': 'users.tasks.clear_expired_tokens',
        'schedule': crontab(hour=3, minute=0),  # Run daily at 3 AM
    },
}
