import os

from celery import Celery

# Set the default Django settings module for the 'celery' program.
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "configuration.settings")

# Celery runs the scheduled maintenance jobs. Its broker connection settings
# are also what the pipeline queues use (see forum.pipeline.broker).
app = Celery("forum")

# Load configuration from Django settings (every CELERY_* key)
app.config_from_object("django.conf:settings", namespace="CELERY")

# Auto-discover tasks from all Django apps
app.autodiscover_tasks()

# DON'T duplicate beat_schedule or task_routes here - they're already in settings
