"""
Celery configuration for the subscription delivery service.

DJANGO_SETTINGS_MODULE is set before the app is instantiated so Celery
reads its settings from Django (``CELERY_`` prefix).  The notification
worker lives in ``modules.subscriptions.tasks``.
"""

import os

from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

app = Celery("subscriptions")

app.config_from_object("django.conf:settings", namespace="CELERY")

# Discovers tasks.py in every installed app
app.autodiscover_tasks()
