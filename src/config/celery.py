"""
Celery configuration for the storefront order backend.

``DJANGO_SETTINGS_MODULE`` is set before the app is instantiated so that
Celery reads the Django settings (``CELERY_`` prefix).
"""

import os

from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

app = Celery("storefront")

app.config_from_object("django.conf:settings", namespace="CELERY")

# Picks up tasks.py in notifications, analytics and core
app.autodiscover_tasks()
