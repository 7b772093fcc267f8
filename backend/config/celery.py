"""
Celery configuration for the Worktrack project.
"""

import os

from celery import Celery

# Set the default Django settings module
os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings')

app = Celery('worktrack')

# Using a string here means the worker doesn't have to serialize
# the configuration object to child processes.
app.config_from_object('django.conf:settings', namespace='CELERY')

# Task modules live outside Django apps, so name the package explicitly.
app.autodiscover_tasks(['application'])

# Configure task routes
app.conf.task_routes = {
    'application.tasks.project_tasks.*': {'queue': 'recalculation'},
}
