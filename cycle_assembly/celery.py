# cycle_assembly/celery.py
import os

from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "cycle_assembly.settings")

app = Celery("cycle_assembly")
app.config_from_object("django.conf:settings", namespace="CELERY")
app.autodiscover_tasks()
