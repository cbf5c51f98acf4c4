"""
Celery application for the settlement backend.

Workers run the settlement sweeps (auto-release, due payouts, payment
reconciliation) and the failed-webhook retry loop. Schedules live in the
database (django-celery-beat) and are seeded by settlement migrations.

Usage:
    # Run a worker and the beat scheduler
    celery -A config worker -l info
    celery -A config beat -l info

    # Trigger a sweep by hand
    from settlement.workers import release_due_escrows
    release_due_escrows.delay()
"""

import os

from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

app = Celery("config")

# All Celery settings are prefixed with CELERY_ in settings.py
app.config_from_object("django.conf:settings", namespace="CELERY")

# Finds settlement.tasks (which re-exports the worker tasks)
app.autodiscover_tasks()
