"""
Add celery-beat schedules for the settlement background jobs.

Creates the periodic tasks that drive escrow auto-release, scheduled
payouts, payment reconciliation and webhook maintenance:

- Auto-release escrow: hourly
- Process due payouts: daily at 09:00
- Reconcile payments: daily at 02:00
- Retry failed webhooks: every 5 minutes
- Clean up old webhooks: daily at 03:30
"""

from django.db import migrations

INTERVAL_TASKS = [
    {
        "name": "Auto-release Escrow",
        "task": "settlement.workers.auto_release.release_due_escrows",
        "every": 1,
        "period": "hours",
        "description": (
            "Releases escrow to sellers for sent orders whose auto-release "
            "window elapsed without a dispute."
        ),
    },
    {
        "name": "Retry Failed Settlement Webhooks",
        "task": "settlement.tasks.retry_failed_webhooks",
        "every": 5,
        "period": "minutes",
        "description": "Re-queues failed Paystack webhook events below the retry cap.",
    },
]

CRONTAB_TASKS = [
    {
        "name": "Process Due Payouts",
        "task": "settlement.workers.payout_executor.process_due_payouts",
        "minute": "0",
        "hour": "9",
        "description": (
            "Sends pending payouts whose expected processing date has "
            "arrived to Paystack."
        ),
    },
    {
        "name": "Reconcile Payments",
        "task": "settlement.tasks.reconcile_payments",
        "minute": "0",
        "hour": "2",
        "description": (
            "Verifies recent unconfirmed charges against Paystack and "
            "records any discrepancies."
        ),
    },
    {
        "name": "Cleanup Old Settlement Webhooks",
        "task": "settlement.tasks.cleanup_old_webhooks",
        "minute": "30",
        "hour": "3",
        "description": "Deletes processed webhook events older than 90 days.",
    },
]


def create_periodic_tasks(apps, schema_editor):
    """Create the settlement periodic tasks."""
    IntervalSchedule = apps.get_model("django_celery_beat", "IntervalSchedule")
    CrontabSchedule = apps.get_model("django_celery_beat", "CrontabSchedule")
    PeriodicTask = apps.get_model("django_celery_beat", "PeriodicTask")

    for spec in INTERVAL_TASKS:
        schedule, _ = IntervalSchedule.objects.get_or_create(
            every=spec["every"],
            period=spec["period"],
        )
        PeriodicTask.objects.get_or_create(
            name=spec["name"],
            defaults={
                "task": spec["task"],
                "interval": schedule,
                "enabled": True,
                "description": spec["description"],
            },
        )

    for spec in CRONTAB_TASKS:
        schedule, _ = CrontabSchedule.objects.get_or_create(
            minute=spec["minute"],
            hour=spec["hour"],
            day_of_week="*",
            day_of_month="*",
            month_of_year="*",
        )
        PeriodicTask.objects.get_or_create(
            name=spec["name"],
            defaults={
                "task": spec["task"],
                "crontab": schedule,
                "enabled": True,
                "description": spec["description"],
            },
        )


def remove_periodic_tasks(apps, schema_editor):
    """Remove the periodic tasks on migration rollback."""
    PeriodicTask = apps.get_model("django_celery_beat", "PeriodicTask")

    names = [spec["name"] for spec in INTERVAL_TASKS + CRONTAB_TASKS]
    PeriodicTask.objects.filter(name__in=names).delete()


class Migration(migrations.Migration):
    dependencies = [
        ("settlement", "0001_initial"),
        ("django_celery_beat", "0019_alter_periodictasks_options"),
    ]

    operations = [
        migrations.RunPython(create_periodic_tasks, remove_periodic_tasks),
    ]
