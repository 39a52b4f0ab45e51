""" When you run Celery workers, "celery -A erp_project worker -l info"
    The -A erp_project means:
    Import erp_project/__init__.py →
    which exposes celery_app →  now Celery knows what to run.

    Scheduled ledger audits run with "celery -A erp_project beat". """
from __future__ import annotations
import os
from celery import Celery
from celery.schedules import crontab

# ensure Django settings are set for Celery
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "erp_project.settings")

# name should match your project package
celery_app = Celery("erp_project")

# read config from Django settings, using CELERY_ prefix
celery_app.config_from_object("django.conf:settings", namespace="CELERY")

# autoload tasks from installed apps (ledger_core.tasks)
celery_app.autodiscover_tasks()

# nightly ledger audits
celery_app.conf.beat_schedule = {
    "verify-account-balances": {
        "task": "ledger_core.tasks.verify_account_balances",
        "schedule": crontab(hour=1, minute=0),
    },
    "auto-balance-missing-journals": {
        "task": "ledger_core.tasks.run_auto_balance",
        "schedule": crontab(hour=1, minute=30),
    },
}
