import os
import sys
from pathlib import Path
from dotenv import load_dotenv
import dj_database_url

from .logging_config import get_logging_config

BASE_DIR = Path(__file__).resolve().parent.parent
load_dotenv(BASE_DIR / ".env")

SECRET_KEY = os.environ.get("SECRET_KEY", os.environ.get("DJANGO_SECRET_KEY", "changeme"))
DEBUG = os.getenv("DEBUG", os.getenv("DJANGO_DEBUG", "True")) == "True"
ALLOWED_HOSTS = os.getenv("ALLOWED_HOSTS", "127.0.0.1,localhost").split(",")

# Detect test runs (pytest or "manage.py test")
TESTING = (
    "PYTEST_CURRENT_TEST" in os.environ
    or "pytest" in sys.modules
    or (len(sys.argv) > 1 and sys.argv[1] == "test")
)

INSTALLED_APPS = [
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
    "ledger_core.apps.LedgerCoreConfig",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
]

ROOT_URLCONF = "erp_project.urls"

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.request",
                "django.contrib.auth.context_processors.auth",
                "django.contrib.messages.context_processors.messages",
            ],
        },
    },
]

WSGI_APPLICATION = "erp_project.wsgi.application"

# sqlite for local work and tests, postgres in production via DATABASE_URL
DATABASES = {
    "default": dj_database_url.config(
        env="DATABASE_URL",
        default=f"sqlite:///{BASE_DIR / 'db.sqlite3'}",
        conn_max_age=600,
    )
}

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

LANGUAGE_CODE = "en-us"
TIME_ZONE = os.getenv("TIME_ZONE", "Asia/Kolkata")
USE_I18N = True
USE_TZ = True

STATIC_URL = "static/"

# ---------- Ledger ----------
# Chart-of-accounts codes the engine posts to. Override per deployment.
LEDGER = {
    "DEFAULT_PAYMENT_METHOD": "cash",
    "ACCOUNT_CODES": {
        "cash": "1010",
        "bank": "1020",
        "accounts_receivable": "1200",
        "inventory": "1400",
        "accounts_payable": "2000",
        "store_credit": "2150",
        "loans_payable": "2500",
        "owner_equity": "3000",
        "partner_equity_prefix": "3015",
        "sales_revenue": "4000",
        "purchases": "5000",
        "refund_expense": "6500",
    },
    "CASH_FLOW_TREND_RANGES": [7, 30, 90, 365],
    "AUTO_BALANCE_DOCUMENT_TYPES": [
        "PURCHASE_ORDER",
        "VENDOR_BILL",
        "PARTNER_INVESTMENT",
        "CUSTOMER_PAYMENT",
        "SUPPLIER_PAYMENT",
        "REFUND",
        "WITHDRAWAL",
        "LOAN_DISBURSEMENT",
        "LOAN_REPAYMENT",
    ],
}

# ---------- Celery ----------
REDIS_URL = os.getenv("REDIS_URL", "redis://127.0.0.1:6379/0")

CELERY_BROKER_URL = REDIS_URL
CELERY_RESULT_BACKEND = os.getenv("CELERY_RESULT_BACKEND", REDIS_URL)
CELERY_ACCEPT_CONTENT = ["json"]
CELERY_TASK_SERIALIZER = "json"
CELERY_RESULT_SERIALIZER = "json"
CELERY_TIMEZONE = TIME_ZONE
CELERY_TASK_TRACK_STARTED = True
CELERY_TASK_TIME_LIMIT = 30 * 60  # 30 minutes
# run tasks inline in tests, no broker needed
CELERY_TASK_ALWAYS_EAGER = TESTING
CELERY_TASK_EAGER_PROPAGATES = TESTING

# ---------- Logging ----------
LOGGING = get_logging_config(DEBUG)
