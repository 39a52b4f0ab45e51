from django.apps import AppConfig


class LedgerCoreConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "ledger_core"
    verbose_name = "Ledger"

    # ensure receivers are registered
    def ready(self):
        from . import signals  # noqa: F401
