from django.conf import settings  # To access global project settings
from django.db import models


# ---------- Audit / Event log ----------
class AuditLog(models.Model):
    """Who did what to which ledger object (post, reverse, auto-balance)."""

    # Nullable in case the action was automated (celery beat, command)
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True, blank=True, on_delete=models.SET_NULL
    )
    action = models.CharField(max_length=50)  # post, reverse, auto_balance
    object_type = models.CharField(max_length=100)  # "JournalEntry"
    object_id = models.CharField(max_length=100)
    changes = models.JSONField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=["object_type", "object_id"],
                         name="auditlog_object_idx"),
            models.Index(fields=["created_at"], name="auditlog_created_idx"),
        ]

    def __str__(self):
        time = self.created_at
        return (f"[{time:%Y-%m-%d %H:%M}] {self.user} {self.action} "
                f"{self.object_type}({self.object_id})")

    def save(self, *args, **kwargs):
        self.full_clean()  # run validations before saving
        return super().save(*args, **kwargs)
