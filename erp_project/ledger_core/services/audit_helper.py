from django.forms.models import model_to_dict
from ..models import AuditLog


def log_action(*, action: str, instance, user=None,
               changes: dict | None = None):
    """
    Central audit logger.
    Safe to call multiple times (caller ensures idempotency).
    """
    AuditLog.objects.create(
        user=user,
        action=action,
        object_type=instance.__class__.__name__,
        object_id=str(instance.pk),
        changes=changes,
    )


def snapshot(instance, fields=None):
    """JSON-safe dict of a model instance for AuditLog.changes."""
    data = model_to_dict(instance, fields=fields)
    return {k: (v if isinstance(v, (int, bool, type(None))) else str(v))
            for k, v in data.items()}
