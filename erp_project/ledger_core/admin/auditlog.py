from django.contrib import admin
from ledger_core.models import AuditLog, ReconciliationGap
from .ReadOnly import ReadOnlyAdmin


@admin.register(AuditLog)
class AuditLogAdmin(ReadOnlyAdmin):
    list_display = ("created_at", "user", "action", "object_type",
                    "object_id")
    search_fields = ("object_type", "object_id")


@admin.register(ReconciliationGap)
class ReconciliationGapAdmin(ReadOnlyAdmin):
    list_display = ("source_document_type", "source_reference", "amount",
                    "reason", "created_at", "resolved_at", "resolved_entry")
    search_fields = ("source_reference", "reason")
