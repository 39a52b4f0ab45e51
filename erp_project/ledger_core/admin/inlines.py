from django.contrib import admin

from ledger_core.models import JournalLine


# ---------- Helpful inline admin classes ----------
class JournalLineInline(admin.TabularInline):
    """Show JournalLine rows on JournalEntry page"""

    model = JournalLine
    extra = 0  # don’t show “empty” rows by default (prevents clutter)
    fields = (
        "line_number",
        "account",
        "description",
        "debit_amount",
        "credit_amount",
        "reference",
    )
    show_change_link = True
    ordering = ("line_number", "id")

    def get_queryset(self, request):
        return super().get_queryset(request).select_related("account")

    def get_readonly_fields(self, request, obj=None):
        # Once journal is `posted`, all its lines become completely locked
        if obj and obj.status == "posted":
            return self.fields
        return ()

    def has_add_permission(self, request, obj=None):
        if obj and getattr(obj, "status", None) == "posted":
            return False
        return super().has_add_permission(request, obj)

    def has_delete_permission(self, request, obj=None):
        if obj and getattr(obj, "status", None) == "posted":
            return False
        return super().has_delete_permission(request, obj)
