from django.contrib import admin
from ledger_core.models import Account


# Register `Account` model
@admin.register(Account)
class AccountAdmin(admin.ModelAdmin):
    list_display = (
        "code",
        "name",
        "ac_type",
        "normal_balance",
        "parent",
        "current_balance",
        "is_control_account",
        "is_active",
    )
    list_filter = ("ac_type", "is_active", "is_control_account")
    search_fields = ("code", "name")
    ordering = ("code",)
    # balances only ever move through posted journals
    readonly_fields = ("current_balance", "created_at")
    fields = (
        "code",
        "name",
        "ac_type",
        "normal_balance",
        "parent",
        "opening_balance",
        "current_balance",
        "is_control_account",
        "is_active",
        "created_at",
    )

    def get_readonly_fields(self, request, obj=None):
        r = list(self.readonly_fields)
        # code and opening balance are fixed once lines exist
        if obj and obj.journal_lines.exists():
            r += ["code", "ac_type", "normal_balance", "opening_balance"]
        return r

    # accounts are deactivated, never deleted
    def has_delete_permission(self, request, obj=None):
        return False
