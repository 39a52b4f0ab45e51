from django.contrib import admin
from django.utils.html import format_html

from ledger_core.models import JournalEntry, JournalLine

from .actions import post_journal_entries, reverse_journal_entries
from .inlines import JournalLineInline
from .ReadOnly import ReadOnlyAdmin


# Register `JournalEntry` model
@admin.register(JournalEntry)
class JournalEntryAdmin(admin.ModelAdmin):
    list_display = (
        "journal_number",
        "entry_date",
        "entry_type",
        "source_document_type",
        "source_reference",
        "status",
        "total_debit",
        "balanced",
        "posted_at",
    )
    list_filter = ("status", "entry_type", "source_document_type",
                   "entry_date")
    search_fields = ("journal_number", "description", "source_reference")
    readonly_fields = (
        "journal_number",
        "status",
        "total_debit",
        "total_credit",
        "posted_at",
        "created_by",
        "posting_fingerprint",
        "reverses",
    )
    inlines = [JournalLineInline]
    actions = [post_journal_entries, reverse_journal_entries]

    @admin.display(description="Balanced")
    def balanced(self, obj):
        ok = obj.is_balanced()
        return format_html(
            '<span style="color:{}">{}</span>',
            "green" if ok else "red", "yes" if ok else "no")

    def save_model(self, request, obj, form, change):
        if not change and not obj.journal_number:
            from ledger_core.models.journal import generate_journal_number
            obj.journal_number = generate_journal_number(obj.entry_date, "MAN")
            obj.entry_type = "MANUAL"
        if not obj.created_by_id:
            obj.created_by = request.user
        super().save_model(request, obj, form, change)

    """ Make entries immutable once posted """
    def get_readonly_fields(self, request, obj=None):
        r = list(self.readonly_fields)
        if obj and obj.status == "posted":
            r += ["entry_date", "description", "entry_type",
                  "source_document_type", "source_reference"]
        return r

    """ Prevent deletion after posting """
    def has_delete_permission(self, request, obj=None):
        if obj and obj.status == "posted":
            return False
        return super().has_delete_permission(request, obj)


# Register `JournalLine` model
@admin.register(JournalLine)
class JournalLineAdmin(ReadOnlyAdmin):
    list_display = ("entry", "line_number", "account", "debit_amount",
                    "credit_amount", "description")
    list_filter = ("account",)
    search_fields = ("description", "entry__journal_number")
