from django.contrib import admin
from django.core.exceptions import PermissionDenied


class ReadOnlyAdmin(admin.ModelAdmin):
    """History tables (audit log, gaps, posted lines) are browse-only."""

    list_per_page = 50
    ordering = ("-id",)
    filter_candidates = ("action", "object_type", "source_document_type",
                         "status", "account")
    search_candidates = ("object_id", "source_reference", "reason",
                         "description", "reference")

    def _field_names(self):
        return {f.name for f in self.model._meta.fields}

    def get_readonly_fields(self, request, obj=None):
        return [f.name for f in self.model._meta.fields]

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False

    # change view stays reachable so rows can be inspected
    def has_change_permission(self, request, obj=None):
        return True

    def save_model(self, request, obj, form, change):
        raise PermissionDenied(
            f"{self.model._meta.verbose_name} rows are ledger history.")

    def get_actions(self, request):
        return {}

    def get_list_filter(self, request):
        if self.list_filter:
            return self.list_filter
        names = self._field_names()
        return tuple(c for c in self.filter_candidates if c in names)

    def get_search_fields(self, request):
        if self.search_fields:
            return self.search_fields
        names = self._field_names()
        return tuple(c for c in self.search_candidates if c in names)
