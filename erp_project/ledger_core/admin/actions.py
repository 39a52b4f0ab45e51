from django.contrib import admin, messages
from django.core.exceptions import ObjectDoesNotExist, ValidationError
from django.utils.translation import gettext_lazy as _

from ledger_core.exceptions import AlreadyPostedDifferentPayload
from ledger_core.services.posting import (post_draft_journal,
                                          reverse_journal_entry)

# ---------- Admin actions ----------


@admin.action(description="Post selected draft journals")
def post_journal_entries(modeladmin, request, queryset):
    """
    Post each selected draft in its own transaction; report per-entry
    failures via admin messages.
    """
    candidates = queryset.filter(status="draft")
    total = candidates.count()
    success = 0
    failures = 0
    for je in candidates:
        try:
            post_draft_journal(je.pk, user=request.user)
            success += 1
        except (ValidationError, AlreadyPostedDifferentPayload) as exc:
            failures += 1
            modeladmin.message_user(
                request,
                _("Could not post %(num)s: %(err)s")
                % {"num": je.journal_number, "err": exc},
                level=messages.ERROR,
            )

    modeladmin.message_user(
        request,
        _("Posted %(success)d of %(total)d journal entries. "
          "%(failures)d failed.")
        % {"success": success, "total": total, "failures": failures},
        level=messages.SUCCESS if failures == 0 else messages.WARNING,
    )


@admin.action(description="Reverse selected posted journals")
def reverse_journal_entries(modeladmin, request, queryset):
    for je in queryset.filter(status="posted"):
        try:
            reversal = reverse_journal_entry(
                je.pk, user=request.user, reason="Reversed from admin")
        except (ValidationError, ObjectDoesNotExist) as exc:
            modeladmin.message_user(
                request, f"{je.journal_number}: {exc}", level=messages.ERROR)
            continue
        modeladmin.message_user(
            request,
            f"{je.journal_number} reversed by {reversal.journal_number}")
