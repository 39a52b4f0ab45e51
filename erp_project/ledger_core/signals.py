from django.core.exceptions import ValidationError
from django.db.models.signals import pre_delete
from django.dispatch import receiver

from .models import Account, JournalEntry, JournalLine

"""Block deletion if account has ever been used in a journal line."""


@receiver(pre_delete, sender=Account)
def prevent_delete_account_with_journal_lines(sender, instance, **kwargs):
    if JournalLine.objects.filter(account=instance).exists():
        raise ValidationError(
            "Cannot delete account used in journal lines; deactivate it.")


"""Posted entries are permanent, even through queryset.delete()."""


@receiver(pre_delete, sender=JournalEntry)
def prevent_delete_posted_journal(sender, instance, **kwargs):
    if instance.status == "posted":
        raise ValidationError(
            "Cannot delete a posted JournalEntry; reverse it instead.")


@receiver(pre_delete, sender=JournalLine)
def prevent_delete_posted_journal_line(sender, instance, **kwargs):
    if JournalEntry.objects.filter(
            pk=instance.entry_id, status="posted").exists():
        raise ValidationError(
            "Cannot delete JournalLine: parent JournalEntry is posted.")
