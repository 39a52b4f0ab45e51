import logging
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from django.core.exceptions import ValidationError
from django.db import IntegrityError, transaction
from django.utils import timezone

from ..exceptions import (AlreadyReversedError, DuplicateJournalError,
                          JournalEntryNotFound, UnbalancedJournalError)
from ..models import JournalEntry, JournalLine
from ..models.journal import generate_journal_number
from .audit_helper import log_action
from .chart import get_account

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def to_money(value) -> Decimal:
    """Coerce to a 2dp Decimal; blanks count as zero."""
    if value in (None, ""):
        return ZERO
    try:
        return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)
    except (InvalidOperation, ValueError) as exc:
        raise ValidationError(f"Invalid amount '{value}'") from exc


def _prepare_lines(lines):
    """Resolve accounts and validate each line. Nothing is written here."""
    prepared = []
    for number, raw in enumerate(lines, start=1):
        account = get_account(raw["account"])
        debit = to_money(raw.get("debit"))
        credit = to_money(raw.get("credit"))
        if debit < 0 or credit < 0:
            raise ValidationError(
                f"Line {number}: debit and credit must be >= 0")
        if (debit > 0) == (credit > 0):
            raise ValidationError(
                f"Line {number}: exactly one of debit or credit "
                "must be positive")
        if not account.is_active:
            raise ValidationError(
                f"Line {number}: account {account.code} is inactive")
        prepared.append({
            "line_number": number,
            "account": account,
            "debit_amount": debit,
            "credit_amount": credit,
            "description": raw.get("description") or "",
            "reference": raw.get("reference") or "",
        })
    return prepared


def _source_taken(source_type, source_reference):
    if not source_reference:
        return False
    return JournalEntry.objects.filter(
        source_document_type=source_type,
        source_reference=source_reference,
    ).exists()


# ----------------------------
# Journal-related workflows
# ----------------------------
def post_journal_entry(source_type, source_id, entry_date, description,
                       lines, user=None, entry_type="AUTO", tag=None,
                       reverses=None):
    """
    Write one balanced entry and move every touched account balance.

    ``lines`` is a list of mappings: ``account`` (Account, id or code),
    ``debit`` or ``credit``, optional ``description`` and ``reference``.

    All validation happens before the first write. The insert of the
    header, its lines and the balance increments share one transaction:
    either all of them are visible or none are.
    """
    if not lines:
        raise ValidationError("A journal entry needs at least one line.")

    prepared = _prepare_lines(lines)
    td = sum((ln["debit_amount"] for ln in prepared), ZERO)
    tc = sum((ln["credit_amount"] for ln in prepared), ZERO)
    if td != tc:
        logger.info(
            "Rejected unbalanced journal for %s %s", source_type, source_id,
            extra={"source_document_type": source_type,
                   "source_reference": source_id,
                   "total_debit": str(td), "total_credit": str(tc)},
        )
        raise UnbalancedJournalError(
            f"Journal not balanced: debits={td}, credits={tc}")

    source_reference = str(source_id) if source_id is not None else None
    if _source_taken(source_type, source_reference):
        raise DuplicateJournalError(
            f"A journal already exists for {source_type} {source_reference}")

    try:
        with transaction.atomic():
            je = JournalEntry.objects.create(
                journal_number=generate_journal_number(entry_date, tag),
                entry_date=entry_date,
                description=description or "",
                entry_type=entry_type,
                status="draft",
                source_document_type=source_type,
                source_reference=source_reference,
                created_by=user,
                reverses=reverses,
            )
            for line in prepared:
                JournalLine.objects.create(entry=je, **line)
            # validations, fingerprint and balance increments
            je.post(user=user)
            log_action(
                action="post",
                instance=je,
                user=user,
                changes={
                    "journal_number": je.journal_number,
                    "source": [source_type, source_reference],
                    "total": str(td),
                },
            )
    except IntegrityError as exc:
        # lost a race against a concurrent posting for the same document
        if _source_taken(source_type, source_reference):
            raise DuplicateJournalError(
                f"A journal already exists for {source_type} "
                f"{source_reference}") from exc
        raise

    logger.info(
        "Posted journal %s", je.journal_number,
        extra={"journal_number": je.journal_number,
               "source_document_type": source_type,
               "source_reference": source_reference,
               "total": str(td)},
    )
    return je


def post_draft_journal(journal_entry_id, user=None):
    """
    Post a hand-built draft entry.
    Wraps JournalEntry.post() with locking + orchestration.
    """
    with transaction.atomic():
        je = JournalEntry.objects.select_for_update().filter(
            pk=journal_entry_id).first()
        if je is None:
            raise JournalEntryNotFound(
                f"Journal entry {journal_entry_id} does not exist")
        je.post(user=user)
        log_action(action="post", instance=je, user=user)
    return je


def reverse_journal_entry(entry_id, user=None, reason=None, entry_date=None):
    """
    Cancel a posted entry with a mirror entry (debits ↔ credits).

    The original stays posted and untouched; the reversal points back at
    it through ``reverses``. Each entry can be reversed once.
    """
    with transaction.atomic():
        original = JournalEntry.objects.select_for_update().filter(
            pk=entry_id).first()
        if original is None:
            raise JournalEntryNotFound(f"Journal entry {entry_id} does not exist")
        if original.status != "posted":
            raise ValidationError(
                "Only posted entries can be reversed; delete the draft instead.")
        if original.entry_type == "REVERSAL":
            raise ValidationError("A reversal entry cannot be reversed.")
        if JournalEntry.objects.filter(reverses=original).exists():
            raise AlreadyReversedError(
                f"Journal {original.journal_number} is already reversed.")

        lines = [
            {
                "account": line.account,
                "debit": line.credit_amount,
                "credit": line.debit_amount,
                "description": f"Reversal: {line.description}".strip(),
                "reference": line.reference,
            }
            for line in original.lines.select_related("account")
            .order_by("line_number", "id")
        ]
        description = f"Reversal of {original.journal_number}"
        if reason:
            description = f"{description}: {reason}"

        try:
            reversal = post_journal_entry(
                "REVERSAL",
                original.pk,
                entry_date or timezone.localdate(),
                description,
                lines,
                user=user,
                entry_type="REVERSAL",
                tag="REV",
                reverses=original,
            )
        except DuplicateJournalError as exc:
            raise AlreadyReversedError(
                f"Journal {original.journal_number} is already reversed."
            ) from exc
        log_action(
            action="reverse",
            instance=original,
            user=user,
            changes={"reversal": reversal.journal_number, "reason": reason},
        )
    return reversal
