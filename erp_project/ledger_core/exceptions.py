from django.core.exceptions import ObjectDoesNotExist, ValidationError


class UnbalancedJournalError(ValidationError):
    """Raised when a JournalEntry fails double-entry balance check."""
    pass


class AlreadyPostedDifferentPayload(Exception):
    """Raised when a JournalEntry already posted with different payload """
    pass


class DuplicateJournalError(ValidationError):
    """A journal already exists for this source document."""
    pass


class AlreadyReversedError(ValidationError):
    """Raised when reversing an entry that already has a reversal."""
    pass


class NotFoundError(ObjectDoesNotExist):
    """Base for unknown account, document or journal ids."""
    pass


class AccountNotFound(NotFoundError):
    pass


class DocumentNotFound(NotFoundError):
    pass


class JournalEntryNotFound(NotFoundError):
    pass
