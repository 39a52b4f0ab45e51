from .account import AccountAdmin
from .actions import post_journal_entries, reverse_journal_entries
from .auditlog import AuditLogAdmin, ReconciliationGapAdmin
from .documents import (CashDocumentAdmin, InvoiceAdmin, PartyAdmin,
                        PurchaseOrderAdmin, SalesOrderAdmin, VendorBillAdmin)
from .inlines import JournalLineInline
from .journal import JournalEntryAdmin, JournalLineAdmin
