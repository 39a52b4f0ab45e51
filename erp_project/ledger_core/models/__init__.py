from .account import Account
from .auditlog import AuditLog
from .customer import Customer
from .equity import Investment, Partner, Withdrawal
from .expense import Expense
from .gap import ReconciliationGap
from .journal import JournalEntry, JournalLine
from .loans import LiabilityPayment, LoanOpeningBalance
from .purchasing import PurchaseOrder, VendorBill, VendorPaymentHistory
from .sales import Invoice, InvoiceRefund, Payment, SalesOrder
from .vendor import Vendor
