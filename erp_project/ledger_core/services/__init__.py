from .aging import build_aging_report, build_aging_reports
from .auditor import (balance_sheet_variance, create_missing_journals,
                      find_missing_journals)
from .cashflow import (build_cash_flow_trend, build_day_sheet,
                       collect_cash_events)
from .chart import (apply_balance_delta, cash_account_for_method,
                    deactivate_account, ensure_default_chart, get_account,
                    get_account_balance, get_or_create_account,
                    list_accounts, partner_equity_account, system_account,
                    trial_balance, verify_account_balances)
from .payment import (record_customer_payment, record_loan_disbursement,
                      record_loan_repayment, record_partner_investment,
                      record_purchase_order, record_refund,
                      record_supplier_payment, record_vendor_bill,
                      record_waiver, record_withdrawal)
from .posting import (post_draft_journal, post_journal_entry,
                      reverse_journal_entry)
from .reconciliation import (compute_outstanding, open_payables,
                             open_receivables)
