from django.urls import path

from . import views

app_name = "ledger_core"

urlpatterns = [
    path("accounts/", views.account_list_view, name="account-list"),
    path("accounts/<int:account_id>/balance/", views.account_balance_view,
         name="account-balance"),
    path("reports/aging/", views.aging_report_view, name="aging-report"),
    path("reports/day-sheet/", views.day_sheet_view, name="day-sheet"),
    path("reports/cash-flow/", views.cash_flow_trend_view,
         name="cash-flow-trend"),
    path("auto-balance/<str:document_type>/", views.missing_journals_view,
         name="missing-journals"),
    path("journals/<int:entry_id>/reverse/", views.reverse_journal_view,
         name="reverse-journal"),
    path("invoices/<int:invoice_id>/waive/", views.waive_invoice_view,
         name="waive-invoice"),
]
