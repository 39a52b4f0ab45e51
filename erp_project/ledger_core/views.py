import json
from functools import wraps

from django.core.exceptions import ObjectDoesNotExist, ValidationError
from django.http import JsonResponse
from django.utils import timezone
from django.utils.dateparse import parse_date
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_GET, require_http_methods

from .services import (build_aging_report, build_aging_reports,
                       build_cash_flow_trend, build_day_sheet,
                       create_missing_journals, find_missing_journals,
                       get_account_balance, list_accounts,
                       record_waiver, reverse_journal_entry)


def json_errors(view):
    """ValidationError → 400, unknown ids → 404."""
    @wraps(view)
    def wrapper(request, *args, **kwargs):
        try:
            return view(request, *args, **kwargs)
        except ValidationError as e:
            return JsonResponse({"ok": False, "error": e.messages},
                                status=400)
        except ObjectDoesNotExist as e:
            return JsonResponse({"ok": False, "error": str(e)}, status=404)
    return wrapper


def _date_param(request, name, default=None):
    raw = request.GET.get(name)
    if not raw:
        return default or timezone.localdate()
    try:
        value = parse_date(raw)
    except ValueError:
        value = None
    if value is None:
        raise ValidationError(f"'{name}' must be a date (YYYY-MM-DD)")
    return value


def _body(request):
    if not request.body:
        return {}
    try:
        return json.loads(request.body)
    except ValueError:
        raise ValidationError("Request body must be JSON") from None


@require_GET
@json_errors
def aging_report_view(request):
    as_of = _date_param(request, "as_of")
    kind = request.GET.get("type")
    if kind:
        return JsonResponse(build_aging_report(as_of, kind).to_dict())
    reports = build_aging_reports(as_of)
    return JsonResponse({k: r.to_dict() for k, r in reports.items()})


@require_GET
@json_errors
def day_sheet_view(request):
    sheet = build_day_sheet(
        _date_param(request, "date"),
        category=request.GET.get("category") or None,
        payment_method=request.GET.get("payment_method") or None,
    )
    return JsonResponse(sheet.to_dict())


@require_GET
@json_errors
def cash_flow_trend_view(request):
    try:
        range_days = int(request.GET.get("range", 30))
    except ValueError:
        raise ValidationError("'range' must be a number of days") from None
    trend = build_cash_flow_trend(range_days, _date_param(request, "as_of"))
    return JsonResponse({
        "range_days": trend.range_days,
        "start_date": trend.start_date,
        "end_date": trend.end_date,
        "daily": trend.daily,
        "monthly": trend.monthly,
        "summary": trend.summary,
        "expense_breakdown": trend.expense_breakdown,
        "payment_method_breakdown": trend.payment_method_breakdown,
        "unavailable_sources": trend.unavailable_sources,
    })


@require_GET
@json_errors
def account_list_view(request):
    active = request.GET.get("active")
    accounts = list_accounts(
        ac_type=request.GET.get("type") or None,
        is_active=None if active is None else active.lower() == "true",
        code_prefix=request.GET.get("code") or None,
        search=request.GET.get("q") or None,
    )
    return JsonResponse({"accounts": list(accounts.values(
        "id", "code", "name", "ac_type", "normal_balance", "parent_id",
        "current_balance", "is_active"))})


@require_GET
@json_errors
def account_balance_view(request, account_id):
    return JsonResponse({"account_id": account_id,
                         "balance": get_account_balance(account_id)})


@csrf_exempt
@require_http_methods(["GET", "POST"])
@json_errors
def missing_journals_view(request, document_type):
    if request.method == "GET":
        missing = find_missing_journals(document_type)
        return JsonResponse({
            "document_type": document_type,
            "count": missing.count(),
            "document_ids": list(missing.values_list("pk", flat=True)),
        })
    ids = _body(request).get("ids")
    user = request.user if request.user.is_authenticated else None
    result = create_missing_journals(document_type, ids=ids, user=user)
    return JsonResponse(result.to_dict())


@csrf_exempt
@require_http_methods(["POST"])
@json_errors
def reverse_journal_view(request, entry_id):
    body = _body(request)
    user = request.user if request.user.is_authenticated else None
    reversal = reverse_journal_entry(entry_id, user=user,
                                     reason=body.get("reason"))
    return JsonResponse({
        "ok": True,
        "journal_entry_id": reversal.pk,
        "journal_number": reversal.journal_number,
        "reverses": entry_id,
    })


@csrf_exempt
@require_http_methods(["POST"])
@json_errors
def waive_invoice_view(request, invoice_id):
    body = _body(request)
    if "amount" not in body:
        raise ValidationError("'amount' is required")
    user = request.user if request.user.is_authenticated else None
    invoice = record_waiver(invoice_id, body["amount"],
                            reason=body.get("reason", ""), user=user)
    return JsonResponse({
        "ok": True,
        "invoice_id": invoice.pk,
        "waived_amount": invoice.waived_amount,
        "status": invoice.status,
    })
