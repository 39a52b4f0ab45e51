import logging

from celery import shared_task

logger = logging.getLogger(__name__)


@shared_task  # register this function as a Celery task
def verify_account_balances(fix=False):
    """Recompute every balance from posted lines and report drift."""
    # import services lazily to avoid circular imports at module import time
    from .services.auditor import balance_sheet_variance
    from .services.chart import verify_account_balances as verify

    drift = verify(fix=fix)
    variance = balance_sheet_variance()
    if not variance["balanced"]:
        logger.warning("Balance sheet does not balance",
                       extra={"variance": variance["variance"]})
    return {
        "drift": [{k: str(v) for k, v in row.items()} for row in drift],
        "balance_sheet": variance,
    }


@shared_task
def run_auto_balance(document_types=None):
    """Post missing journals for each configured document type."""
    from .services.auditor import create_missing_journals, run_all

    if document_types:
        results = {t: create_missing_journals(t) for t in document_types}
    else:
        results = run_all()
    return {t: r.to_dict() for t, r in results.items()}
