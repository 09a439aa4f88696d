"""Dispute/report resolution hook.

Moderation decides outside this service; the decision lands here and, when it
carries a credit award, is turned into a DISPUTE_RESOLUTION ledger entry in the
same transaction that closes the report.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.orm import Session

from local_yield.domain.exceptions import InvalidTransitionError, MissingReferenceError, NotFoundError
from local_yield.domain.models import CreditReason, IssueCreditInput, ReportStatus, ResolutionOutcome
from local_yield.infrastructure.database.repositories import OrderRepository, ReportRepository
from local_yield.services.credits import issue_credit


def _close(
    db: Session,
    report_id: str,
    new_status: ReportStatus,
    resolved_by_id: str,
    note: Optional[str],
) -> None:
    if not ReportRepository(db).compare_and_close(
        report_id,
        ReportStatus.OPEN.value,
        new_status.value,
        resolved_by_id,
        note,
        datetime.now(timezone.utc),
    ):
        raise InvalidTransitionError("Report is no longer open")


def resolve_report(
    db: Session,
    report_id: str,
    resolved_by_id: str,
    credit_cents: Optional[int] = None,
    note: Optional[str] = None,
    request_id: Optional[str] = None,
) -> ResolutionOutcome:
    """Resolve an OPEN report, optionally awarding store credit to the order's buyer"""
    report = ReportRepository(db).get(report_id)
    if report is None:
        raise NotFoundError("Report not found")
    if report.status != ReportStatus.OPEN.value:
        raise InvalidTransitionError(f"Report is already {report.status}")

    outcome = ResolutionOutcome(report_id=report_id, status=ReportStatus.RESOLVED)
    try:
        if credit_cents is not None:
            if not report.order_id:
                raise MissingReferenceError("Report does not reference an order to credit")
            order = OrderRepository(db).get(report.order_id)
            if order is None:
                raise NotFoundError("Order not found")

            entry = issue_credit(
                db,
                IssueCreditInput(
                    user_id=order.buyer_id,
                    producer_id=order.producer_id,
                    amount_cents=credit_cents,
                    reason=CreditReason.DISPUTE_RESOLUTION,
                    created_by_id=resolved_by_id,
                    order_id=order.id,
                    report_id=report_id,
                ),
                request_id=request_id,
            )
            outcome.credit_entry_id = entry.id
            outcome.credit_cents = credit_cents

        _close(db, report_id, ReportStatus.RESOLVED, resolved_by_id, note)
        db.commit()
    except Exception:
        db.rollback()
        raise

    return outcome


def dismiss_report(db: Session, report_id: str, resolved_by_id: str, note: Optional[str] = None) -> ResolutionOutcome:
    report = ReportRepository(db).get(report_id)
    if report is None:
        raise NotFoundError("Report not found")
    try:
        _close(db, report_id, ReportStatus.DISMISSED, resolved_by_id, note)
        db.commit()
    except Exception:
        db.rollback()
        raise
    return ResolutionOutcome(report_id=report_id, status=ReportStatus.DISMISSED)
