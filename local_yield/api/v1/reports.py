"""POST /v1/reports/{report_id}/resolve - Moderation decision hook"""

import logging
from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException
from sqlalchemy.orm import Session

from local_yield.api.dependencies import get_actor_id, get_actor_is_admin, get_event_client, get_request_id
from local_yield.api.v1.schemas import ResolveReportRequest, ResolveReportResponse
from local_yield.domain.exceptions import DomainException, ForbiddenError
from local_yield.infrastructure.clients.events import EventWebhookClient
from local_yield.infrastructure.database.session import get_db
from local_yield.services import disputes

router = APIRouter()


@router.post("/reports/{report_id}/resolve", response_model=ResolveReportResponse)
def resolve_report(
    report_id: str,
    request_body: ResolveReportRequest,
    background_tasks: BackgroundTasks,
    actor_id: str = Depends(get_actor_id),
    is_admin: bool = Depends(get_actor_is_admin),
    request_id: str = Depends(get_request_id),
    db: Session = Depends(get_db),
    event_client: EventWebhookClient = Depends(get_event_client),
):
    """Admin resolves (optionally with store credit) or dismisses a report"""
    if not is_admin:
        raise ForbiddenError("Admin capability required")

    try:
        if request_body.action == "DISMISS":
            outcome = disputes.dismiss_report(db, report_id, actor_id, note=request_body.note)
        else:
            outcome = disputes.resolve_report(
                db,
                report_id,
                actor_id,
                credit_cents=request_body.credit_cents,
                note=request_body.note,
                request_id=request_id,
            )
    except DomainException:
        raise
    except Exception as e:
        db.rollback()
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail={"code": "INTERNAL_ERROR", "message": "Internal server error"})

    if outcome.credit_entry_id:
        background_tasks.add_task(
            event_client.publish,
            "credit.issued",
            {"entry_id": outcome.credit_entry_id, "report_id": report_id, "amount_cents": outcome.credit_cents},
        )

    return ResolveReportResponse(
        report_id=outcome.report_id,
        status=outcome.status.value,
        credit_entry_id=outcome.credit_entry_id,
        credit_cents=outcome.credit_cents,
    )
