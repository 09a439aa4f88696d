"""GET /v1/credits/* - Store credit balance and history for a buyer at one producer"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from local_yield.api.dependencies import get_actor_id
from local_yield.api.v1.schemas import CreditBalanceResponse, CreditEntrySchema, CreditLedgerResponse
from local_yield.infrastructure.database.session import get_db
from local_yield.services import credits as credit_service

router = APIRouter()


@router.get("/credits/balance", response_model=CreditBalanceResponse)
def get_credit_balance(
    producer_id: str = Query(..., description="Producer whose shop the credit belongs to"),
    actor_id: str = Depends(get_actor_id),
    db: Session = Depends(get_db),
):
    """
    Credit the actor holds with a producer.

    Returns:
        issued_cents: raw ledger total
        spendable_cents: issued minus credit applied to non-canceled orders
    """
    return CreditBalanceResponse(
        user_id=actor_id,
        producer_id=producer_id,
        issued_cents=credit_service.get_balance(db, actor_id, producer_id),
        spendable_cents=credit_service.get_spendable_balance(db, actor_id, producer_id),
    )


@router.get("/credits/ledger", response_model=CreditLedgerResponse)
def get_credit_ledger(
    producer_id: str = Query(...),
    limit: int = Query(50, ge=1, le=200),
    actor_id: str = Depends(get_actor_id),
    db: Session = Depends(get_db),
):
    entries = credit_service.get_ledger(db, actor_id, producer_id, limit=limit)
    return CreditLedgerResponse(
        user_id=actor_id,
        producer_id=producer_id,
        entries=[
            CreditEntrySchema(
                entry_id=e.id,
                amount_cents=e.amount_cents,
                reason=e.reason,
                order_id=e.order_id,
                report_id=e.report_id,
                created_by_id=e.created_by_id,
                created_at=e.created_at.isoformat(),
            )
            for e in entries
        ],
    )
