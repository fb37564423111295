# backend/booking_engine/routers/payments.py

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..database import get_db
from ..schemas.payments import DepositIntentCreate, DepositIntentRead
from ..services.payments import PaymentGateway, get_payment_gateway, issue_deposit_intent

router = APIRouter(prefix="/payments", tags=["payments"])


@router.post("/deposit-intent", response_model=DepositIntentRead)
def create_deposit_intent(
    data: DepositIntentCreate,
    db: Session = Depends(get_db),
    gateway: PaymentGateway = Depends(get_payment_gateway),
):
    """Deposit amount for the selection and, if one is due, a payment intent."""
    return issue_deposit_intent(
        db,
        gateway,
        provider_id=data.provider_id,
        service_id=data.service_id,
        addon_service_ids=data.addon_service_ids,
        day_date=data.date,
        start_time=data.start_time,
    )
