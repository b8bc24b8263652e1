"""Payment endpoints - self-reported payments and the counterparty's response"""

from fastapi import APIRouter, BackgroundTasks, Depends, Request
from sqlalchemy.orm import Session

from tradeline.api.dependencies import (
    get_business_id,
    get_interaction_service,
    get_notifier_client,
    get_request_id,
    queue_notifications,
)
from tradeline.api.v1.errors import domain_errors
from tradeline.api.v1.schemas import PaymentCreateRequest, PaymentResponse
from tradeline.infrastructure.clients.notifier import NotifierClient
from tradeline.infrastructure.database.session import get_db
from tradeline.services.interactions import InteractionService

router = APIRouter()


@router.post("/orders/{order_id}/payments", response_model=PaymentResponse, status_code=201)
def record_payment(
    order_id: str,
    request_body: PaymentCreateRequest,
    background_tasks: BackgroundTasks,
    request: Request,
    business_id: str = Depends(get_business_id),
    db: Session = Depends(get_db),
    service: InteractionService = Depends(get_interaction_service),
    notifier: NotifierClient = Depends(get_notifier_client),
):
    with domain_errors(db, get_request_id(request)):
        payment = service.record_payment(order_id, request_body.amount_cents, business_id)
        db.commit()
    queue_notifications(background_tasks, notifier, service.outbox)
    return PaymentResponse.from_domain(payment)


@router.post("/payments/{payment_id}/dispute", response_model=PaymentResponse)
def dispute_payment(
    payment_id: str,
    background_tasks: BackgroundTasks,
    request: Request,
    business_id: str = Depends(get_business_id),
    db: Session = Depends(get_db),
    service: InteractionService = Depends(get_interaction_service),
    notifier: NotifierClient = Depends(get_notifier_client),
):
    with domain_errors(db, get_request_id(request)):
        payment = service.dispute_payment(payment_id, business_id)
        db.commit()
    queue_notifications(background_tasks, notifier, service.outbox)
    return PaymentResponse.from_domain(payment)


@router.post("/payments/{payment_id}/accept", response_model=PaymentResponse)
def accept_payment(
    payment_id: str,
    request: Request,
    business_id: str = Depends(get_business_id),
    db: Session = Depends(get_db),
    service: InteractionService = Depends(get_interaction_service),
):
    with domain_errors(db, get_request_id(request)):
        payment = service.accept_payment(payment_id, business_id)
        db.commit()
    return PaymentResponse.from_domain(payment)
