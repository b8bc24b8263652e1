"""Order endpoints - placement and lifecycle transitions"""

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
from tradeline.api.v1.schemas import OrderCreateRequest, OrderResponse
from tradeline.domain.models import OrderAction
from tradeline.infrastructure.clients.notifier import NotifierClient
from tradeline.infrastructure.database.session import get_db
from tradeline.services.interactions import InteractionService

router = APIRouter()


@router.post("/relationships/{relationship_id}/orders", response_model=OrderResponse, status_code=201)
def create_order(
    relationship_id: str,
    request_body: OrderCreateRequest,
    background_tasks: BackgroundTasks,
    request: Request,
    business_id: str = Depends(get_business_id),
    db: Session = Depends(get_db),
    service: InteractionService = Depends(get_interaction_service),
    notifier: NotifierClient = Depends(get_notifier_client),
):
    """
    Place an order under the relationship.

    Rejected with 422 until the supplier has set payment terms; the current
    terms are snapshotted onto the order.
    """
    with domain_errors(db, get_request_id(request)):
        order = service.create_order(
            relationship_id,
            request_body.item_summary,
            request_body.order_value_cents,
            business_id,
        )
        db.commit()
    queue_notifications(background_tasks, notifier, service.outbox)
    return OrderResponse.from_domain(order)


@router.post("/orders/{order_id}/transitions/{action}", response_model=OrderResponse)
def transition_order(
    order_id: str,
    action: OrderAction,
    background_tasks: BackgroundTasks,
    request: Request,
    business_id: str = Depends(get_business_id),
    db: Session = Depends(get_db),
    service: InteractionService = Depends(get_interaction_service),
    notifier: NotifierClient = Depends(get_notifier_client),
):
    """
    Accept, decline, dispatch or deliver an order.

    409 when the order is not in the state the action requires, or when a
    concurrent transition won the race.
    """
    with domain_errors(db, get_request_id(request)):
        order = service.transition_order(order_id, action, business_id)
        db.commit()
    queue_notifications(background_tasks, notifier, service.outbox)
    return OrderResponse.from_domain(order)
