"""Relationship endpoints - creation, payment terms and derived per-relationship views"""

from typing import List

from fastapi import APIRouter, BackgroundTasks, Depends, Request
from sqlalchemy.orm import Session

from tradeline.api.dependencies import (
    get_business_id,
    get_interaction_service,
    get_notifier_client,
    get_request_id,
    get_views,
    queue_notifications,
)
from tradeline.api.v1.errors import domain_errors
from tradeline.api.v1.schemas import (
    AttentionItemResponse,
    BehaviourResponse,
    InsightSchema,
    InsightsResponse,
    OrderSettlementResponse,
    PaymentTermsUpdateRequest,
    RelationshipCreateRequest,
    RelationshipResponse,
)
from tradeline.infrastructure.clients.notifier import NotifierClient
from tradeline.infrastructure.database.session import get_db
from tradeline.services.interactions import InteractionService
from tradeline.services.views import RelationshipViews

router = APIRouter()


@router.post("/relationships", response_model=RelationshipResponse, status_code=201)
def create_relationship(
    request_body: RelationshipCreateRequest,
    request: Request,
    business_id: str = Depends(get_business_id),
    db: Session = Depends(get_db),
    service: InteractionService = Depends(get_interaction_service),
):
    """Open a relationship between the acting business and a counterparty"""
    with domain_errors(db, get_request_id(request)):
        terms = request_body.payment_terms.to_domain() if request_body.payment_terms else None
        relationship = service.create_relationship(
            request_body.buyer_business_id,
            request_body.supplier_business_id,
            terms,
            business_id,
        )
        db.commit()
    return RelationshipResponse.from_domain(relationship)


@router.get("/relationships", response_model=List[RelationshipResponse])
def list_relationships(
    business_id: str = Depends(get_business_id),
    views: RelationshipViews = Depends(get_views),
):
    return [RelationshipResponse.from_domain(r) for r in views.list_relationships(business_id)]


@router.get("/relationships/{relationship_id}", response_model=RelationshipResponse)
def get_relationship(
    relationship_id: str,
    request: Request,
    business_id: str = Depends(get_business_id),
    db: Session = Depends(get_db),
    views: RelationshipViews = Depends(get_views),
):
    with domain_errors(db, get_request_id(request)):
        relationship = views.get_relationship(relationship_id, business_id)
    return RelationshipResponse.from_domain(relationship)


@router.put("/relationships/{relationship_id}/payment-terms", response_model=RelationshipResponse)
def update_payment_terms(
    relationship_id: str,
    request_body: PaymentTermsUpdateRequest,
    background_tasks: BackgroundTasks,
    request: Request,
    business_id: str = Depends(get_business_id),
    db: Session = Depends(get_db),
    service: InteractionService = Depends(get_interaction_service),
    notifier: NotifierClient = Depends(get_notifier_client),
):
    """Supplier sets the terms frozen onto every order placed from now on"""
    with domain_errors(db, get_request_id(request)):
        relationship = service.update_payment_terms(
            relationship_id, request_body.payment_terms.to_domain(), business_id
        )
        db.commit()
    queue_notifications(background_tasks, notifier, service.outbox)
    return RelationshipResponse.from_domain(relationship)


@router.get("/relationships/{relationship_id}/orders", response_model=List[OrderSettlementResponse])
def list_orders(
    relationship_id: str,
    request: Request,
    business_id: str = Depends(get_business_id),
    db: Session = Depends(get_db),
    views: RelationshipViews = Depends(get_views),
):
    """Orders of the relationship with their derived settlement position"""
    with domain_errors(db, get_request_id(request)):
        settlements = views.list_order_settlements(relationship_id, business_id)
    return [OrderSettlementResponse.from_domain(s) for s in settlements]


@router.get("/relationships/{relationship_id}/attention", response_model=List[AttentionItemResponse])
def get_relationship_attention(
    relationship_id: str,
    request: Request,
    business_id: str = Depends(get_business_id),
    db: Session = Depends(get_db),
    views: RelationshipViews = Depends(get_views),
):
    with domain_errors(db, get_request_id(request)):
        items = views.get_relationship_attention(relationship_id, business_id)
    return [AttentionItemResponse.from_domain(item) for item in items]


@router.get("/relationships/{relationship_id}/signals", response_model=BehaviourResponse)
def get_behaviour_signals(
    relationship_id: str,
    request: Request,
    business_id: str = Depends(get_business_id),
    db: Session = Depends(get_db),
    views: RelationshipViews = Depends(get_views),
):
    with domain_errors(db, get_request_id(request)):
        signals = views.get_behaviour_signals(relationship_id, business_id)
        friction = views.get_active_friction(relationship_id, business_id)
    return BehaviourResponse.from_domain(relationship_id, signals, friction)


@router.get("/relationships/{relationship_id}/insights", response_model=InsightsResponse)
def get_insights(
    relationship_id: str,
    request: Request,
    business_id: str = Depends(get_business_id),
    db: Session = Depends(get_db),
    views: RelationshipViews = Depends(get_views),
):
    """At most two insights, chosen for the caller's side of the relationship"""
    with domain_errors(db, get_request_id(request)):
        insights = views.get_insights(relationship_id, business_id)
    return InsightsResponse(
        relationship_id=relationship_id,
        insights=[InsightSchema.from_domain(template) for template in insights],
    )
