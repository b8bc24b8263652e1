"""Issue endpoints - quality and billing disputes raised against orders"""

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
from tradeline.api.v1.schemas import IssueCreateRequest, IssueResponse
from tradeline.infrastructure.clients.notifier import NotifierClient
from tradeline.infrastructure.database.session import get_db
from tradeline.services.interactions import InteractionService

router = APIRouter()


@router.post("/orders/{order_id}/issues", response_model=IssueResponse, status_code=201)
def raise_issue(
    order_id: str,
    request_body: IssueCreateRequest,
    background_tasks: BackgroundTasks,
    request: Request,
    business_id: str = Depends(get_business_id),
    db: Session = Depends(get_db),
    service: InteractionService = Depends(get_interaction_service),
    notifier: NotifierClient = Depends(get_notifier_client),
):
    with domain_errors(db, get_request_id(request)):
        issue = service.raise_issue(order_id, request_body.issue_type, request_body.severity, business_id)
        db.commit()
    queue_notifications(background_tasks, notifier, service.outbox)
    return IssueResponse.from_domain(issue)


@router.post("/issues/{issue_id}/resolve", response_model=IssueResponse)
def resolve_issue(
    issue_id: str,
    background_tasks: BackgroundTasks,
    request: Request,
    business_id: str = Depends(get_business_id),
    db: Session = Depends(get_db),
    service: InteractionService = Depends(get_interaction_service),
    notifier: NotifierClient = Depends(get_notifier_client),
):
    with domain_errors(db, get_request_id(request)):
        issue = service.resolve_issue(issue_id, business_id)
        db.commit()
    queue_notifications(background_tasks, notifier, service.outbox)
    return IssueResponse.from_domain(issue)
