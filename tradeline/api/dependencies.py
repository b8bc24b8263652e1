"""Dependency injection for FastAPI endpoints"""

from fastapi import BackgroundTasks, Depends, Header, Request
from sqlalchemy.orm import Session

from tradeline.infrastructure.clients.notifier import NotifierClient
from tradeline.infrastructure.database.session import get_db
from tradeline.services.interactions import InteractionService
from tradeline.services.views import RelationshipViews
from tradeline.utils.date_utils import Clock, utc_now


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_business_id(x_business_id: str = Header(..., min_length=1)) -> str:
    """Acting business, as asserted by the identity provider in front of the service"""
    return x_business_id


def get_clock() -> Clock:
    """Wall clock; overridden in tests"""
    return utc_now


def get_notifier_client() -> NotifierClient:
    """Provide notification webhook client instance"""
    return NotifierClient()


def get_interaction_service(
    request: Request,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> InteractionService:
    return InteractionService(db, clock=clock, request_id=get_request_id(request))


def get_views(db: Session = Depends(get_db), clock: Clock = Depends(get_clock)) -> RelationshipViews:
    return RelationshipViews(db, clock=clock)


def queue_notifications(background_tasks: BackgroundTasks, notifier: NotifierClient, notifications) -> None:
    """Schedule webhook delivery of committed notifications"""
    if not notifier.enabled:
        return
    for notification in notifications:
        background_tasks.add_task(notifier.send_notification, notification)
