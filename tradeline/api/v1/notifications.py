"""Notification inbox of the acting business"""

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from tradeline.api.dependencies import get_business_id, get_interaction_service, get_request_id, get_views
from tradeline.api.v1.errors import domain_errors
from tradeline.api.v1.schemas import (
    NotificationResponse,
    NotificationsMarkedResponse,
    NotificationsResponse,
)
from tradeline.infrastructure.database.session import get_db
from tradeline.services.interactions import InteractionService
from tradeline.services.views import RelationshipViews

router = APIRouter()


@router.get("/notifications", response_model=NotificationsResponse)
def list_notifications(
    limit: int = Query(50, gt=0, le=200),
    business_id: str = Depends(get_business_id),
    views: RelationshipViews = Depends(get_views),
):
    notifications = views.list_notifications(business_id, limit)
    return NotificationsResponse(
        business_id=business_id,
        unread_count=views.count_unread_notifications(business_id),
        notifications=[NotificationResponse.from_domain(n) for n in notifications],
    )


@router.post("/notifications/read-all", response_model=NotificationsMarkedResponse)
def mark_all_notifications_read(
    request: Request,
    business_id: str = Depends(get_business_id),
    db: Session = Depends(get_db),
    service: InteractionService = Depends(get_interaction_service),
):
    with domain_errors(db, get_request_id(request)):
        marked = service.mark_all_notifications_read(business_id)
        db.commit()
    return NotificationsMarkedResponse(business_id=business_id, marked_count=marked)


@router.post("/notifications/{notification_id}/read", response_model=NotificationResponse)
def mark_notification_read(
    notification_id: str,
    request: Request,
    business_id: str = Depends(get_business_id),
    db: Session = Depends(get_db),
    service: InteractionService = Depends(get_interaction_service),
):
    with domain_errors(db, get_request_id(request)):
        notification = service.mark_notification_read(notification_id, business_id)
        db.commit()
    return NotificationResponse.from_domain(notification)
