"""Translate domain rejections into HTTP errors, rolling back the session first"""

import logging
from contextlib import contextmanager

from fastapi import HTTPException
from sqlalchemy.orm import Session

from tradeline.domain.exceptions import (
    ConcurrentModificationError,
    DomainException,
    InvalidTransitionError,
    NotFoundError,
    UnauthorizedActorError,
)

logger = logging.getLogger(__name__)

STATUS_BY_EXCEPTION = (
    (NotFoundError, 404),
    (UnauthorizedActorError, 403),
    (InvalidTransitionError, 409),
    (ConcurrentModificationError, 409),
)


def status_for(error: DomainException) -> int:
    for exc_type, status in STATUS_BY_EXCEPTION:
        if isinstance(error, exc_type):
            return status
    return 422


@contextmanager
def domain_errors(db: Session, request_id: str):
    try:
        yield
    except HTTPException:
        db.rollback()
        raise
    except DomainException as e:
        db.rollback()
        logger.warning(f"Interaction rejected: {e.message}", extra={"request_id": request_id})
        raise HTTPException(status_code=status_for(e), detail=e.message)
    except Exception as e:
        db.rollback()
        logger.exception(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")
