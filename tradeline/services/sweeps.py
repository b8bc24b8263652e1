"""Background sweep that auto-accepts payments the other party never answered"""

import logging
from datetime import datetime, timedelta

from sqlalchemy.orm import Session

from tradeline.infrastructure.database.repositories import PaymentRepository
from tradeline.infrastructure.observability.metrics import payments_auto_accepted_counter
from tradeline.utils.date_utils import utc_now

logger = logging.getLogger(__name__)

# Silence from the non-recording party after which a payment counts as accepted
PAYMENT_ACCEPTANCE_SILENCE = timedelta(hours=48)


def auto_accept_stale_payments(db: Session, now: datetime) -> int:
    """
    Accept every undisputed, unaccepted payment recorded 48h or more before now.

    The update only touches rows whose acceptance is still unset, so repeated or
    concurrent runs are no-ops for payments already handled. Caller commits.
    """
    accepted = PaymentRepository(db).accept_recorded_before(now - PAYMENT_ACCEPTANCE_SILENCE, now)
    if accepted:
        payments_auto_accepted_counter.inc(accepted)
    logger.info("Payment acceptance sweep finished", extra={"accepted_count": accepted})
    return accepted


def main() -> None:
    """Console entry point: run one sweep and commit"""
    from tradeline.config import settings
    from tradeline.infrastructure.database.session import SessionLocal
    from tradeline.infrastructure.observability.logging import setup_logging

    setup_logging(settings.log_level)
    db = SessionLocal()
    try:
        auto_accept_stale_payments(db, utc_now())
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == "__main__":
    main()
