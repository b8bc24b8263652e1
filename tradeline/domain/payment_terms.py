"""Payment term variants agreed on a relationship and frozen onto each order"""

import copy
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

from tradeline.domain.exceptions import ValidationError

ADVANCE_REQUIRED = "Advance Required"
PAYMENT_ON_DELIVERY = "Payment on Delivery"
BILL_TO_BILL = "Bill to Bill"
DAYS_AFTER_DELIVERY = "Days After Delivery"


@dataclass(frozen=True)
class AdvanceRequired:
    """Payment is due as soon as the order is placed"""

    label = ADVANCE_REQUIRED


@dataclass(frozen=True)
class PaymentOnDelivery:
    """Payment is due when goods are delivered"""

    label = PAYMENT_ON_DELIVERY


@dataclass(frozen=True)
class BillToBill:
    """Payment for an order is due when the next order is delivered"""

    label = BILL_TO_BILL


@dataclass(frozen=True)
class DaysAfterDelivery:
    """Payment is due a fixed number of days after delivery"""

    days: int
    label = DAYS_AFTER_DELIVERY

    def __post_init__(self) -> None:
        if isinstance(self.days, bool) or not isinstance(self.days, int) or self.days <= 0:
            raise ValidationError("Days after delivery must be a positive whole number")


PaymentTerm = Union[AdvanceRequired, PaymentOnDelivery, BillToBill, DaysAfterDelivery]

_SIMPLE_TERMS = {
    ADVANCE_REQUIRED: AdvanceRequired,
    PAYMENT_ON_DELIVERY: PaymentOnDelivery,
    BILL_TO_BILL: BillToBill,
}


def payment_term_to_dict(term: PaymentTerm) -> Dict[str, Any]:
    """Serialize a term to the JSON shape stored on relationships and orders"""
    if isinstance(term, DaysAfterDelivery):
        return {"type": DAYS_AFTER_DELIVERY, "days": term.days}
    return {"type": term.label}


def payment_term_from_dict(data: Optional[Dict[str, Any]]) -> Optional[PaymentTerm]:
    """
    Parse a stored term.

    Raises:
        ValidationError: Unknown term type or invalid day count
    """
    if data is None:
        return None

    term_type = data.get("type")
    if term_type == DAYS_AFTER_DELIVERY:
        return DaysAfterDelivery(days=data.get("days"))
    if term_type in _SIMPLE_TERMS:
        return _SIMPLE_TERMS[term_type]()
    raise ValidationError(f"Unknown payment term type: {term_type!r}")


def snapshot_payment_terms(term: PaymentTerm) -> PaymentTerm:
    """Deep copy taken at order creation so later term edits never reach old orders"""
    return copy.deepcopy(term)
