"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer, carries a human-readable reason"""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(DomainException):
    """Input failed a business validation rule"""

    pass


class NotFoundError(DomainException):
    """Referenced relationship, order, payment or issue does not exist"""

    pass


class UnauthorizedActorError(DomainException):
    """Acting business is not allowed to perform this interaction"""

    pass


class InvalidTransitionError(DomainException):
    """Requested lifecycle transition does not match the order's current state"""

    pass


class PaymentTermsRequiredError(ValidationError):
    """Orders cannot be created before the supplier sets payment terms"""

    pass


class OverpaymentError(ValidationError):
    """Payment would drive the pending amount below zero"""

    pass


class RelationshipExistsError(ValidationError):
    """A relationship between the same two businesses already exists"""

    pass


class ConcurrentModificationError(DomainException):
    """Row changed between read and conditional write; caller should retry"""

    pass


class NotifierError(DomainException):
    """Notification webhook rejected the event or is unavailable"""

    pass
