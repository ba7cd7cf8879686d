"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class ReferenceNotFoundError(DomainException):
    """An action referenced an entity id that does not exist"""

    pass


class BorrowerNotFoundError(ReferenceNotFoundError):
    """No borrower with the given id"""

    pass


class TransactionNotFoundError(ReferenceNotFoundError):
    """No loan transaction with the given id"""

    pass


class InstallmentNotFoundError(ReferenceNotFoundError):
    """No installment with the given id on the transaction"""

    pass


class InvalidConfigFieldError(DomainException):
    """Config update named a field AppConfig does not have"""

    pass


class InvalidSnapshotError(DomainException):
    """Persisted snapshot could not be parsed into an AppState"""

    pass


class StateStoreError(DomainException):
    """Remote state store returned an error or is unavailable"""

    pass


class SyncError(DomainException):
    """Webhook sync delivery failed"""

    pass
