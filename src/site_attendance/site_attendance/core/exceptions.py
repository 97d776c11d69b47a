class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class InvalidWorkerIdError(ValidationError):
    """Raised when a submitted worker id does not have the accepted format."""

    def __init__(self, worker_ids):
        self.worker_ids = list(worker_ids)
        super().__init__(f"worker_id が不正です: {', '.join(self.worker_ids)}")


class AuthenticationError(DomainError):
    """Raised when login credentials are invalid or no session exists."""


class AuthorizationError(DomainError):
    """Raised when a user lacks permission for an action."""


class NotFoundError(DomainError):
    """Raised when a referenced record does not exist."""


class StorageError(DomainError):
    """Raised when the store rejects a write."""


class InvalidExpiryError(ValidationError):
    """Raised when a guest link expiry date cannot be parsed."""


class LinkExpiredError(DomainError):
    """Raised when an operation targets a guest link that has already expired."""
