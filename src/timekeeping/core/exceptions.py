class DomainError(Exception):
    """Base exception for business rule violations."""

    code = "domain_error"


class NotFoundError(DomainError):
    """Raised when an entry, absence or contractor is missing or belongs to another tenant."""

    code = "not_found"


class ConflictError(DomainError):
    """Raised on duplicate absences, already-decided entries and duplicate generation."""

    code = "conflict"


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""

    code = "validation_error"


class PolicyError(DomainError):
    """Raised when an approver is not authorized for an entry."""

    code = "policy_error"
