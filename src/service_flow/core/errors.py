"""Error kinds raised by service flow operations."""


class ServiceFlowError(Exception):
    """Base class for all service flow errors."""


class NotFoundError(ServiceFlowError):
    """Raised when a record is absent or not owned by the caller."""


class ForbiddenError(NotFoundError):
    """Raised when the caller may not see a record.

    Subclasses NotFoundError so callers that treat every absent or foreign
    record alike can catch one type.
    """


class PreconditionFailedError(ServiceFlowError):
    """Raised when a business rule blocks an operation."""


class ValidationError(ServiceFlowError):
    """Raised when input is malformed."""
