"""Domain exceptions.

Every error the write and read pipelines can surface to a caller.
Each error carries a machine-readable code and an HTTP-style status
hint so the API layer can render it without knowing where it came from.
"""

from typing import Any


class StoreApiError(Exception):
    """Base class for all store API errors.

    Attributes:
        message: Human-readable error message.
        code: Machine-readable error code.
        status: HTTP-style status hint.
        details: Additional error context.
    """

    default_code = "error"
    default_status = 400

    def __init__(
        self,
        message: str,
        code: str | None = None,
        status: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize store API error.

        Args:
            message: Human-readable error message.
            code: Optional error code, defaults to the class code.
            status: Optional status hint, defaults to the class status.
            details: Optional dictionary with additional error context.
        """
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.status = status or self.default_status
        self.details = details or {}


# ============================================================================
# Request Errors
# ============================================================================


class ValidationError(StoreApiError):
    """Raised when a request field is malformed or missing."""

    default_code = "invalid_param"
    default_status = 400

    def __init__(
        self,
        message: str,
        field: str | None = None,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize validation error.

        Args:
            message: Human-readable error message.
            field: Name of the offending request field.
            code: Optional error code.
            details: Optional additional context.
        """
        context = dict(details or {})
        if field is not None:
            context["field"] = field
        super().__init__(message, code=code, details=context)
        self.field = field


class NotFoundError(StoreApiError):
    """Raised when a resource id does not exist."""

    default_code = "invalid_id"
    default_status = 404

    def __init__(self, resource: str, resource_id: Any) -> None:
        """Initialize not found error.

        Args:
            resource: Resource type (e.g., "order").
            resource_id: The unknown id.
        """
        super().__init__(
            f"Invalid {resource} ID: {resource_id}",
            details={"resource": resource, "id": resource_id},
        )


class ConflictError(StoreApiError):
    """Raised when an identifying field is already taken."""

    default_code = "conflict"
    default_status = 400


class TrashNotSupportedError(StoreApiError):
    """Raised when a resource is deleted without force but cannot be trashed."""

    default_code = "trash_not_supported"
    default_status = 501

    def __init__(self, resource: str) -> None:
        """Initialize trash not supported error.

        Args:
            resource: Plural resource name (e.g., "Customers").
        """
        super().__init__(
            f"{resource} do not support trashing.",
            details={"resource": resource},
        )


class AlreadyTrashedError(StoreApiError):
    """Raised when trashing a resource that is already in the trash."""

    default_code = "already_trashed"
    default_status = 410

    def __init__(self, resource: str, resource_id: Any) -> None:
        """Initialize already trashed error.

        Args:
            resource: Resource type.
            resource_id: Id of the trashed resource.
        """
        super().__init__(
            f"The {resource} has already been deleted.",
            details={"resource": resource, "id": resource_id},
        )


# ============================================================================
# Collaborator Errors
# ============================================================================


class DomainError(StoreApiError):
    """Raised by the totals calculator or a state transition.

    The collaborator may attach its own status; 400 otherwise.
    """

    default_code = "domain_error"
    default_status = 400


class PersistenceError(StoreApiError):
    """Raised when the order store fails."""

    default_code = "persistence_error"
    default_status = 500
