"""
ProdTrack - Custom Exception Hierarchy

Typed exceptions with error codes so services can raise and the API layer
can render a consistent JSON body.

Usage:
    from prodtrack.exceptions import NotFoundError, OrderViolationError

    raise NotFoundError("Operation", operation_id)
    raise OrderViolationError("Previous step OP10 is not completed", step_code="OP15")
"""
from datetime import datetime
from typing import Any, Dict, Optional


class ProdTrackException(Exception):
    """
    Base exception for all ProdTrack errors.

    Attributes:
        message: Human-readable error message
        error_code: Machine-readable error code (e.g., "NOT_FOUND", "ALREADY_LOCKED")
        status_code: HTTP status code to return
        details: Additional context for debugging
    """

    error_code: str = "PRODTRACK_ERROR"
    status_code: int = 500

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        *,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API response."""
        result = {
            "error": self.error_code,
            "message": self.message,
        }
        if self.details:
            result["details"] = self.details
        return result


# ===================
# 400 Bad Request Errors
# ===================


class ValidationError(ProdTrackException):
    """Raised when input validation fails."""

    error_code = "VALIDATION_ERROR"
    status_code = 400

    def __init__(
        self,
        message: str = "Validation failed",
        *,
        field: Optional[str] = None,
        value: Any = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        details = details or {}
        if field:
            details["field"] = field
        if value is not None:
            details["value"] = str(value)
        super().__init__(message, details=details)


class InvalidStateError(ProdTrackException):
    """Raised when an operation is invalid for the current state."""

    error_code = "INVALID_STATE"
    status_code = 400

    def __init__(
        self,
        message: str = "Operation not allowed in current state",
        *,
        current_state: Optional[str] = None,
        allowed_states: Optional[list] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        details = details or {}
        if current_state:
            details["current_state"] = current_state
        if allowed_states:
            details["allowed_states"] = allowed_states
        super().__init__(message, details=details)


class OrderViolationError(InvalidStateError):
    """Raised when a step is started or ended out of sequence."""

    error_code = "ORDER_VIOLATION"

    def __init__(
        self,
        message: str = "Operation step is out of sequence",
        *,
        step_code: Optional[str] = None,
        current_state: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        details = details or {}
        if step_code:
            details["step_code"] = step_code
        super().__init__(message, current_state=current_state, details=details)


# ===================
# 403 Forbidden Errors
# ===================


class PermissionDeniedError(ProdTrackException):
    """Raised when user lacks permission for an action."""

    error_code = "PERMISSION_DENIED"
    status_code = 403

    def __init__(
        self,
        message: str = "Permission denied",
        *,
        action: Optional[str] = None,
        resource: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        details = details or {}
        if action:
            details["action"] = action
        if resource:
            details["resource"] = resource
        super().__init__(message, details=details)


class NotOwnerError(PermissionDeniedError):
    """Raised when releasing a lock held by someone else."""

    error_code = "NOT_LOCK_OWNER"

    def __init__(
        self,
        message: str = "You do not own this lock",
        *,
        owner_id: Optional[int] = None,
        owner_name: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        details = details or {}
        details["owner_id"] = owner_id
        details["owner_name"] = owner_name
        super().__init__(message, action="release_lock", details=details)


# ===================
# 404 Not Found Errors
# ===================


class NotFoundError(ProdTrackException):
    """Raised when a resource is not found."""

    error_code = "NOT_FOUND"
    status_code = 404

    def __init__(
        self,
        resource: str = "Resource",
        resource_id: Any = None,
        *,
        details: Optional[Dict[str, Any]] = None,
    ):
        details = details or {}
        details["resource"] = resource
        if resource_id is not None:
            details["resource_id"] = str(resource_id)
        message = f"{resource} not found"
        if resource_id is not None:
            message = f"{resource} with ID {resource_id} not found"
        super().__init__(message, details=details)


# ===================
# 409 Conflict Errors
# ===================


class ConflictError(ProdTrackException):
    """Raised when there's a resource conflict."""

    error_code = "CONFLICT"
    status_code = 409

    def __init__(
        self,
        message: str = "Resource conflict",
        *,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, details=details)


class DuplicateError(ConflictError):
    """Raised when attempting to create a duplicate resource."""

    error_code = "DUPLICATE_ERROR"

    def __init__(
        self,
        resource: str = "Resource",
        *,
        field: Optional[str] = None,
        value: Any = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        details = details or {}
        details["resource"] = resource
        if field:
            details["field"] = field
        if value is not None:
            details["value"] = str(value)
        message = f"{resource} already exists"
        if field and value:
            message = f"{resource} with {field}='{value}' already exists"
        super().__init__(message, details=details)


class AlreadyResolvedError(ConflictError):
    """Raised when an edit request has already left the pending state."""

    error_code = "ALREADY_RESOLVED"

    def __init__(
        self,
        request_id: int,
        *,
        status: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        details = details or {}
        details["request_id"] = request_id
        if status:
            details["status"] = status
        super().__init__("Edit request has already been resolved", details=details)


class StaleEditRequestError(ConflictError):
    """Raised when the defect changed after the edit request was filed."""

    error_code = "STALE_EDIT_REQUEST"

    def __init__(
        self,
        request_id: int,
        *,
        expected: Optional[Dict[str, Any]] = None,
        actual: Optional[Dict[str, Any]] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        details = details or {}
        details["request_id"] = request_id
        if expected is not None:
            details["expected"] = expected
        if actual is not None:
            details["actual"] = actual
        super().__init__(
            "Defect values changed since the request was filed", details=details
        )


# ===================
# 422 Unprocessable Entity Errors
# ===================


class BusinessRuleError(ProdTrackException):
    """Raised when a business rule is violated."""

    error_code = "BUSINESS_RULE_ERROR"
    status_code = 422

    def __init__(
        self,
        message: str = "Business rule violation",
        *,
        rule: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        details = details or {}
        if rule:
            details["rule"] = rule
        super().__init__(message, details=details)


# ===================
# 423 Locked Errors
# ===================


class AlreadyLockedError(ProdTrackException):
    """Raised when a production order is locked by another user."""

    error_code = "ALREADY_LOCKED"
    status_code = 423

    def __init__(
        self,
        *,
        owner_id: Optional[int],
        owner_name: Optional[str],
        locked_at: Optional[datetime],
        details: Optional[Dict[str, Any]] = None,
    ):
        self.owner_id = owner_id
        self.owner_name = owner_name
        self.locked_at = locked_at
        details = details or {}
        details["owner_id"] = owner_id
        details["owner_name"] = owner_name
        details["locked_at"] = locked_at.isoformat() if locked_at else None
        super().__init__(
            f"Production order is locked by {owner_name or 'another user'}",
            details=details,
        )


# ===================
# 500 Internal Server Errors
# ===================


class DatabaseError(ProdTrackException):
    """Raised when a database operation fails."""

    error_code = "DATABASE_ERROR"
    status_code = 500

    def __init__(
        self,
        message: str = "Database operation failed",
        *,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, details=details)
