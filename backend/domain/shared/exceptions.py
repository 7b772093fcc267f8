"""
Domain Exceptions.

Custom exceptions for domain-level errors.
Each carries a stable ``code`` that the API layer maps to an HTTP status.
"""

from typing import Any, Dict, List, Optional


class DomainException(Exception):
    """Base exception for all domain errors."""

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.code = code or "DOMAIN_ERROR"
        self.details = details or {}


class UnauthenticatedException(DomainException):
    """Raised when an operation is attempted without a principal."""

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message=message, code="UNAUTHENTICATED")


class PermissionDeniedException(DomainException):
    """Raised when the principal lacks a capability on a module."""

    def __init__(self, permission: str, module: str, message: Optional[str] = None):
        super().__init__(
            message=message or f"Permission denied: '{permission}' required on '{module}'",
            code="PERMISSION_DENIED",
            details={"permission": permission, "module": module}
        )
        self.permission = permission
        self.module = module


class EntityNotFoundException(DomainException):
    """Raised when an entity is absent or already hard-deleted."""

    def __init__(self, entity_type: str, entity_id: Any):
        super().__init__(
            message=f"{entity_type.capitalize()} not found",
            code="ENTITY_NOT_FOUND",
            details={"entity_type": entity_type, "entity_id": str(entity_id)}
        )


class InvalidStateException(DomainException):
    """Raised when an operation is not valid in the entity's current state."""

    def __init__(self, message: str, current_state: Optional[str] = None):
        super().__init__(
            message=message,
            code="INVALID_STATE",
            details={"current_state": current_state} if current_state else {}
        )


class ValidationFailedException(DomainException):
    """Raised when one or more field rules are violated."""

    def __init__(self, errors: List["ValidationError"]):  # noqa: F821
        self.errors = list(errors)
        super().__init__(
            message="Validation failed: " + ", ".join(e.message for e in self.errors),
            code="VALIDATION_ERROR",
            details={"errors": [e.as_dict() for e in self.errors]}
        )


class ConflictException(DomainException):
    """Raised when optimistic locking fails due to concurrent modification."""

    def __init__(self, entity_type: str, entity_id: Any, expected_version: int):
        super().__init__(
            message=f"{entity_type.capitalize()} '{entity_id}' was modified by another user",
            code="CONFLICT",
            details={
                "entity_type": entity_type,
                "entity_id": str(entity_id),
                "expected_version": expected_version
            }
        )


class AuditWriteError(DomainException):
    """Raised when the audit trail cannot be appended; aborts the mutation."""

    def __init__(self, action: str, cause: Exception):
        super().__init__(
            message=f"Failed to record audit entry for '{action}': {cause}",
            code="AUDIT_WRITE_FAILED",
            details={"action": action}
        )
