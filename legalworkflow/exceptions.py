"""
Legal Workflow SDK - Custom exceptions for error handling.
"""

from typing import Any, Optional


class LegalWorkflowError(Exception):
    """Base exception for all Legal Workflow SDK errors."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        response: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.response = response


class GuardViolationError(LegalWorkflowError):
    """Raised when a workflow action is attempted whose precondition does not hold.

    The request is never modified when this is raised.
    """

    def __init__(
        self,
        message: str,
        action: Optional[str] = None,
        status: Optional[str] = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, **kwargs)
        self.action = action
        self.status = status


class ValidationError(LegalWorkflowError):
    """Raised when request validation fails."""

    def __init__(self, message: str, errors: Optional[list[Any]] = None, **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.errors = errors or []


class RemoteStoreError(LegalWorkflowError):
    """Raised when the remote document/item store cannot be reached or fails.

    Always retryable by the caller; ``item_id`` and ``operation`` identify what to retry.
    """

    def __init__(
        self,
        message: str,
        item_id: Optional[int] = None,
        operation: Optional[str] = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, **kwargs)
        self.item_id = item_id
        self.operation = operation


class NotFoundError(LegalWorkflowError):
    """Raised when a requested resource is not found."""

    pass


class ConflictError(LegalWorkflowError):
    """Raised when there's a version conflict during optimistic concurrency control."""

    def __init__(self, message: str, current_version: Optional[int] = None, **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.current_version = current_version


class AuthenticationError(LegalWorkflowError):
    """Raised when authentication fails or API key is invalid."""

    pass


class ConfigurationError(LegalWorkflowError):
    """Raised when a configuration file is missing or holds invalid values."""

    def __init__(self, message: str, path: Optional[str] = None, **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.path = path
