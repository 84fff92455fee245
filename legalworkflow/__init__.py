"""
Legal Workflow SDK - Python library for legal and compliance review workflows.

Coordinates a content-review request from submission through legal and
compliance review to closeout, and stages its documents against a remote store.
"""

__version__ = "0.1.0"

from .business_calendar import (
    RushCalculation,
    add_business_days,
    business_days_between,
    calculate_rush,
    expected_turnaround_date,
    is_business_day,
    is_tracking_id_required,
)
from .client import AsyncLegalWorkflowClient
from .config import WorkflowConfig
from .documents import DocumentStagingEngine, DocumentStore, LoadRegistry
from .exceptions import (
    AuthenticationError,
    ConfigurationError,
    ConflictError,
    GuardViolationError,
    LegalWorkflowError,
    NotFoundError,
    RemoteStoreError,
    ValidationError,
)
from .lifecycle import (
    GuardCheck,
    RequestIdGenerator,
    RequestLifecycleEngine,
    available_actions,
    can_assign_attorney,
    can_assign_from_committee,
    can_cancel,
    can_closeout,
    can_hold,
    can_resubmit,
    can_resume,
    can_send_to_committee,
    can_submit,
    can_submit_review,
    is_valid_status_transition,
)
from .models import (
    Approval,
    ApprovalType,
    CommitResult,
    Document,
    DocumentFacts,
    DocumentType,
    DomainEvent,
    EventType,
    FileOperationStatus,
    NoteEntry,
    PendingCounts,
    PendingDelete,
    PendingRename,
    PendingTypeChange,
    PermissionIntent,
    Request,
    RequestStatus,
    ReviewAudience,
    ReviewOutcome,
    ReviewState,
    ReviewStatus,
    ReviewTrack,
    RoleFacts,
    StagedUpload,
    SubmissionItem,
    TransitionResult,
    UploadFile,
    UploadProgress,
    WorkflowAction,
)
from .review import ReviewDecision, aggregate_reviews, has_comments_to_acknowledge
from .validation import InputValidationError

__all__ = [
    "__version__",
    # Calendar
    "is_business_day",
    "add_business_days",
    "business_days_between",
    "expected_turnaround_date",
    "calculate_rush",
    "RushCalculation",
    "is_tracking_id_required",
    # Client / config
    "AsyncLegalWorkflowClient",
    "WorkflowConfig",
    # Documents
    "DocumentStagingEngine",
    "DocumentStore",
    "LoadRegistry",
    # Exceptions
    "LegalWorkflowError",
    "GuardViolationError",
    "ValidationError",
    "InputValidationError",
    "RemoteStoreError",
    "NotFoundError",
    "ConflictError",
    "AuthenticationError",
    "ConfigurationError",
    # Lifecycle
    "RequestLifecycleEngine",
    "RequestIdGenerator",
    "GuardCheck",
    "available_actions",
    "is_valid_status_transition",
    "can_submit",
    "can_assign_attorney",
    "can_send_to_committee",
    "can_assign_from_committee",
    "can_submit_review",
    "can_resubmit",
    "can_closeout",
    "can_hold",
    "can_resume",
    "can_cancel",
    # Review
    "ReviewDecision",
    "aggregate_reviews",
    "has_comments_to_acknowledge",
    # Models
    "Approval",
    "ApprovalType",
    "CommitResult",
    "Document",
    "DocumentFacts",
    "DocumentType",
    "DomainEvent",
    "EventType",
    "FileOperationStatus",
    "NoteEntry",
    "PendingCounts",
    "PendingDelete",
    "PendingRename",
    "PendingTypeChange",
    "PermissionIntent",
    "Request",
    "RequestStatus",
    "ReviewAudience",
    "ReviewOutcome",
    "ReviewState",
    "ReviewStatus",
    "ReviewTrack",
    "RoleFacts",
    "StagedUpload",
    "SubmissionItem",
    "TransitionResult",
    "UploadFile",
    "UploadProgress",
    "WorkflowAction",
]
