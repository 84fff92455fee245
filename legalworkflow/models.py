"""
Legal Workflow SDK - Data models for requests, reviews, events and documents.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Optional

from .exceptions import GuardViolationError


class RequestStatus(str, Enum):
    """Status of a request in its lifecycle."""

    DRAFT = "Draft"
    LEGAL_INTAKE = "Legal Intake"
    ASSIGN_ATTORNEY = "Assign Attorney"
    IN_REVIEW = "In Review"
    CLOSEOUT = "Closeout"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"
    ON_HOLD = "On Hold"

    @property
    def is_terminal(self) -> bool:
        return self in (RequestStatus.COMPLETED, RequestStatus.CANCELLED)


class ReviewAudience(str, Enum):
    """Which review tracks must approve a request."""

    LEGAL = "Legal"
    COMPLIANCE = "Compliance"
    BOTH = "Both"

    @property
    def includes_legal(self) -> bool:
        return self in (ReviewAudience.LEGAL, ReviewAudience.BOTH)

    @property
    def includes_compliance(self) -> bool:
        return self in (ReviewAudience.COMPLIANCE, ReviewAudience.BOTH)


class ReviewTrack(str, Enum):
    """An independent review track."""

    LEGAL = "legal"
    COMPLIANCE = "compliance"


class ReviewStatus(str, Enum):
    """Status of a single review track."""

    NOT_STARTED = "Not Started"
    IN_PROGRESS = "In Progress"
    WAITING_ON_SUBMITTER = "Waiting On Submitter"
    WAITING_ON_REVIEWER = "Waiting On Reviewer"
    COMPLETED = "Completed"


SUBMITTABLE_REVIEW_STATUSES = (
    ReviewStatus.NOT_STARTED,
    ReviewStatus.IN_PROGRESS,
    ReviewStatus.WAITING_ON_REVIEWER,
)


class ReviewOutcome(str, Enum):
    """Decision recorded by a reviewer."""

    APPROVED = "Approved"
    APPROVED_WITH_COMMENTS = "Approved With Comments"
    RESPOND_TO_COMMENTS_AND_RESUBMIT = "Respond To Comments And Resubmit"
    NOT_APPROVED = "Not Approved"

    @property
    def is_approval(self) -> bool:
        return self in (ReviewOutcome.APPROVED, ReviewOutcome.APPROVED_WITH_COMMENTS)


class ApprovalType(str, Enum):
    """Kinds of pre-submission approval a request can carry."""

    COMMUNICATIONS = "Communications"
    PORTFOLIO_MANAGER = "Portfolio Manager"
    RESEARCH_ANALYST = "Research Analyst"
    SUBJECT_MATTER_EXPERT = "Subject Matter Expert"
    PERFORMANCE = "Performance"
    OTHER = "Other"

    @property
    def document_type(self) -> "DocumentType":
        return APPROVAL_DOCUMENT_TYPES[self]


class DocumentType(str, Enum):
    """Category a stored document is filed under."""

    REVIEW = "Review"
    SUPPLEMENTAL = "Supplemental"
    REVIEW_FINAL = "Review Final"
    COMMUNICATION_APPROVAL = "Communication Approval"
    PORTFOLIO_MANAGER_APPROVAL = "Portfolio Manager Approval"
    RESEARCH_ANALYST_APPROVAL = "Research Analyst Approval"
    SUBJECT_MATTER_EXPERT_APPROVAL = "Subject Matter Expert Approval"
    PERFORMANCE_APPROVAL = "Performance Approval"
    OTHER_APPROVAL = "Other Approval"


APPROVAL_DOCUMENT_TYPES = {
    ApprovalType.COMMUNICATIONS: DocumentType.COMMUNICATION_APPROVAL,
    ApprovalType.PORTFOLIO_MANAGER: DocumentType.PORTFOLIO_MANAGER_APPROVAL,
    ApprovalType.RESEARCH_ANALYST: DocumentType.RESEARCH_ANALYST_APPROVAL,
    ApprovalType.SUBJECT_MATTER_EXPERT: DocumentType.SUBJECT_MATTER_EXPERT_APPROVAL,
    ApprovalType.PERFORMANCE: DocumentType.PERFORMANCE_APPROVAL,
    ApprovalType.OTHER: DocumentType.OTHER_APPROVAL,
}


class FileOperationStatus(str, Enum):
    """Progress of a single staged file operation."""

    PENDING = "pending"
    UPLOADING = "uploading"
    SUCCESS = "success"
    ERROR = "error"
    SKIPPED = "skipped"


class EventType(str, Enum):
    """Kinds of domain event returned by the lifecycle engine."""

    # Submission
    REQUEST_SUBMITTED = "request_submitted"
    RUSH_REQUEST_ALERT = "rush_request_alert"

    # Assignment
    READY_FOR_ATTORNEY_ASSIGNMENT = "ready_for_attorney_assignment"
    ATTORNEY_ASSIGNED = "attorney_assigned"

    # Legal review
    LEGAL_REVIEW_APPROVED = "legal_review_approved"
    LEGAL_CHANGES_REQUESTED = "legal_changes_requested"
    LEGAL_REVIEW_NOT_APPROVED = "legal_review_not_approved"
    RESUBMISSION_RECEIVED_LEGAL = "resubmission_received_legal"

    # Compliance review
    COMPLIANCE_REVIEW_APPROVED = "compliance_review_approved"
    COMPLIANCE_CHANGES_REQUESTED = "compliance_changes_requested"
    COMPLIANCE_REVIEW_NOT_APPROVED = "compliance_review_not_approved"
    RESUBMISSION_RECEIVED_COMPLIANCE = "resubmission_received_compliance"

    # Hold / resume / cancel
    REQUEST_ON_HOLD = "request_on_hold"
    REQUEST_RESUMED = "request_resumed"
    REQUEST_CANCELLED = "request_cancelled"

    # Closeout
    READY_FOR_CLOSEOUT = "ready_for_closeout"
    REQUEST_COMPLETED = "request_completed"

    # General
    USER_MENTIONED = "user_mentioned"


class WorkflowAction(str, Enum):
    """Actions a caller can take on a request."""

    SUBMIT = "Submit"
    ASSIGN_ATTORNEY = "Assign Attorney"
    SEND_TO_COMMITTEE = "Send To Committee"
    ASSIGN_FROM_COMMITTEE = "Assign From Committee"
    SUBMIT_LEGAL_REVIEW = "Submit Legal Review"
    SUBMIT_COMPLIANCE_REVIEW = "Submit Compliance Review"
    RESUBMIT = "Resubmit"
    CLOSEOUT = "Closeout"
    HOLD = "Hold"
    RESUME = "Resume"
    CANCEL = "Cancel"


def _parse_datetime(value: Any) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(value)


def _parse_date(value: Any) -> Optional[date]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(value[:10])


def _iso(value: Optional[date]) -> Optional[str]:
    return value.isoformat() if value else None


@dataclass
class RoleFacts:
    """
    Role facts about the acting user, computed by the caller.
    The engine only consults them; it never derives them.
    """

    is_submitter: bool = False
    is_legal_admin: bool = False
    is_attorney_assigner: bool = False
    is_attorney: bool = False
    is_compliance_user: bool = False
    is_admin: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "is_submitter": self.is_submitter,
            "is_legal_admin": self.is_legal_admin,
            "is_attorney_assigner": self.is_attorney_assigner,
            "is_attorney": self.is_attorney,
            "is_compliance_user": self.is_compliance_user,
            "is_admin": self.is_admin,
        }


@dataclass(frozen=True)
class SubmissionItem:
    """
    Reference data describing a kind of submission and its SLA.
    Requests copy the turnaround value at submission time.
    """

    id: int
    title: str
    turnaround_time_in_days: int
    is_active: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "turnaround_time_in_days": self.turnaround_time_in_days,
            "is_active": self.is_active,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SubmissionItem":
        return cls(
            id=data["id"],
            title=data.get("title", ""),
            turnaround_time_in_days=data.get(
                "turnaround_time_in_days", data.get("turnAroundTimeInDays", 1)
            ),
            is_active=data.get("is_active", data.get("isActive", True)),
        )


@dataclass
class Approval:
    """A pre-submission approval obtained by the submitter."""

    type: ApprovalType
    approver: Optional[str] = None
    approval_date: Optional[date] = None
    approval_title: Optional[str] = None
    notes: Optional[str] = None

    @property
    def document_type(self) -> DocumentType:
        return self.type.document_type

    def missing_fields(self) -> list[str]:
        """Names of the fields still required, excluding the attached document."""
        missing = []
        if not self.approver:
            missing.append("approver")
        if self.approval_date is None:
            missing.append("approval_date")
        if self.type == ApprovalType.OTHER and not (self.approval_title or "").strip():
            missing.append("approval_title")
        return missing

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type.value,
            "approver": self.approver,
            "approval_date": _iso(self.approval_date),
            "approval_title": self.approval_title,
            "notes": self.notes,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Approval":
        return cls(
            type=ApprovalType(data["type"]),
            approver=data.get("approver"),
            approval_date=_parse_date(data.get("approval_date")),
            approval_title=data.get("approval_title"),
            notes=data.get("notes"),
        )


@dataclass
class NoteEntry:
    """One entry of a review's append-only note log."""

    author: str
    text: str
    created_at: datetime
    kind: str = "review"

    def to_dict(self) -> dict[str, Any]:
        return {
            "author": self.author,
            "text": self.text,
            "created_at": self.created_at.isoformat(),
            "kind": self.kind,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "NoteEntry":
        return cls(
            author=data.get("author", ""),
            text=data.get("text", ""),
            created_at=_parse_datetime(data["created_at"]),
            kind=data.get("kind", "review"),
        )


@dataclass
class ReviewState:
    """
    State of one review track (legal or compliance).

    ``start``, ``submit`` and ``resubmit`` mutate in place and raise
    :class:`GuardViolationError` without changing anything when the move is illegal.
    Outcome aggregation across tracks lives in :mod:`legalworkflow.review`.
    """

    track: ReviewTrack
    status: ReviewStatus = ReviewStatus.NOT_STARTED
    outcome: Optional[ReviewOutcome] = None
    notes: list[NoteEntry] = field(default_factory=list)
    reviewer: Optional[str] = None
    started_on: Optional[datetime] = None
    status_updated_on: Optional[datetime] = None
    completed_on: Optional[datetime] = None
    is_foreside_review_required: bool = False
    is_retail_use: bool = False

    @property
    def is_completed(self) -> bool:
        return self.status == ReviewStatus.COMPLETED

    @property
    def latest_note(self) -> Optional[NoteEntry]:
        return self.notes[-1] if self.notes else None

    def _append_note(self, author: Optional[str], text: Optional[str], now: datetime, kind: str) -> None:
        if text and text.strip():
            self.notes.append(NoteEntry(author=author or "", text=text, created_at=now, kind=kind))

    def start(self, reviewer: str, now: datetime) -> None:
        """Move from Not Started to In Progress."""
        if self.status != ReviewStatus.NOT_STARTED:
            raise GuardViolationError(
                f"{self.track.value} review cannot be started from {self.status.value}",
                action="start_review",
                status=self.status.value,
            )
        self.status = ReviewStatus.IN_PROGRESS
        self.reviewer = reviewer
        self.started_on = now
        self.status_updated_on = now

    def submit(
        self,
        outcome: ReviewOutcome,
        notes: Optional[str],
        reviewer: str,
        now: datetime,
        is_foreside_review_required: Optional[bool] = None,
        is_retail_use: Optional[bool] = None,
    ) -> None:
        """Record a reviewer decision.

        Respond To Comments And Resubmit hands the review back to the submitter;
        every other outcome completes the track.
        """
        if self.status not in SUBMITTABLE_REVIEW_STATUSES:
            raise GuardViolationError(
                f"{self.track.value} review cannot be submitted from {self.status.value}",
                action="submit_review",
                status=self.status.value,
            )

        if self.started_on is None:
            self.started_on = now
        self.reviewer = reviewer
        self.outcome = outcome
        self._append_note(reviewer, notes, now, "review")

        if self.track == ReviewTrack.COMPLIANCE:
            if is_foreside_review_required is not None:
                self.is_foreside_review_required = is_foreside_review_required
            if is_retail_use is not None:
                self.is_retail_use = is_retail_use

        if outcome == ReviewOutcome.RESPOND_TO_COMMENTS_AND_RESUBMIT:
            self.status = ReviewStatus.WAITING_ON_SUBMITTER
        else:
            self.status = ReviewStatus.COMPLETED
            self.completed_on = now
        self.status_updated_on = now

    def resubmit(self, notes: Optional[str], author: str, now: datetime) -> None:
        """Return the review to the reviewer after the submitter addressed comments."""
        if self.status != ReviewStatus.WAITING_ON_SUBMITTER:
            raise GuardViolationError(
                f"{self.track.value} review is not waiting on the submitter",
                action="resubmit",
                status=self.status.value,
            )
        self._append_note(author, notes, now, "submitter")
        self.status = ReviewStatus.WAITING_ON_REVIEWER
        self.status_updated_on = now

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "track": self.track.value,
            "status": self.status.value,
            "outcome": self.outcome.value if self.outcome else None,
            "notes": [n.to_dict() for n in self.notes],
            "reviewer": self.reviewer,
            "started_on": _iso(self.started_on),
            "status_updated_on": _iso(self.status_updated_on),
            "completed_on": _iso(self.completed_on),
        }
        if self.track == ReviewTrack.COMPLIANCE:
            result["is_foreside_review_required"] = self.is_foreside_review_required
            result["is_retail_use"] = self.is_retail_use
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ReviewState":
        return cls(
            track=ReviewTrack(data["track"]),
            status=ReviewStatus(data.get("status", ReviewStatus.NOT_STARTED.value)),
            outcome=ReviewOutcome(data["outcome"]) if data.get("outcome") else None,
            notes=[NoteEntry.from_dict(n) for n in data.get("notes", [])],
            reviewer=data.get("reviewer"),
            started_on=_parse_datetime(data.get("started_on")),
            status_updated_on=_parse_datetime(data.get("status_updated_on")),
            completed_on=_parse_datetime(data.get("completed_on")),
            is_foreside_review_required=data.get("is_foreside_review_required", False),
            is_retail_use=data.get("is_retail_use", False),
        )


@dataclass
class Request:
    """
    Aggregate root: one content-review request requiring legal/compliance sign-off.

    ``version`` is the store's optimistic-concurrency token; the engine carries it
    through unchanged and the store rejects stale writes.
    """

    item_id: Optional[int]
    title: str
    review_audience: ReviewAudience
    created_on: date
    status: RequestStatus = RequestStatus.DRAFT
    request_id: Optional[str] = None
    version: int = 1
    submission_item_id: Optional[int] = None
    turnaround_days: Optional[int] = None
    target_return_date: Optional[date] = None
    expected_turnaround_date: Optional[date] = None
    is_rush_request: bool = False
    rush_rationale: Optional[str] = None
    approvals: list[Approval] = field(default_factory=list)

    # Reviews
    legal_review: Optional[ReviewState] = None
    compliance_review: Optional[ReviewState] = None
    attorney: Optional[str] = None
    assignment_notes: Optional[str] = None

    # Closeout
    tracking_id: Optional[str] = None
    tracking_id_required: bool = False
    closeout_notes: Optional[str] = None
    comments_acknowledged: bool = False
    total_turnaround_days: Optional[int] = None

    # Audit stamps
    created_by: Optional[str] = None
    submitted_by: Optional[str] = None
    submitted_on: Optional[datetime] = None
    sent_to_committee_by: Optional[str] = None
    sent_to_committee_on: Optional[datetime] = None
    attorney_assigned_by: Optional[str] = None
    attorney_assigned_on: Optional[datetime] = None
    closeout_ready_on: Optional[datetime] = None
    completed_by: Optional[str] = None
    completed_on: Optional[datetime] = None
    cancelled_by: Optional[str] = None
    cancelled_on: Optional[datetime] = None
    cancel_reason: Optional[str] = None
    on_hold_by: Optional[str] = None
    on_hold_on: Optional[datetime] = None
    on_hold_reason: Optional[str] = None
    previous_status: Optional[RequestStatus] = None
    resumed_by: Optional[str] = None
    resumed_on: Optional[datetime] = None

    def review_for(self, track: ReviewTrack) -> Optional[ReviewState]:
        if track == ReviewTrack.LEGAL:
            return self.legal_review
        return self.compliance_review

    @property
    def reviews(self) -> list[ReviewState]:
        return [r for r in (self.legal_review, self.compliance_review) if r is not None]

    def to_dict(self) -> dict[str, Any]:
        return {
            "item_id": self.item_id,
            "request_id": self.request_id,
            "version": self.version,
            "title": self.title,
            "status": self.status.value,
            "review_audience": self.review_audience.value,
            "created_on": _iso(self.created_on),
            "submission_item_id": self.submission_item_id,
            "turnaround_days": self.turnaround_days,
            "target_return_date": _iso(self.target_return_date),
            "expected_turnaround_date": _iso(self.expected_turnaround_date),
            "is_rush_request": self.is_rush_request,
            "rush_rationale": self.rush_rationale,
            "approvals": [a.to_dict() for a in self.approvals],
            "legal_review": self.legal_review.to_dict() if self.legal_review else None,
            "compliance_review": (
                self.compliance_review.to_dict() if self.compliance_review else None
            ),
            "attorney": self.attorney,
            "assignment_notes": self.assignment_notes,
            "tracking_id": self.tracking_id,
            "tracking_id_required": self.tracking_id_required,
            "closeout_notes": self.closeout_notes,
            "comments_acknowledged": self.comments_acknowledged,
            "total_turnaround_days": self.total_turnaround_days,
            "created_by": self.created_by,
            "submitted_by": self.submitted_by,
            "submitted_on": _iso(self.submitted_on),
            "sent_to_committee_by": self.sent_to_committee_by,
            "sent_to_committee_on": _iso(self.sent_to_committee_on),
            "attorney_assigned_by": self.attorney_assigned_by,
            "attorney_assigned_on": _iso(self.attorney_assigned_on),
            "closeout_ready_on": _iso(self.closeout_ready_on),
            "completed_by": self.completed_by,
            "completed_on": _iso(self.completed_on),
            "cancelled_by": self.cancelled_by,
            "cancelled_on": _iso(self.cancelled_on),
            "cancel_reason": self.cancel_reason,
            "on_hold_by": self.on_hold_by,
            "on_hold_on": _iso(self.on_hold_on),
            "on_hold_reason": self.on_hold_reason,
            "previous_status": self.previous_status.value if self.previous_status else None,
            "resumed_by": self.resumed_by,
            "resumed_on": _iso(self.resumed_on),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Request":
        legal = data.get("legal_review")
        compliance = data.get("compliance_review")
        previous = data.get("previous_status")
        return cls(
            item_id=data.get("item_id", data.get("id")),
            request_id=data.get("request_id"),
            version=data.get("version", 1),
            title=data.get("title", ""),
            status=RequestStatus(data.get("status", RequestStatus.DRAFT.value)),
            review_audience=ReviewAudience(data.get("review_audience", "Legal")),
            created_on=_parse_date(data.get("created_on")) or date.today(),
            submission_item_id=data.get("submission_item_id"),
            turnaround_days=data.get("turnaround_days"),
            target_return_date=_parse_date(data.get("target_return_date")),
            expected_turnaround_date=_parse_date(data.get("expected_turnaround_date")),
            is_rush_request=data.get("is_rush_request", False),
            rush_rationale=data.get("rush_rationale"),
            approvals=[Approval.from_dict(a) for a in data.get("approvals", [])],
            legal_review=ReviewState.from_dict(legal) if legal else None,
            compliance_review=ReviewState.from_dict(compliance) if compliance else None,
            attorney=data.get("attorney"),
            assignment_notes=data.get("assignment_notes"),
            tracking_id=data.get("tracking_id"),
            tracking_id_required=data.get("tracking_id_required", False),
            closeout_notes=data.get("closeout_notes"),
            comments_acknowledged=data.get("comments_acknowledged", False),
            total_turnaround_days=data.get("total_turnaround_days"),
            created_by=data.get("created_by"),
            submitted_by=data.get("submitted_by"),
            submitted_on=_parse_datetime(data.get("submitted_on")),
            sent_to_committee_by=data.get("sent_to_committee_by"),
            sent_to_committee_on=_parse_datetime(data.get("sent_to_committee_on")),
            attorney_assigned_by=data.get("attorney_assigned_by"),
            attorney_assigned_on=_parse_datetime(data.get("attorney_assigned_on")),
            closeout_ready_on=_parse_datetime(data.get("closeout_ready_on")),
            completed_by=data.get("completed_by"),
            completed_on=_parse_datetime(data.get("completed_on")),
            cancelled_by=data.get("cancelled_by"),
            cancelled_on=_parse_datetime(data.get("cancelled_on")),
            cancel_reason=data.get("cancel_reason"),
            on_hold_by=data.get("on_hold_by"),
            on_hold_on=_parse_datetime(data.get("on_hold_on")),
            on_hold_reason=data.get("on_hold_reason"),
            previous_status=RequestStatus(previous) if previous else None,
            resumed_by=data.get("resumed_by"),
            resumed_on=_parse_datetime(data.get("resumed_on")),
        )


@dataclass
class DocumentFacts:
    """
    Counts of committed plus staged documents per type.
    Guards consult these instead of the document store itself.
    """

    counts: dict[DocumentType, int] = field(default_factory=dict)

    def count(self, document_type: DocumentType) -> int:
        return self.counts.get(document_type, 0)

    def has(self, document_type: DocumentType) -> bool:
        return self.count(document_type) > 0

    @classmethod
    def of(cls, **counts: int) -> "DocumentFacts":
        """Build facts from keyword counts, e.g. ``DocumentFacts.of(REVIEW=1)``."""
        return cls(counts={DocumentType[name]: n for name, n in counts.items()})


@dataclass
class DomainEvent:
    """
    Event describing one committed transition or review decision.
    The notifier and audit log consume these; the engine never delivers them.
    """

    event_type: EventType
    request_id: Optional[str]
    item_id: Optional[int]
    old_status: RequestStatus
    new_status: RequestStatus
    actor: str
    timestamp: datetime
    detail: str = ""
    payload: dict[str, Any] = field(default_factory=dict)

    @property
    def changed_status(self) -> bool:
        return self.old_status != self.new_status

    def to_dict(self) -> dict[str, Any]:
        return {
            "event_type": self.event_type.value,
            "request_id": self.request_id,
            "item_id": self.item_id,
            "old_status": self.old_status.value,
            "new_status": self.new_status.value,
            "actor": self.actor,
            "timestamp": self.timestamp.isoformat(),
            "detail": self.detail,
            "payload": self.payload,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DomainEvent":
        return cls(
            event_type=EventType(data["event_type"]),
            request_id=data.get("request_id"),
            item_id=data.get("item_id"),
            old_status=RequestStatus(data["old_status"]),
            new_status=RequestStatus(data["new_status"]),
            actor=data.get("actor", ""),
            timestamp=_parse_datetime(data["timestamp"]),
            detail=data.get("detail", ""),
            payload=data.get("payload", {}),
        )


@dataclass
class PermissionIntent:
    """Access change the external permission service should apply after a transition."""

    request_id: Optional[str]
    item_id: Optional[int]
    new_status: RequestStatus
    review_audience: ReviewAudience
    assigned_attorney: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "request_id": self.request_id,
            "item_id": self.item_id,
            "new_status": self.new_status.value,
            "review_audience": self.review_audience.value,
            "assigned_attorney": self.assigned_attorney,
        }


@dataclass
class TransitionResult:
    """What a lifecycle operation commits: the new request plus its event and intent."""

    request: Request
    event: Optional[DomainEvent] = None
    permission_intent: Optional[PermissionIntent] = None

    @property
    def new_status(self) -> RequestStatus:
        return self.request.status


@dataclass
class Document:
    """A document committed to the remote store."""

    unique_id: str
    item_id: int
    name: str
    document_type: DocumentType
    url: str = ""
    size: int = 0
    created_on: Optional[datetime] = None
    created_by: Optional[str] = None
    version: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "unique_id": self.unique_id,
            "item_id": self.item_id,
            "name": self.name,
            "document_type": self.document_type.value,
            "url": self.url,
            "size": self.size,
            "created_on": _iso(self.created_on),
            "created_by": self.created_by,
            "version": self.version,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Document":
        return cls(
            unique_id=data.get("unique_id", data.get("uniqueId", "")),
            item_id=data.get("item_id", data.get("itemId", 0)),
            name=data["name"],
            document_type=DocumentType(data.get("document_type", data.get("documentType", "Review"))),
            url=data.get("url", ""),
            size=data.get("size", 0),
            created_on=_parse_datetime(data.get("created_on")),
            created_by=data.get("created_by"),
            version=data.get("version"),
        )


@dataclass
class UploadFile:
    """File content waiting to be uploaded."""

    name: str
    content: bytes = b""
    content_type: Optional[str] = None

    @property
    def size(self) -> int:
        return len(self.content)


@dataclass
class StagedUpload:
    """A file staged for upload but not yet sent to the store."""

    id: str
    file: UploadFile
    document_type: DocumentType
    item_id: Optional[int] = None


@dataclass
class PendingDelete:
    document: Document
    status: FileOperationStatus = FileOperationStatus.PENDING
    error: Optional[str] = None


@dataclass
class PendingRename:
    document: Document
    new_name: str
    status: FileOperationStatus = FileOperationStatus.PENDING
    error: Optional[str] = None


@dataclass
class PendingTypeChange:
    document: Document
    new_type: DocumentType
    status: FileOperationStatus = FileOperationStatus.PENDING
    error: Optional[str] = None


@dataclass
class UploadProgress:
    """Per-file upload progress reported while committing uploads."""

    staged_id: str
    file_name: str
    status: FileOperationStatus = FileOperationStatus.PENDING
    progress: int = 0
    error: Optional[str] = None
    retry_count: int = 0
    max_retries: int = 2

    @property
    def is_retry_exhausted(self) -> bool:
        return self.status == FileOperationStatus.ERROR and self.retry_count >= self.max_retries

    def to_dict(self) -> dict[str, Any]:
        return {
            "staged_id": self.staged_id,
            "file_name": self.file_name,
            "status": self.status.value,
            "progress": self.progress,
            "error": self.error,
            "retry_count": self.retry_count,
            "max_retries": self.max_retries,
        }


@dataclass
class PendingCounts:
    new_count: int = 0
    modified_count: int = 0
    deleted_count: int = 0


@dataclass
class CommitResult:
    """Outcome of committing one queue of staged operations."""

    succeeded: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failed
