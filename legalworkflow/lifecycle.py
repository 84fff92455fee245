"""
Legal Workflow SDK - Request lifecycle state machine.

Every operation takes a request, checks all of its guards, and returns a
:class:`TransitionResult` holding a modified copy together with the domain
event and permission intent the caller should route onward. The input
request is never mutated; a failed guard raises before anything changes.
"""

import copy
import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Callable, Optional

from .business_calendar import (
    business_days_between,
    calculate_rush,
    expected_turnaround_date,
    is_tracking_id_required,
)
from .config import WorkflowConfig
from .exceptions import GuardViolationError
from .models import (
    SUBMITTABLE_REVIEW_STATUSES,
    DocumentFacts,
    DocumentType,
    DomainEvent,
    EventType,
    PermissionIntent,
    Request,
    RequestStatus,
    ReviewAudience,
    ReviewOutcome,
    ReviewStatus,
    ReviewTrack,
    RoleFacts,
    SubmissionItem,
    TransitionResult,
    WorkflowAction,
)
from .review import ReviewDecision, aggregate_request, has_comments_to_acknowledge, new_review_states
from .validation import (
    ValidationError,
    validate_reason,
    validate_required,
    validate_rush_rationale,
    validate_submission,
)

logger = logging.getLogger("legalworkflow.lifecycle")

Clock = Callable[[], datetime]

ACTIVE_STATUSES = (
    RequestStatus.DRAFT,
    RequestStatus.LEGAL_INTAKE,
    RequestStatus.ASSIGN_ATTORNEY,
    RequestStatus.IN_REVIEW,
    RequestStatus.CLOSEOUT,
)

VALID_TRANSITIONS: dict[RequestStatus, frozenset] = {
    RequestStatus.DRAFT: frozenset(
        {RequestStatus.LEGAL_INTAKE, RequestStatus.ON_HOLD, RequestStatus.CANCELLED}
    ),
    RequestStatus.LEGAL_INTAKE: frozenset(
        {
            RequestStatus.IN_REVIEW,
            RequestStatus.ASSIGN_ATTORNEY,
            RequestStatus.ON_HOLD,
            RequestStatus.CANCELLED,
        }
    ),
    RequestStatus.ASSIGN_ATTORNEY: frozenset(
        {RequestStatus.IN_REVIEW, RequestStatus.ON_HOLD, RequestStatus.CANCELLED}
    ),
    RequestStatus.IN_REVIEW: frozenset(
        {
            RequestStatus.CLOSEOUT,
            RequestStatus.COMPLETED,
            RequestStatus.ON_HOLD,
            RequestStatus.CANCELLED,
        }
    ),
    RequestStatus.CLOSEOUT: frozenset(
        {RequestStatus.COMPLETED, RequestStatus.ON_HOLD, RequestStatus.CANCELLED}
    ),
    # Resume returns to whichever active status was snapshotted.
    RequestStatus.ON_HOLD: frozenset(ACTIVE_STATUSES) | {RequestStatus.CANCELLED},
    RequestStatus.COMPLETED: frozenset(),
    RequestStatus.CANCELLED: frozenset(),
}


def is_valid_status_transition(from_status: RequestStatus, to_status: RequestStatus) -> bool:
    """Whether the transition table has an edge from ``from_status`` to ``to_status``."""
    return to_status in VALID_TRANSITIONS.get(from_status, frozenset())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RequestIdGenerator:
    """
    Issues human-readable request IDs of the form ``CRR-26-7``.

    The sequence is kept per ``(prefix, year)``, starts at 1 and resets each
    year. Call :meth:`seed` with the highest sequence already in the store so
    that IDs continue from there.
    """

    def __init__(self, prefix: str = "CRR"):
        self.prefix = prefix
        self._sequences: dict[tuple[str, int], int] = {}

    def seed(self, year: int, last_sequence: int, prefix: Optional[str] = None) -> None:
        key = (prefix or self.prefix, year)
        self._sequences[key] = max(self._sequences.get(key, 0), last_sequence)

    def next_id(self, year: int, prefix: Optional[str] = None) -> str:
        prefix = prefix or self.prefix
        key = (prefix, year)
        sequence = self._sequences.get(key, 0) + 1
        self._sequences[key] = sequence
        return f"{prefix}-{year % 100:02d}-{sequence}"


@dataclass(frozen=True)
class GuardCheck:
    """Result of evaluating a transition guard."""

    allowed: bool
    reason: Optional[str] = None

    def __bool__(self) -> bool:
        return self.allowed

    @classmethod
    def ok(cls) -> "GuardCheck":
        return cls(True)

    @classmethod
    def deny(cls, reason: str) -> "GuardCheck":
        return cls(False, reason)


# ==================== Role and status gates ====================


def _is_participant(roles: RoleFacts) -> bool:
    return any(roles.to_dict().values())


def _is_legal_admin(roles: RoleFacts) -> bool:
    return roles.is_legal_admin or roles.is_admin


def _can_review_track(track: ReviewTrack, roles: RoleFacts) -> bool:
    if track == ReviewTrack.LEGAL:
        return roles.is_attorney or roles.is_legal_admin or roles.is_admin
    return roles.is_compliance_user or roles.is_admin


def _require_status(request: Request, *statuses: RequestStatus) -> GuardCheck:
    if request.status in statuses:
        return GuardCheck.ok()
    allowed = ", ".join(s.value for s in statuses)
    return GuardCheck.deny(f"Request is {request.status.value}; expected {allowed}")


def _attorney_optional(request: Request) -> bool:
    return request.review_audience == ReviewAudience.COMPLIANCE


def _status_and_role(action: WorkflowAction, request: Request, roles: RoleFacts) -> GuardCheck:
    """Status and role gates for ``action``, without the data checks."""
    status = request.status

    if action == WorkflowAction.SUBMIT:
        check = _require_status(request, RequestStatus.DRAFT)
        if check and not (roles.is_submitter or roles.is_admin):
            return GuardCheck.deny("Only the submitter or an admin can submit a request")
        return check

    if action in (WorkflowAction.ASSIGN_ATTORNEY, WorkflowAction.SEND_TO_COMMITTEE):
        check = _require_status(request, RequestStatus.LEGAL_INTAKE)
        if check and not _is_legal_admin(roles):
            return GuardCheck.deny("Only a legal admin or admin can route a request from intake")
        return check

    if action == WorkflowAction.ASSIGN_FROM_COMMITTEE:
        check = _require_status(request, RequestStatus.ASSIGN_ATTORNEY)
        if check and not (roles.is_attorney_assigner or roles.is_admin):
            return GuardCheck.deny("Only an attorney assigner or admin can assign from committee")
        return check

    if action in (WorkflowAction.SUBMIT_LEGAL_REVIEW, WorkflowAction.SUBMIT_COMPLIANCE_REVIEW):
        track = (
            ReviewTrack.LEGAL
            if action == WorkflowAction.SUBMIT_LEGAL_REVIEW
            else ReviewTrack.COMPLIANCE
        )
        check = _require_status(request, RequestStatus.IN_REVIEW)
        if not check:
            return check
        review = request.review_for(track)
        if review is None:
            return GuardCheck.deny(f"Request has no {track.value} review")
        if not _can_review_track(track, roles):
            return GuardCheck.deny(f"User cannot submit the {track.value} review")
        if review.status not in SUBMITTABLE_REVIEW_STATUSES:
            return GuardCheck.deny(f"{track.value} review is {review.status.value}")
        return GuardCheck.ok()

    if action == WorkflowAction.RESUBMIT:
        check = _require_status(request, RequestStatus.IN_REVIEW)
        if check and not (roles.is_submitter or roles.is_admin):
            return GuardCheck.deny("Only the submitter or an admin can resubmit")
        return check

    if action == WorkflowAction.CLOSEOUT:
        check = _require_status(request, RequestStatus.CLOSEOUT)
        if check and not _is_legal_admin(roles):
            return GuardCheck.deny("Only a legal admin or admin can close out a request")
        return check

    if action == WorkflowAction.HOLD:
        if status not in ACTIVE_STATUSES:
            return GuardCheck.deny(f"A {status.value} request cannot be put on hold")
        if not _is_legal_admin(roles):
            return GuardCheck.deny("Only a legal admin or admin can put a request on hold")
        return GuardCheck.ok()

    if action == WorkflowAction.RESUME:
        check = _require_status(request, RequestStatus.ON_HOLD)
        if check and not _is_legal_admin(roles):
            return GuardCheck.deny("Only a legal admin or admin can resume a request")
        return check

    if action == WorkflowAction.CANCEL:
        if status.is_terminal:
            return GuardCheck.deny(f"A {status.value} request cannot be cancelled")
        if _is_legal_admin(roles):
            return GuardCheck.ok()
        if roles.is_submitter and status == RequestStatus.DRAFT:
            return GuardCheck.ok()
        return GuardCheck.deny("User cannot cancel this request")

    return GuardCheck.deny(f"Unknown action {action}")


# ==================== Guard helpers ====================


def can_submit(
    request: Request,
    roles: RoleFacts,
    documents: DocumentFacts,
    today: date,
    submission_item: Optional[SubmissionItem],
    min_rush_rationale_length: int = 10,
) -> GuardCheck:
    check = _status_and_role(WorkflowAction.SUBMIT, request, roles)
    if not check:
        return check

    if submission_item is None or not submission_item.is_active:
        return GuardCheck.deny("An active submission item is required")
    try:
        validate_submission(
            request.title, request.target_return_date, submission_item.turnaround_time_in_days
        )
    except ValidationError as e:
        return GuardCheck.deny(e.message)
    if request.target_return_date <= today:
        return GuardCheck.deny("Target return date must be after today")

    if not any(
        not a.missing_fields() and documents.has(a.document_type) for a in request.approvals
    ):
        return GuardCheck.deny("At least one complete approval with its document is required")
    if not documents.has(DocumentType.REVIEW):
        return GuardCheck.deny("At least one Review document is required")

    rush = calculate_rush(
        request.created_on, request.target_return_date, submission_item.turnaround_time_in_days
    )
    try:
        validate_rush_rationale(request.rush_rationale, rush.is_rush, min_rush_rationale_length)
    except ValidationError as e:
        return GuardCheck.deny(e.message)
    return GuardCheck.ok()


def can_assign_attorney(request: Request, roles: RoleFacts, attorney: Optional[str]) -> GuardCheck:
    check = _status_and_role(WorkflowAction.ASSIGN_ATTORNEY, request, roles)
    if check and not attorney and not _attorney_optional(request):
        return GuardCheck.deny("An attorney must be selected")
    return check


def can_send_to_committee(request: Request, roles: RoleFacts) -> GuardCheck:
    check = _status_and_role(WorkflowAction.SEND_TO_COMMITTEE, request, roles)
    if check and request.attorney:
        return GuardCheck.deny("An attorney is already selected; assign directly instead")
    return check


def can_assign_from_committee(
    request: Request, roles: RoleFacts, attorney: Optional[str]
) -> GuardCheck:
    check = _status_and_role(WorkflowAction.ASSIGN_FROM_COMMITTEE, request, roles)
    if check and not attorney:
        return GuardCheck.deny("An attorney must be selected")
    return check


def can_submit_review(request: Request, roles: RoleFacts, track: ReviewTrack) -> GuardCheck:
    action = (
        WorkflowAction.SUBMIT_LEGAL_REVIEW
        if track == ReviewTrack.LEGAL
        else WorkflowAction.SUBMIT_COMPLIANCE_REVIEW
    )
    return _status_and_role(action, request, roles)


def can_resubmit(request: Request, roles: RoleFacts, track: ReviewTrack) -> GuardCheck:
    check = _status_and_role(WorkflowAction.RESUBMIT, request, roles)
    if not check:
        return check
    review = request.review_for(track)
    if review is None or review.status != ReviewStatus.WAITING_ON_SUBMITTER:
        return GuardCheck.deny(f"{track.value} review is not waiting on the submitter")
    return GuardCheck.ok()


def can_closeout(
    request: Request,
    roles: RoleFacts,
    documents: DocumentFacts,
    tracking_id: Optional[str] = None,
    comments_acknowledged: Optional[bool] = None,
) -> GuardCheck:
    """Closeout gate.

    ``tracking_id`` and ``comments_acknowledged`` fall back to the values
    already on the request when not given.
    """
    check = _status_and_role(WorkflowAction.CLOSEOUT, request, roles)
    if not check:
        return check

    tracking_id = tracking_id if tracking_id is not None else request.tracking_id
    acknowledged = (
        comments_acknowledged if comments_acknowledged is not None else request.comments_acknowledged
    )

    if is_tracking_id_required(request.review_audience, request.compliance_review):
        if not tracking_id or not tracking_id.strip():
            return GuardCheck.deny("Tracking ID is required")
    if has_comments_to_acknowledge(request) and not acknowledged:
        return GuardCheck.deny("Reviewer comments must be acknowledged")
    if not documents.has(DocumentType.REVIEW_FINAL):
        return GuardCheck.deny("At least one Review Final document is required")
    return GuardCheck.ok()


def can_hold(request: Request, roles: RoleFacts) -> GuardCheck:
    return _status_and_role(WorkflowAction.HOLD, request, roles)


def can_resume(request: Request, roles: RoleFacts) -> GuardCheck:
    check = _status_and_role(WorkflowAction.RESUME, request, roles)
    if check and request.previous_status is None:
        return GuardCheck.deny("Request has no status to resume to")
    return check


def can_cancel(request: Request, roles: RoleFacts) -> GuardCheck:
    return _status_and_role(WorkflowAction.CANCEL, request, roles)


def available_actions(request: Request, roles: RoleFacts) -> list[WorkflowAction]:
    """
    Actions whose status and role gates currently pass.

    Data checks (documents, tracking ID, attorney selection) are only
    evaluated when the action is attempted.
    """
    actions = []
    for action in WorkflowAction:
        if action == WorkflowAction.RESUBMIT:
            allowed = any(
                can_resubmit(request, roles, r.track) for r in request.reviews
            )
        elif action == WorkflowAction.SEND_TO_COMMITTEE:
            allowed = bool(can_send_to_committee(request, roles))
        elif action == WorkflowAction.RESUME:
            allowed = bool(can_resume(request, roles))
        else:
            allowed = bool(_status_and_role(action, request, roles))
        if allowed:
            actions.append(action)
    return actions


_REVIEW_EVENTS = {
    ReviewTrack.LEGAL: {
        ReviewOutcome.APPROVED: EventType.LEGAL_REVIEW_APPROVED,
        ReviewOutcome.APPROVED_WITH_COMMENTS: EventType.LEGAL_REVIEW_APPROVED,
        ReviewOutcome.RESPOND_TO_COMMENTS_AND_RESUBMIT: EventType.LEGAL_CHANGES_REQUESTED,
        ReviewOutcome.NOT_APPROVED: EventType.LEGAL_REVIEW_NOT_APPROVED,
    },
    ReviewTrack.COMPLIANCE: {
        ReviewOutcome.APPROVED: EventType.COMPLIANCE_REVIEW_APPROVED,
        ReviewOutcome.APPROVED_WITH_COMMENTS: EventType.COMPLIANCE_REVIEW_APPROVED,
        ReviewOutcome.RESPOND_TO_COMMENTS_AND_RESUBMIT: EventType.COMPLIANCE_CHANGES_REQUESTED,
        ReviewOutcome.NOT_APPROVED: EventType.COMPLIANCE_REVIEW_NOT_APPROVED,
    },
}

_RESUBMISSION_EVENTS = {
    ReviewTrack.LEGAL: EventType.RESUBMISSION_RECEIVED_LEGAL,
    ReviewTrack.COMPLIANCE: EventType.RESUBMISSION_RECEIVED_COMPLIANCE,
}


class RequestLifecycleEngine:
    """
    Pure, synchronous state machine over the :class:`Request` aggregate.

    Example:
        ```python
        engine = RequestLifecycleEngine(WorkflowConfig())

        result = engine.submit(
            draft, roles, actor="jane",
            documents=staging.document_facts(),
            submission_item=item,
        )
        await client.save_request(result.request)
        notifier.publish(result.event)
        permissions.apply(result.permission_intent)
        ```
    """

    def __init__(
        self,
        config: Optional[WorkflowConfig] = None,
        id_generator: Optional[RequestIdGenerator] = None,
        clock: Optional[Clock] = None,
    ):
        self.config = config or WorkflowConfig()
        self.id_generator = id_generator or RequestIdGenerator(self.config.request_id_prefix)
        self.clock = clock or _utcnow

    # ==================== Helpers ====================

    @staticmethod
    def _enforce(check: GuardCheck, action: WorkflowAction, request: Request) -> None:
        if not check:
            raise GuardViolationError(
                f"Cannot {action.value.lower()}: {check.reason}",
                action=action.value,
                status=request.status.value,
            )

    def _result(
        self,
        before: Request,
        after: Request,
        event_type: EventType,
        actor: str,
        now: datetime,
        detail: str = "",
        payload: Optional[dict] = None,
    ) -> TransitionResult:
        event = DomainEvent(
            event_type=event_type,
            request_id=after.request_id,
            item_id=after.item_id,
            old_status=before.status,
            new_status=after.status,
            actor=actor,
            timestamp=now,
            detail=detail,
            payload=payload or {},
        )
        intent = None
        if before.status != after.status:
            intent = PermissionIntent(
                request_id=after.request_id,
                item_id=after.item_id,
                new_status=after.status,
                review_audience=after.review_audience,
                assigned_attorney=after.attorney,
            )
            logger.info(
                f"Request {after.request_id} moved {before.status.value} -> "
                f"{after.status.value} by {actor}"
            )
        return TransitionResult(request=after, event=event, permission_intent=intent)

    @staticmethod
    def _complete(request: Request, actor: str, now: datetime) -> None:
        request.status = RequestStatus.COMPLETED
        request.completed_by = actor
        request.completed_on = now
        if request.total_turnaround_days is None:
            started = request.submitted_on or request.created_on
            request.total_turnaround_days = business_days_between(started, now)

    # ==================== Submission ====================

    def submit(
        self,
        request: Request,
        roles: RoleFacts,
        actor: str,
        documents: DocumentFacts,
        submission_item: Optional[SubmissionItem],
    ) -> TransitionResult:
        """Draft to Legal Intake.

        Resolves the turnaround from ``submission_item``, recomputes the
        expected date and rush flag, and assigns a request ID if absent.
        """
        now = self.clock()
        check = can_submit(
            request,
            roles,
            documents,
            now.date(),
            submission_item,
            self.config.min_rush_rationale_length,
        )
        self._enforce(check, WorkflowAction.SUBMIT, request)

        updated = copy.deepcopy(request)
        rush = calculate_rush(
            updated.created_on, updated.target_return_date, submission_item.turnaround_time_in_days
        )
        updated.submission_item_id = submission_item.id
        updated.turnaround_days = submission_item.turnaround_time_in_days
        updated.expected_turnaround_date = expected_turnaround_date(
            updated.created_on, submission_item.turnaround_time_in_days
        )
        updated.is_rush_request = rush.is_rush
        if not updated.request_id:
            updated.request_id = self.id_generator.next_id(now.year)
        updated.submitted_by = actor
        updated.submitted_on = now
        updated.status = RequestStatus.LEGAL_INTAKE

        event_type = EventType.RUSH_REQUEST_ALERT if rush.is_rush else EventType.REQUEST_SUBMITTED
        return self._result(
            request,
            updated,
            event_type,
            actor,
            now,
            payload={
                "is_rush": rush.is_rush,
                "expected_turnaround_date": updated.expected_turnaround_date.isoformat(),
                "business_days_short": rush.business_days_short,
            },
        )

    # ==================== Assignment ====================

    def _assign(
        self,
        request: Request,
        actor: str,
        attorney: Optional[str],
        notes: Optional[str],
        now: datetime,
    ) -> Request:
        updated = copy.deepcopy(request)
        reviews = new_review_states(updated.review_audience)
        updated.legal_review = reviews.get(ReviewTrack.LEGAL)
        updated.compliance_review = reviews.get(ReviewTrack.COMPLIANCE)
        updated.attorney = attorney or None
        if notes:
            updated.assignment_notes = notes
        updated.attorney_assigned_by = actor
        updated.attorney_assigned_on = now
        updated.status = RequestStatus.IN_REVIEW
        return updated

    def assign_attorney(
        self,
        request: Request,
        roles: RoleFacts,
        actor: str,
        attorney: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> TransitionResult:
        """Legal Intake to In Review with a directly selected attorney."""
        self._enforce(
            can_assign_attorney(request, roles, attorney), WorkflowAction.ASSIGN_ATTORNEY, request
        )
        now = self.clock()
        updated = self._assign(request, actor, attorney, notes, now)
        return self._result(
            request, updated, EventType.ATTORNEY_ASSIGNED, actor, now, payload={"attorney": attorney}
        )

    def send_to_committee(
        self,
        request: Request,
        roles: RoleFacts,
        actor: str,
        notes: Optional[str] = None,
    ) -> TransitionResult:
        """Legal Intake to Assign Attorney, for the committee to pick an attorney."""
        self._enforce(
            can_send_to_committee(request, roles), WorkflowAction.SEND_TO_COMMITTEE, request
        )
        now = self.clock()
        updated = copy.deepcopy(request)
        updated.sent_to_committee_by = actor
        updated.sent_to_committee_on = now
        if notes:
            updated.assignment_notes = notes
        updated.status = RequestStatus.ASSIGN_ATTORNEY
        return self._result(
            request, updated, EventType.READY_FOR_ATTORNEY_ASSIGNMENT, actor, now, detail=notes or ""
        )

    def assign_from_committee(
        self,
        request: Request,
        roles: RoleFacts,
        actor: str,
        attorney: str,
        notes: Optional[str] = None,
    ) -> TransitionResult:
        """Assign Attorney to In Review."""
        self._enforce(
            can_assign_from_committee(request, roles, attorney),
            WorkflowAction.ASSIGN_FROM_COMMITTEE,
            request,
        )
        now = self.clock()
        updated = self._assign(request, actor, attorney, notes, now)
        return self._result(
            request, updated, EventType.ATTORNEY_ASSIGNED, actor, now, payload={"attorney": attorney}
        )

    # ==================== Reviews ====================

    def start_review(
        self,
        request: Request,
        roles: RoleFacts,
        actor: str,
        track: ReviewTrack,
    ) -> TransitionResult:
        """Mark a review track In Progress. A progress save: no event, no intent."""
        self._enforce(
            can_submit_review(request, roles, track),
            WorkflowAction.SUBMIT_LEGAL_REVIEW
            if track == ReviewTrack.LEGAL
            else WorkflowAction.SUBMIT_COMPLIANCE_REVIEW,
            request,
        )
        updated = copy.deepcopy(request)
        updated.review_for(track).start(actor, self.clock())
        return TransitionResult(request=updated)

    def submit_review(
        self,
        request: Request,
        roles: RoleFacts,
        actor: str,
        track: ReviewTrack,
        outcome: ReviewOutcome,
        notes: Optional[str] = None,
        is_foreside_review_required: Optional[bool] = None,
        is_retail_use: Optional[bool] = None,
    ) -> TransitionResult:
        """
        Record a review decision and apply the aggregated outcome.

        Moves the request to Closeout when every required track approved, or
        to Completed as soon as any required track is Not Approved.
        """
        action = (
            WorkflowAction.SUBMIT_LEGAL_REVIEW
            if track == ReviewTrack.LEGAL
            else WorkflowAction.SUBMIT_COMPLIANCE_REVIEW
        )
        self._enforce(can_submit_review(request, roles, track), action, request)
        if outcome in (ReviewOutcome.RESPOND_TO_COMMENTS_AND_RESUBMIT, ReviewOutcome.NOT_APPROVED):
            validate_required(notes, "notes")

        now = self.clock()
        updated = copy.deepcopy(request)
        updated.review_for(track).submit(
            outcome,
            notes,
            actor,
            now,
            is_foreside_review_required=is_foreside_review_required,
            is_retail_use=is_retail_use,
        )

        decision = aggregate_request(updated)
        event_type = _REVIEW_EVENTS[track][outcome]
        if decision == ReviewDecision.APPROVE:
            updated.status = RequestStatus.CLOSEOUT
            updated.closeout_ready_on = now
            updated.tracking_id_required = is_tracking_id_required(
                updated.review_audience, updated.compliance_review
            )
            event_type = EventType.READY_FOR_CLOSEOUT
        elif decision == ReviewDecision.REJECT:
            self._complete(updated, actor, now)

        return self._result(
            request,
            updated,
            event_type,
            actor,
            now,
            detail=notes or "",
            payload={"track": track.value, "outcome": outcome.value, "decision": decision.value},
        )

    def submit_legal_review(
        self,
        request: Request,
        roles: RoleFacts,
        actor: str,
        outcome: ReviewOutcome,
        notes: Optional[str] = None,
    ) -> TransitionResult:
        return self.submit_review(request, roles, actor, ReviewTrack.LEGAL, outcome, notes)

    def submit_compliance_review(
        self,
        request: Request,
        roles: RoleFacts,
        actor: str,
        outcome: ReviewOutcome,
        notes: Optional[str] = None,
        is_foreside_review_required: Optional[bool] = None,
        is_retail_use: Optional[bool] = None,
    ) -> TransitionResult:
        return self.submit_review(
            request,
            roles,
            actor,
            ReviewTrack.COMPLIANCE,
            outcome,
            notes,
            is_foreside_review_required=is_foreside_review_required,
            is_retail_use=is_retail_use,
        )

    def resubmit_for_review(
        self,
        request: Request,
        roles: RoleFacts,
        actor: str,
        track: ReviewTrack,
        notes: Optional[str] = None,
    ) -> TransitionResult:
        """Hand a track back to its reviewer after the submitter addressed comments."""
        self._enforce(can_resubmit(request, roles, track), WorkflowAction.RESUBMIT, request)
        now = self.clock()
        updated = copy.deepcopy(request)
        updated.review_for(track).resubmit(notes, actor, now)
        return self._result(
            request,
            updated,
            _RESUBMISSION_EVENTS[track],
            actor,
            now,
            detail=notes or "",
            payload={"track": track.value},
        )

    # ==================== Closeout ====================

    def closeout(
        self,
        request: Request,
        roles: RoleFacts,
        actor: str,
        documents: DocumentFacts,
        tracking_id: Optional[str] = None,
        closeout_notes: Optional[str] = None,
        comments_acknowledged: Optional[bool] = None,
    ) -> TransitionResult:
        """Closeout to Completed."""
        self._enforce(
            can_closeout(request, roles, documents, tracking_id, comments_acknowledged),
            WorkflowAction.CLOSEOUT,
            request,
        )
        now = self.clock()
        updated = copy.deepcopy(request)
        if tracking_id is not None:
            updated.tracking_id = tracking_id.strip() or None
        if closeout_notes is not None:
            updated.closeout_notes = closeout_notes
        if comments_acknowledged is not None:
            updated.comments_acknowledged = comments_acknowledged
        self._complete(updated, actor, now)
        return self._result(
            request,
            updated,
            EventType.REQUEST_COMPLETED,
            actor,
            now,
            detail=closeout_notes or "",
            payload={"total_turnaround_days": updated.total_turnaround_days},
        )

    # ==================== Hold / resume / cancel ====================

    def hold(self, request: Request, roles: RoleFacts, actor: str, reason: str) -> TransitionResult:
        self._enforce(can_hold(request, roles), WorkflowAction.HOLD, request)
        validate_reason(reason)
        now = self.clock()
        updated = copy.deepcopy(request)
        updated.previous_status = updated.status
        updated.status = RequestStatus.ON_HOLD
        updated.on_hold_by = actor
        updated.on_hold_on = now
        updated.on_hold_reason = reason
        return self._result(request, updated, EventType.REQUEST_ON_HOLD, actor, now, detail=reason)

    def resume(self, request: Request, roles: RoleFacts, actor: str) -> TransitionResult:
        self._enforce(can_resume(request, roles), WorkflowAction.RESUME, request)
        now = self.clock()
        updated = copy.deepcopy(request)
        updated.status = updated.previous_status
        updated.previous_status = None
        updated.on_hold_by = None
        updated.on_hold_on = None
        updated.on_hold_reason = None
        updated.resumed_by = actor
        updated.resumed_on = now
        return self._result(request, updated, EventType.REQUEST_RESUMED, actor, now)

    def cancel(self, request: Request, roles: RoleFacts, actor: str, reason: str) -> TransitionResult:
        self._enforce(can_cancel(request, roles), WorkflowAction.CANCEL, request)
        validate_reason(reason)
        now = self.clock()
        updated = copy.deepcopy(request)
        updated.status = RequestStatus.CANCELLED
        updated.previous_status = None
        updated.cancelled_by = actor
        updated.cancelled_on = now
        updated.cancel_reason = reason
        return self._result(request, updated, EventType.REQUEST_CANCELLED, actor, now, detail=reason)

    # ==================== Mentions ====================

    def mention(
        self,
        request: Request,
        roles: RoleFacts,
        actor: str,
        mentioned_users: list[str],
        text: str = "",
    ) -> TransitionResult:
        """Emit a user_mentioned event. The request is not changed."""
        if not _is_participant(roles):
            raise GuardViolationError(
                "Only request participants can mention users",
                action="mention",
                status=request.status.value,
            )
        if not mentioned_users:
            raise ValidationError("At least one user must be mentioned", field="mentioned_users")
        now = self.clock()
        return self._result(
            request,
            copy.deepcopy(request),
            EventType.USER_MENTIONED,
            actor,
            now,
            detail=text,
            payload={"mentioned_users": list(mentioned_users)},
        )
