"""
Legal Workflow SDK - Review tracks and overall outcome aggregation.
"""

from enum import Enum
from typing import Optional

from .models import (
    Request,
    ReviewAudience,
    ReviewOutcome,
    ReviewState,
    ReviewStatus,
    ReviewTrack,
)


class ReviewDecision(str, Enum):
    """Overall result of the review tracks a request's audience requires."""

    APPROVE = "approve"
    REJECT = "reject"
    PENDING = "pending"


def new_review_states(audience: ReviewAudience) -> dict[ReviewTrack, ReviewState]:
    """Fresh Not Started review states for exactly the tracks ``audience`` names."""
    states = {}
    if audience.includes_legal:
        states[ReviewTrack.LEGAL] = ReviewState(track=ReviewTrack.LEGAL)
    if audience.includes_compliance:
        states[ReviewTrack.COMPLIANCE] = ReviewState(track=ReviewTrack.COMPLIANCE)
    return states


def _track_decision(review: Optional[ReviewState]) -> ReviewDecision:
    if review is None or review.status != ReviewStatus.COMPLETED or review.outcome is None:
        return ReviewDecision.PENDING
    if review.outcome == ReviewOutcome.NOT_APPROVED:
        return ReviewDecision.REJECT
    if review.outcome.is_approval:
        return ReviewDecision.APPROVE
    return ReviewDecision.PENDING


def aggregate_reviews(
    audience: ReviewAudience,
    legal: Optional[ReviewState],
    compliance: Optional[ReviewState],
) -> ReviewDecision:
    """Combine the required tracks into one decision.

    A completed Not Approved on any required track rejects the request even
    while the other track is still open. Approval needs every required track
    completed with an approving outcome. The result depends only on the
    current track states, never on the order they were reached.
    """
    decisions = []
    if audience.includes_legal:
        decisions.append(_track_decision(legal))
    if audience.includes_compliance:
        decisions.append(_track_decision(compliance))

    if ReviewDecision.REJECT in decisions:
        return ReviewDecision.REJECT
    if decisions and all(d == ReviewDecision.APPROVE for d in decisions):
        return ReviewDecision.APPROVE
    return ReviewDecision.PENDING


def aggregate_request(request: Request) -> ReviewDecision:
    return aggregate_reviews(request.review_audience, request.legal_review, request.compliance_review)


def has_comments_to_acknowledge(request: Request) -> bool:
    """True when any completed review approved with comments."""
    return any(
        r.is_completed and r.outcome == ReviewOutcome.APPROVED_WITH_COMMENTS
        for r in request.reviews
    )
