"""
Tests for the review sub-machine and outcome aggregation.
"""

from datetime import date, datetime, timezone

import pytest

from legalworkflow.exceptions import GuardViolationError
from legalworkflow.models import (
    Request,
    ReviewAudience,
    ReviewOutcome,
    ReviewState,
    ReviewStatus,
    ReviewTrack,
)
from legalworkflow.review import (
    ReviewDecision,
    aggregate_reviews,
    has_comments_to_acknowledge,
    new_review_states,
)

NOW = datetime(2026, 3, 3, 10, 0, tzinfo=timezone.utc)


def completed(track, outcome):
    review = ReviewState(track=track)
    review.submit(outcome, "notes", "reviewer", NOW)
    return review


class TestReviewState:
    def test_start(self):
        review = ReviewState(track=ReviewTrack.LEGAL)
        review.start("attorney", NOW)
        assert review.status == ReviewStatus.IN_PROGRESS
        assert review.reviewer == "attorney"
        assert review.started_on == NOW

    def test_start_twice_raises(self):
        review = ReviewState(track=ReviewTrack.LEGAL)
        review.start("attorney", NOW)
        with pytest.raises(GuardViolationError):
            review.start("attorney", NOW)

    def test_approve_completes(self):
        review = completed(ReviewTrack.LEGAL, ReviewOutcome.APPROVED)
        assert review.status == ReviewStatus.COMPLETED
        assert review.outcome == ReviewOutcome.APPROVED
        assert review.completed_on == NOW

    def test_respond_to_comments_waits_on_submitter(self):
        review = ReviewState(track=ReviewTrack.LEGAL)
        review.submit(ReviewOutcome.RESPOND_TO_COMMENTS_AND_RESUBMIT, "fix slide 3", "atty", NOW)
        assert review.status == ReviewStatus.WAITING_ON_SUBMITTER
        assert review.outcome == ReviewOutcome.RESPOND_TO_COMMENTS_AND_RESUBMIT
        assert review.completed_on is None

    def test_resubmit_then_submit_again(self):
        review = ReviewState(track=ReviewTrack.LEGAL)
        review.submit(ReviewOutcome.RESPOND_TO_COMMENTS_AND_RESUBMIT, "fix slide 3", "atty", NOW)
        review.resubmit("fixed", "submitter", NOW)
        assert review.status == ReviewStatus.WAITING_ON_REVIEWER
        review.submit(ReviewOutcome.APPROVED, "looks good", "atty", NOW)
        assert review.status == ReviewStatus.COMPLETED

    def test_notes_are_appended(self):
        review = ReviewState(track=ReviewTrack.LEGAL)
        review.submit(ReviewOutcome.RESPOND_TO_COMMENTS_AND_RESUBMIT, "first", "atty", NOW)
        review.resubmit("second", "submitter", NOW)
        review.submit(ReviewOutcome.APPROVED, "third", "atty", NOW)
        assert [n.text for n in review.notes] == ["first", "second", "third"]
        assert [n.kind for n in review.notes] == ["review", "submitter", "review"]

    def test_resubmit_requires_waiting_on_submitter(self):
        review = ReviewState(track=ReviewTrack.LEGAL)
        with pytest.raises(GuardViolationError):
            review.resubmit("notes", "submitter", NOW)
        assert review.status == ReviewStatus.NOT_STARTED
        assert review.notes == []

    def test_submit_after_completion_raises(self):
        review = completed(ReviewTrack.LEGAL, ReviewOutcome.APPROVED)
        with pytest.raises(GuardViolationError):
            review.submit(ReviewOutcome.NOT_APPROVED, "late", "atty", NOW)
        assert review.outcome == ReviewOutcome.APPROVED

    def test_submit_while_waiting_on_submitter_raises(self):
        review = ReviewState(track=ReviewTrack.LEGAL)
        review.submit(ReviewOutcome.RESPOND_TO_COMMENTS_AND_RESUBMIT, "fix", "atty", NOW)
        with pytest.raises(GuardViolationError):
            review.submit(ReviewOutcome.APPROVED, "ok", "atty", NOW)

    def test_compliance_flags_recorded(self):
        review = ReviewState(track=ReviewTrack.COMPLIANCE)
        review.submit(
            ReviewOutcome.APPROVED, None, "cu", NOW,
            is_foreside_review_required=True, is_retail_use=False,
        )
        assert review.is_foreside_review_required
        assert not review.is_retail_use
        assert review.notes == []

    def test_legal_track_ignores_compliance_flags(self):
        review = ReviewState(track=ReviewTrack.LEGAL)
        review.submit(ReviewOutcome.APPROVED, None, "atty", NOW, is_retail_use=True)
        assert not review.is_retail_use


class TestAggregation:
    def test_single_track_pending(self):
        legal = ReviewState(track=ReviewTrack.LEGAL)
        assert aggregate_reviews(ReviewAudience.LEGAL, legal, None) == ReviewDecision.PENDING

    def test_single_track_approve(self):
        legal = completed(ReviewTrack.LEGAL, ReviewOutcome.APPROVED_WITH_COMMENTS)
        assert aggregate_reviews(ReviewAudience.LEGAL, legal, None) == ReviewDecision.APPROVE

    def test_single_track_reject(self):
        compliance = completed(ReviewTrack.COMPLIANCE, ReviewOutcome.NOT_APPROVED)
        assert (
            aggregate_reviews(ReviewAudience.COMPLIANCE, None, compliance)
            == ReviewDecision.REJECT
        )

    def test_both_needs_both_approvals(self):
        legal = completed(ReviewTrack.LEGAL, ReviewOutcome.APPROVED)
        compliance = ReviewState(track=ReviewTrack.COMPLIANCE)
        assert aggregate_reviews(ReviewAudience.BOTH, legal, compliance) == ReviewDecision.PENDING

        compliance = completed(ReviewTrack.COMPLIANCE, ReviewOutcome.APPROVED)
        assert aggregate_reviews(ReviewAudience.BOTH, legal, compliance) == ReviewDecision.APPROVE

    def test_both_rejects_on_either_track(self):
        legal = ReviewState(track=ReviewTrack.LEGAL)
        compliance = completed(ReviewTrack.COMPLIANCE, ReviewOutcome.NOT_APPROVED)
        assert aggregate_reviews(ReviewAudience.BOTH, legal, compliance) == ReviewDecision.REJECT

    def test_reject_wins_over_approval(self):
        legal = completed(ReviewTrack.LEGAL, ReviewOutcome.APPROVED)
        compliance = completed(ReviewTrack.COMPLIANCE, ReviewOutcome.NOT_APPROVED)
        assert aggregate_reviews(ReviewAudience.BOTH, legal, compliance) == ReviewDecision.REJECT

    def test_order_independent(self):
        first = (
            completed(ReviewTrack.LEGAL, ReviewOutcome.APPROVED),
            completed(ReviewTrack.COMPLIANCE, ReviewOutcome.APPROVED_WITH_COMMENTS),
        )
        second = (
            completed(ReviewTrack.LEGAL, ReviewOutcome.APPROVED),
            completed(ReviewTrack.COMPLIANCE, ReviewOutcome.APPROVED_WITH_COMMENTS),
        )
        assert aggregate_reviews(ReviewAudience.BOTH, *first) == aggregate_reviews(
            ReviewAudience.BOTH, *second
        )

    def test_idempotent(self):
        legal = completed(ReviewTrack.LEGAL, ReviewOutcome.APPROVED)
        results = {aggregate_reviews(ReviewAudience.LEGAL, legal, None) for _ in range(3)}
        assert results == {ReviewDecision.APPROVE}

    def test_waiting_on_submitter_is_pending(self):
        legal = ReviewState(track=ReviewTrack.LEGAL)
        legal.submit(ReviewOutcome.RESPOND_TO_COMMENTS_AND_RESUBMIT, "fix", "atty", NOW)
        assert aggregate_reviews(ReviewAudience.LEGAL, legal, None) == ReviewDecision.PENDING


class TestHelpers:
    def test_new_review_states_per_audience(self):
        assert set(new_review_states(ReviewAudience.LEGAL)) == {ReviewTrack.LEGAL}
        assert set(new_review_states(ReviewAudience.COMPLIANCE)) == {ReviewTrack.COMPLIANCE}
        assert set(new_review_states(ReviewAudience.BOTH)) == {
            ReviewTrack.LEGAL,
            ReviewTrack.COMPLIANCE,
        }

    def test_has_comments_to_acknowledge(self):
        request = Request(
            item_id=1,
            title="Fact sheet",
            review_audience=ReviewAudience.BOTH,
            created_on=date(2026, 3, 2),
            legal_review=completed(ReviewTrack.LEGAL, ReviewOutcome.APPROVED),
            compliance_review=completed(
                ReviewTrack.COMPLIANCE, ReviewOutcome.APPROVED_WITH_COMMENTS
            ),
        )
        assert has_comments_to_acknowledge(request)

        request.compliance_review = completed(ReviewTrack.COMPLIANCE, ReviewOutcome.APPROVED)
        assert not has_comments_to_acknowledge(request)
