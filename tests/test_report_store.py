"""Tests for filing, reading and listing reports."""

import pytest

from quorum.moderation.errors import DuplicateError, NotFoundError, PermissionDeniedError, ValidationError
from quorum.moderation.models import ReportStatus, TargetType, VoteChoice


def test_file_report_starts_pending_with_seed_vote(engine, agents, post_id):
    report = engine.file_report(agents["alice"], "post", post_id, "spam content here")

    assert report.status is ReportStatus.pending
    assert report.target_type is TargetType.post
    assert report.votes_confirm == 1
    assert report.votes_dismiss == 0
    assert report.resolved_at is None
    assert report.resolved_by is None

    votes = engine.get_votes(report.id)
    assert len(votes) == 1
    assert votes[0].voter_id == agents["alice"].id
    assert votes[0].vote is VoteChoice.confirm


def test_short_reason_is_rejected(engine, agents, post_id):
    with pytest.raises(ValidationError):
        engine.file_report(agents["alice"], "post", post_id, "bad")
    assert engine.list_reports() == []


def test_unknown_target_type_is_rejected(engine, agents):
    with pytest.raises(ValidationError, match="target_type"):
        engine.file_report(agents["alice"], "comment", "abc", "this is clearly spam")


def test_missing_target_id_is_rejected(engine, agents):
    with pytest.raises(ValidationError, match="target_id"):
        engine.file_report(agents["alice"], "post", "  ", "this is clearly spam")


def test_one_open_report_per_reporter_and_target(engine, agents, post_id):
    engine.file_report(agents["alice"], "post", post_id, "spam content here")
    with pytest.raises(DuplicateError):
        engine.file_report(agents["alice"], "post", post_id, "still spam, reporting again")

    # A different reporter may still report the same target.
    other = engine.file_report(agents["bob"], "post", post_id, "agree, this is spam")
    assert other.status is ReportStatus.pending


def test_reporter_may_report_again_after_resolution(engine, agents, post_id):
    first = engine.file_report(agents["alice"], "post", post_id, "spam content here")
    engine.admin_verdict(agents["admin"], first.id, "dismissed")

    second = engine.file_report(agents["alice"], "post", post_id, "it is back and still spam")
    assert second.id != first.id
    assert second.status is ReportStatus.pending


def test_banned_participant_cannot_report(engine, agents, post_id):
    engine.admin_ban(agents["admin"], agents["alice"].id, "abuse")
    alice = engine.agents.get(agents["alice"].id)
    assert alice.is_banned

    with pytest.raises(PermissionDeniedError):
        engine.file_report(alice, "post", post_id, "spam content here")


def test_get_report_not_found(engine):
    with pytest.raises(NotFoundError):
        engine.get_report("no-such-report")


def test_list_orders_by_confirm_votes_then_newest(engine, agents):
    posts = engine.contents["post"]
    p1 = posts.create(None, "first post")
    p2 = posts.create(None, "second post")
    p3 = posts.create(None, "third post")

    r1 = engine.file_report(agents["alice"], "post", p1, "reason number one")
    r2 = engine.file_report(agents["alice"], "post", p2, "reason number two")
    r3 = engine.file_report(agents["alice"], "post", p3, "reason number three")
    engine.cast_vote(agents["bob"], r2.id, "confirm")

    listed = engine.list_reports()
    assert [r.id for r in listed] == [r2.id, r3.id, r1.id]
    assert listed[0].votes_confirm == 2
    assert listed[0].reporter_name == "alice"
    assert listed[0].target_preview == "second post"


def test_list_filters_by_status_and_clamps_limit(engine, agents):
    posts = engine.contents["post"]
    ids = [posts.create(None, f"post {i}") for i in range(3)]
    reports = [engine.file_report(agents["alice"], "post", pid, "this is a long enough reason") for pid in ids]
    engine.admin_verdict(agents["admin"], reports[0].id, "dismissed")

    assert len(engine.list_reports(limit=1)) == 1
    assert len(engine.list_reports(limit=0)) == 1
    assert len(engine.list_reports(limit=500)) == 2
    dismissed = engine.list_reports(status="dismissed")
    assert [r.id for r in dismissed] == [reports[0].id]

    with pytest.raises(ValidationError):
        engine.list_reports(status="archived")


def test_preview_is_none_once_target_is_gone(engine, agents, post_id):
    engine.file_report(agents["alice"], "post", post_id, "spam content here")
    engine.contents["post"].delete(post_id)

    listed = engine.list_reports()
    assert listed[0].target_preview is None


def test_filing_is_audited(engine, agents, post_id):
    report = engine.file_report(agents["alice"], "post", post_id, "spam content here")
    events = engine.audit.get_events(action="report.filed")
    assert [e.resource_id for e in events] == [report.id]
    assert events[0].actor == agents["alice"].id
