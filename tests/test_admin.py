"""Tests for the administrative override path."""

import pytest

from quorum.moderation.errors import (
    AlreadyResolvedError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from quorum.moderation.models import ReportStatus


def _announcements(engine):
    return engine.contents["post"].list_by_kind("announcement")


def test_non_admin_is_refused_everywhere(engine, agents, post_id):
    report = engine.file_report(agents["alice"], "post", post_id, "spam content here")
    bob = agents["bob"]

    with pytest.raises(PermissionDeniedError):
        engine.admin_delete(bob, "post", post_id, "no")
    with pytest.raises(PermissionDeniedError):
        engine.admin_ban(bob, agents["erin"].id, "no")
    with pytest.raises(PermissionDeniedError):
        engine.admin_unban(bob, agents["erin"].id)
    with pytest.raises(PermissionDeniedError):
        engine.admin_verdict(bob, report.id, "confirmed")

    assert engine.contents["post"].exists(post_id)
    assert engine.get_report(report.id).status is ReportStatus.pending


def test_banned_admin_loses_moderation_rights(engine, agents):
    second_admin, _ = engine.agents.create_agent("ops", is_admin=True)
    engine.admin_ban(agents["admin"], second_admin.id, "compromised key")
    with pytest.raises(PermissionDeniedError):
        engine.admin_ban(engine.agents.get(second_admin.id), agents["erin"].id, "nope")


def test_admin_delete_removes_target_and_closes_reports(engine, agents, post_id):
    r1 = engine.file_report(agents["alice"], "post", post_id, "spam content here")
    r2 = engine.file_report(agents["bob"], "post", post_id, "definitely spam too")

    result = engine.admin_delete(agents["admin"], "post", post_id, "spam")

    assert result.already_deleted is False
    assert result.label.startswith("Buy cheap tokens")
    assert not engine.contents["post"].exists(post_id)
    for rid in (r1.id, r2.id):
        closed = engine.get_report(rid)
        assert closed.status is ReportStatus.confirmed
        assert closed.resolved_by == agents["admin"].id
    texts = [p.content for p in _announcements(engine)]
    assert texts and "Reason: spam" in texts[-1]


def test_admin_delete_is_idempotent(engine, agents, post_id):
    engine.file_report(agents["alice"], "post", post_id, "spam content here")
    engine.admin_delete(agents["admin"], "post", post_id, "spam")
    assert len(_announcements(engine)) == 1

    again = engine.admin_delete(agents["admin"], "post", post_id, "spam")
    assert again.already_deleted is True
    assert again.outcome.failed_steps == []
    assert len(_announcements(engine)) == 1


def test_admin_delete_retry_without_reports(engine, agents):
    skill_id = engine.contents["skill"].create(agents["erin"].id, "token-drainer")

    first = engine.admin_delete(agents["admin"], "skill", skill_id, "malware")
    assert first.already_deleted is False
    assert first.label == "token-drainer"

    again = engine.admin_delete(agents["admin"], "skill", skill_id, "malware")
    assert again.already_deleted is True
    assert len(_announcements(engine)) == 1


def test_admin_delete_unknown_target(engine, agents):
    with pytest.raises(NotFoundError):
        engine.admin_delete(agents["admin"], "knowledge", "never-existed", "cleanup")


def test_admin_delete_invalid_type(engine, agents):
    with pytest.raises(ValidationError):
        engine.admin_delete(agents["admin"], "comment", "x", "cleanup")


def test_admin_delete_agent_also_bans(engine, agents):
    erin = agents["erin"]
    engine.admin_delete(agents["admin"], "agent", erin.id, "spam bot")
    assert engine.agents.get(erin.id) is None
    assert engine.is_banned(erin.id)


def test_ban_twice_upserts_single_record(engine, agents):
    erin = agents["erin"]
    first = engine.admin_ban(agents["admin"], erin.id, "abuse")
    second = engine.admin_ban(agents["admin"], erin.id, "abuse, again")

    assert engine.bans.list_bans() == [second]
    assert second.reason == "abuse, again"
    assert second.banned_at >= first.banned_at
    assert engine.agents.get(erin.id).is_banned

    texts = [p.content for p in _announcements(engine)]
    assert len(texts) == 2
    assert 'Agent "erin" has been banned. Reason: abuse' in texts


def test_ban_unknown_agent(engine, agents):
    with pytest.raises(NotFoundError):
        engine.admin_ban(agents["admin"], "ghost", "abuse")


def test_unban(engine, agents):
    erin = agents["erin"]
    engine.admin_ban(agents["admin"], erin.id, "abuse")
    before = len(_announcements(engine))

    engine.admin_unban(agents["admin"], erin.id)
    assert not engine.is_banned(erin.id)
    assert len(_announcements(engine)) == before

    with pytest.raises(NotFoundError):
        engine.admin_unban(agents["admin"], erin.id)


def test_verdict_confirmed_runs_executor(engine, agents, post_id):
    report = engine.file_report(agents["alice"], "post", post_id, "spam content here")
    sibling = engine.file_report(agents["bob"], "post", post_id, "spam content there")

    closed = engine.admin_verdict(agents["admin"], report.id, "confirmed", "egregious")

    assert closed.status is ReportStatus.confirmed
    assert closed.resolved_by == agents["admin"].id
    assert closed.votes_confirm == 1
    assert not engine.contents["post"].exists(post_id)
    sibling_after = engine.get_report(sibling.id)
    assert sibling_after.status is ReportStatus.confirmed
    assert sibling_after.resolved_at == closed.resolved_at


def test_verdict_dismissed_has_no_side_effects(engine, agents, post_id):
    report = engine.file_report(agents["alice"], "post", post_id, "spam content here")
    sibling = engine.file_report(agents["bob"], "post", post_id, "spam content there")

    closed = engine.admin_verdict(agents["admin"], report.id, "dismissed", "stale")

    assert closed.status is ReportStatus.dismissed
    assert closed.resolved_at is not None
    assert engine.contents["post"].exists(post_id)
    assert engine.get_report(sibling.id).status is ReportStatus.pending
    assert _announcements(engine) == []


def test_verdict_on_terminal_or_missing_report(engine, agents, post_id):
    report = engine.file_report(agents["alice"], "post", post_id, "spam content here")
    engine.admin_verdict(agents["admin"], report.id, "dismissed")

    with pytest.raises(AlreadyResolvedError):
        engine.admin_verdict(agents["admin"], report.id, "confirmed")
    with pytest.raises(NotFoundError):
        engine.admin_verdict(agents["admin"], "missing", "confirmed")
    with pytest.raises(ValidationError):
        engine.admin_verdict(agents["admin"], report.id, "maybe")


def test_admin_actions_are_audited(engine, agents):
    erin = agents["erin"]
    engine.admin_ban(agents["admin"], erin.id, "abuse")
    engine.admin_unban(agents["admin"], erin.id)

    actions = [e.action for e in engine.audit.get_events(actor=agents["admin"].id)]
    assert "agent.banned" in actions
    assert "agent.unbanned" in actions
