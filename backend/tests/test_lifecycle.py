import pytest

from bannerhub.core.errors import InvalidTransition, NotFound, ValidationError
from bannerhub.models.banner import Banner
from bannerhub.services import lifecycle


def test_new_banner_is_unpublished_draft(make_banner):
    b = make_banner()
    assert b.approval_status == "draft"
    assert b.is_published is False
    assert b.is_active is True
    assert b.created_by == "tester"


def test_publish_sets_approval(db, make_banner):
    b = make_banner()
    published = lifecycle.publish(db, b.id, actor="editor-7")
    assert published.is_published is True
    assert published.approval_status == "approved"
    assert published.approved_by == "editor-7"
    assert published.approved_at is not None


def test_submit_then_publish(db, make_banner):
    b = make_banner()
    assert lifecycle.submit_for_approval(db, b.id, actor="author").approval_status == "pending_approval"
    assert lifecycle.publish(db, b.id, actor="editor").approval_status == "approved"


def test_unpublish_keeps_approval(db, make_banner):
    b = make_banner(published=True)
    out = lifecycle.unpublish(db, b.id, actor="editor")
    assert out.is_published is False
    assert out.approval_status == "approved"


def test_reject_requires_reason(db, make_banner):
    b = make_banner()
    with pytest.raises(ValidationError):
        lifecycle.reject(db, b.id, "   ")


def test_reject_unpublishes_and_records_reason(db, make_banner):
    b = make_banner(published=True)
    out = lifecycle.reject(db, b.id, "Off-brand imagery", actor="editor")
    assert out.approval_status == "rejected"
    assert out.is_published is False
    assert out.rejection_reason == "Off-brand imagery"


def test_rejected_banner_must_be_resubmitted(db, make_banner):
    b = make_banner()
    lifecycle.reject(db, b.id, "Typo in title")
    with pytest.raises(InvalidTransition):
        lifecycle.publish(db, b.id)
    resubmitted = lifecycle.submit_for_approval(db, b.id)
    assert resubmitted.approval_status == "pending_approval"
    assert resubmitted.rejection_reason is None


def test_submit_from_approved_not_allowed(db, make_banner):
    b = make_banner(published=True)
    with pytest.raises(InvalidTransition):
        lifecycle.submit_for_approval(db, b.id)


def test_archived_banner_cannot_be_published(db, make_banner):
    b = make_banner()
    lifecycle.soft_delete(db, b.id)
    with pytest.raises(InvalidTransition):
        lifecycle.publish(db, b.id)


def test_soft_delete_keeps_record_and_counters(db, make_banner):
    b = make_banner(published=True)
    out = lifecycle.soft_delete(db, b.id, actor="editor")
    assert out.is_active is False
    assert out.is_published is False
    db.expire_all()
    assert db.get(Banner, b.id) is not None


def test_permanent_delete_removes_record(db, make_banner):
    bid = make_banner().id
    assert lifecycle.permanent_delete(db, bid) == bid
    assert db.get(Banner, bid) is None
    with pytest.raises(NotFound):
        lifecycle.permanent_delete(db, bid)


def test_missing_banner(db):
    with pytest.raises(NotFound):
        lifecycle.publish(db, 424242)
