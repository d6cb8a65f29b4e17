import pytest

from bannerhub.core.errors import PriorityConflict, ValidationError
from bannerhub.models.banner import Banner
from bannerhub.services import banners as banner_service
from bannerhub.services import lifecycle, priority, store


def test_priority_defaults_to_next_free_value(make_banner):
    first = make_banner(title="First")
    second = make_banner(title="Second")
    assert first.priority == 1
    assert second.priority == 2


def test_next_priority_ignores_archived(db, make_banner):
    make_banner(title="Keep")
    gone = make_banner(title="Gone", priority=7)
    lifecycle.soft_delete(db, gone.id, actor="tester")
    assert priority.next_priority(db) == 2


def test_requested_priority_taken_by_active_banner(make_banner):
    make_banner(title="Holder", priority=3)
    with pytest.raises(PriorityConflict) as exc:
        make_banner(title="Challenger", priority=3)
    assert exc.value.message == "Banner with priority 3 already exists"


def test_archived_priority_can_be_reused(db, make_banner):
    old = make_banner(title="Old", priority=4)
    lifecycle.soft_delete(db, old.id, actor="tester")
    new = make_banner(title="New", priority=4)
    assert new.priority == 4


def test_reactivation_checks_priority(db, make_banner):
    old = make_banner(title="Old", priority=5)
    lifecycle.soft_delete(db, old.id, actor="tester")
    make_banner(title="New", priority=5)
    with pytest.raises(PriorityConflict):
        banner_service.update_banner(db, old.id, {"isActive": True}, actor="tester")


def test_update_to_taken_priority(db, make_banner):
    make_banner(title="A", priority=1)
    b = make_banner(title="B", priority=2)
    with pytest.raises(PriorityConflict):
        banner_service.update_banner(db, b.id, {"priority": 1}, actor="tester")
    db.expire_all()
    assert db.get(Banner, b.id).priority == 2


def test_keeping_own_priority_is_not_a_conflict(db, make_banner):
    b = make_banner(title="Solo", priority=2)
    updated = banner_service.update_banner(db, b.id, {"priority": 2, "title": "Solo again"}, actor="tester")
    assert updated.priority == 2


def test_non_positive_priority_rejected(db):
    with pytest.raises(ValidationError):
        priority.assign_or_validate(db, 0)


def test_unique_index_is_the_final_word(db, make_banner):
    # Bypasses the pre-check entirely: the store itself refuses the duplicate.
    make_banner(title="Holder", priority=9)
    db.add(
        Banner(
            external_id="banner_raw_1",
            title="Raw",
            detail="Inserted without the allocator",
            image_url="https://cdn.example.com/raw.png",
            priority=9,
            slug="raw",
            created_by="tester",
        )
    )
    with pytest.raises(PriorityConflict):
        store.commit(db, "insert raw banner", priority=9)
