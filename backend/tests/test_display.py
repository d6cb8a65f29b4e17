from datetime import timedelta

import pytest

from bannerhub.core.errors import PersistenceError, ValidationError
from bannerhub.core.timeutils import utcnow
from bannerhub.models.banner import Banner
from bannerhub.services import analytics, display, lifecycle


def _window(start=None, end=None):
    return {"displaySettings": {"startDate": start, "endDate": end}}


def test_only_active_published_banners_are_listed(db, make_banner):
    live = make_banner(title="Live", published=True)
    make_banner(title="Draft")
    archived = make_banner(title="Archived", published=True)
    lifecycle.soft_delete(db, archived.id)
    assert [b.id for b in display.get_active(db)] == [live.id]


def test_window_bounds_apply_together(db, make_banner):
    now = utcnow()
    inside = make_banner(title="Inside", published=True, **_window(now - timedelta(days=1), now + timedelta(days=1)))
    make_banner(title="Future", published=True, **_window(now + timedelta(days=1), None))
    make_banner(title="Expired", published=True, **_window(None, now - timedelta(days=1)))
    # started and already ended: must stay hidden even though the start bound alone matches
    make_banner(title="Past window", published=True, **_window(now - timedelta(days=5), now - timedelta(days=2)))
    assert [b.id for b in display.get_active(db, now=now)] == [inside.id]


def test_ordering_by_priority(db, make_banner):
    third = make_banner(title="Third", priority=30, published=True)
    first = make_banner(title="First", priority=10, published=True)
    second = make_banner(title="Second", priority=20, published=True)
    assert [b.id for b in display.get_active(db)] == [first.id, second.id, third.id]


def test_type_device_and_limit_filters(db, make_banner):
    promo = make_banner(title="Promo", bannerType="promotion", published=True)
    make_banner(title="Reward", bannerType="reward", published=True)
    make_banner(title="Desktop only", bannerType="promotion", displaySettings={"showOnMobile": False}, published=True)
    assert len(display.get_active(db, banner_type="promotion")) == 2
    assert [b.id for b in display.get_active(db, banner_type="promotion", device="mobile")] == [promo.id]
    assert len(display.get_active(db, limit=1)) == 1


def test_invalid_filters(db):
    with pytest.raises(ValidationError):
        display.get_active(db, banner_type="popup")
    with pytest.raises(ValidationError):
        display.get_active(db, limit=51)


def test_listing_counts_one_view_per_returned_banner(db, make_banner):
    a = make_banner(title="A", priority=1, published=True)
    b = make_banner(title="B", priority=2, published=True)
    hidden = make_banner(title="Hidden", priority=3)
    data = display.serve_public_listing(db, limit=1)
    assert [item["id"] for item in data] == [a.id]
    assert data[0]["analytics"]["views"] == 0
    db.expire_all()
    assert db.get(Banner, a.id).views == 1
    assert db.get(Banner, a.id).last_viewed is not None
    assert db.get(Banner, b.id).views == 0
    assert db.get(Banner, hidden.id).views == 0


def test_failed_view_increment_does_not_fail_listing(db, make_banner, monkeypatch):
    a = make_banner(title="A", priority=1, published=True)
    b = make_banner(title="B", priority=2, published=True)
    real_increment = analytics.increment_view
    broken_id = a.id

    def flaky(session, banner_id):
        if banner_id == broken_id:
            raise PersistenceError("Failed to track banner view")
        return real_increment(session, banner_id)

    monkeypatch.setattr(analytics, "increment_view", flaky)
    data = display.serve_public_listing(db)
    assert [item["id"] for item in data] == [a.id, b.id]
    db.expire_all()
    assert db.get(Banner, a.id).views == 0
    assert db.get(Banner, b.id).views == 1


def test_public_endpoint(client, make_banner):
    make_banner(title="Shown", published=True)
    r = client.get("/banners/active", params={"limit": 5})
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["success"] is True
    assert [item["title"] for item in body["data"]] == ["Shown"]
    assert client.get("/banners/active", params={"limit": 0}).status_code == 400
