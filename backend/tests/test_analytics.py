from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from functools import partial

import pytest

from bannerhub.core.errors import InvalidArgument, NotFound, ValidationError
from bannerhub.db.session import SessionLocal
from bannerhub.models.banner import Banner
from bannerhub.services import analytics


def _increment_in_own_session(increment, banner_id):
    session = SessionLocal()
    try:
        return increment(session, banner_id)
    finally:
        session.close()


@pytest.mark.parametrize(
    "increment, column",
    [(analytics.increment_view, "views"), (analytics.increment_click, "clicks")],
)
def test_concurrent_increments_are_not_lost(db, make_banner, increment, column):
    bid = make_banner(published=True).id
    with ThreadPoolExecutor(max_workers=5) as pool:
        results = list(pool.map(partial(_increment_in_own_session, increment), [bid] * 10))
    assert sorted(results) == list(range(1, 11))
    db.expire_all()
    assert getattr(db.get(Banner, bid), column) == 10


def test_increment_returns_new_value(db, make_banner):
    bid = make_banner().id
    assert analytics.increment_view(db, bid) == 1
    assert analytics.increment_view(db, bid) == 2
    assert analytics.increment_conversion(db, bid) == 1


def test_increment_unknown_or_malformed_id(db):
    with pytest.raises(NotFound):
        analytics.increment_click(db, 987654)
    with pytest.raises(InvalidArgument):
        analytics.increment_click(db, "not-an-id")


def test_rates():
    assert analytics.ctr(0, 0) == 0
    assert analytics.ctr(0, 5) == 0
    assert analytics.ctr(3, 1) == 33.33
    assert analytics.conversion_rate(0, 5) == 0
    assert analytics.conversion_rate(8, 2) == 25.0


def test_get_analytics_report(db, make_banner):
    b = make_banner(title="Tracked")
    for _ in range(4):
        analytics.increment_view(db, b.id)
    analytics.increment_click(db, b.id)
    report = analytics.get_analytics(db, b.id)
    assert report["bannerTitle"] == "Tracked"
    assert report["totalViews"] == 4
    assert report["totalClicks"] == 1
    assert report["clickThroughRate"] == 25.0
    assert report["conversionRate"] == 0
    assert report["lastViewed"] is not None


def test_clicks_without_views_give_zero_ctr(db, make_banner):
    bid = make_banner().id
    analytics.increment_click(db, bid)
    analytics.increment_click(db, bid)
    report = analytics.get_analytics(db, bid)
    assert report["totalViews"] == 0
    assert report["totalClicks"] == 2
    assert report["clickThroughRate"] == 0


def test_get_analytics_rejects_inverted_period(db, make_banner):
    bid = make_banner().id
    with pytest.raises(ValidationError):
        analytics.get_analytics(db, bid, start_date=datetime(2026, 5, 2), end_date=datetime(2026, 5, 1))


def test_tracking_endpoints(client, make_banner):
    bid = make_banner().id
    r = client.post(f"/banners/{bid}/click")
    assert r.status_code == 200, r.text
    assert r.json()["data"] == {"clicks": 1}
    r = client.post(f"/banners/{bid}/conversion")
    assert r.json()["data"] == {"conversions": 1}
    r = client.get(f"/banners/{bid}/analytics", params={"startDate": "2026-01-01T00:00:00Z"})
    assert r.status_code == 200
    data = r.json()["data"]
    assert data["totalClicks"] == 1
    assert data["period"]["startDate"].startswith("2026-01-01")
    assert client.post("/banners/0/click").status_code == 400
    assert client.post("/banners/999999/click").status_code == 404
