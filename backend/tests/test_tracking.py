from datetime import datetime, timedelta, timezone

import pytest

from app.core.exceptions import GoneError, NotFoundError, StorageError
from app.schemas.click import LocationResult
from app.services.tracking import (
    PasswordRequired, Visit, build_click, check_link_password, is_link_expired,
    is_password_protected, resolve_link, track_click
)

CHROME_WINDOWS_UA = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


def make_visit(session_id="session_test"):
    return Visit(
        ip_address="203.0.113.7",
        user_agent=CHROME_WINDOWS_UA,
        referer="https://www.google.com/search?q=x",
        session_id=session_id,
    )


class FailingStore:
    def insert_click(self, click):
        raise StorageError("disk full")


class ExplodingResolver:
    def resolve(self, ip):
        raise RuntimeError("resolver bug")


def test_link_without_expiry_never_expires(make_link):
    assert is_link_expired(make_link()) is False


def test_link_expired_one_second_ago(make_link, past):
    link = make_link(expires_at=past)

    assert is_link_expired(link) is True


def test_link_expiring_in_future(make_link):
    link = make_link(expires_at=datetime.now(timezone.utc) + timedelta(hours=1))

    assert is_link_expired(link) is False


def test_password_protection(make_link):
    assert is_password_protected(make_link(password="secret1"))
    assert not is_password_protected(make_link(password=""))
    assert not is_password_protected(make_link())


def test_password_check_is_plain_equality(make_link):
    link = make_link(password="secret1")

    assert check_link_password(link, "secret1")
    assert not check_link_password(link, "Secret1")
    assert not check_link_password(link, None)


def test_resolve_unknown_code(store):
    with pytest.raises(NotFoundError):
        resolve_link(store, "nope")


def test_resolve_inactive_link_is_gone(store, make_link):
    make_link(short_code="off", is_active=False)

    with pytest.raises(GoneError):
        resolve_link(store, "off")


def test_resolve_expired_link_is_gone(store, make_link, past):
    make_link(short_code="old", expires_at=past)

    with pytest.raises(GoneError):
        resolve_link(store, "old")


def test_resolve_protected_link_without_password(store, make_link):
    make_link(short_code="locked", password="secret1")

    with pytest.raises(PasswordRequired) as exc_info:
        resolve_link(store, "locked")
    assert exc_info.value.attempted is False

    with pytest.raises(PasswordRequired) as exc_info:
        resolve_link(store, "locked", password="wrong")
    assert exc_info.value.attempted is True


def test_resolve_protected_link_with_password(store, make_link):
    link = make_link(short_code="locked", password="secret1")

    assert resolve_link(store, "locked", password="secret1").id == link.id


def test_build_click_classifies_visit(make_link):
    link = make_link()
    location = LocationResult(country="Japan", city="Tokyo", source="ip")

    click = build_click(link, make_visit(), location)

    assert click.link_id == link.id
    assert click.short_code == link.short_code
    assert click.device.browser == "Chrome"
    assert click.location.city == "Tokyo"
    assert click.session_id == "session_test"


def test_track_click_records_and_updates_counters(store, geo, make_link):
    link = make_link()

    click = track_click(store, geo, link, make_visit())

    assert click is not None
    assert geo.calls == ["203.0.113.7"]
    stored = store.get_link_by_id(link.id)
    assert stored.total_clicks == 1
    assert stored.last_click_at == click.timestamp
    [recorded] = store.list_clicks_for_link(link.id)
    assert recorded.location.country == "Germany"


def test_track_click_records_click_without_location(store, make_link, geo):
    geo.location = LocationResult(source="ip", error="timed out")
    link = make_link()

    click = track_click(store, geo, link, make_visit())

    assert click.location.country is None
    assert store.get_link_by_id(link.id).total_clicks == 1


def test_track_click_swallows_store_errors(geo, make_link):
    assert track_click(FailingStore(), geo, make_link(), make_visit()) is None


def test_track_click_swallows_resolver_errors(store, make_link):
    link = make_link()

    assert track_click(store, ExplodingResolver(), link, make_visit()) is None
    assert store.get_link_by_id(link.id).total_clicks == 0
