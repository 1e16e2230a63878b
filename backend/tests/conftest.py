import os

# Must be set before the app reads its settings
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("GEO_ENABLED", "false")

from datetime import datetime, timedelta, timezone

import pytest
from httpx import ASGITransport, AsyncClient

from app.core.shortener import new_record_id, new_session_id
from app.database import build_engine
from app.main import app
from app.schemas.click import ClickRecord, DeviceInfo, Location, LocationResult
from app.schemas.link import LinkRecord
from app.services.store import RecordStore, get_store
from app.utils.geo import get_geo_resolver

CHROME_WINDOWS_UA = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
GOOGLEBOT_UA = "Mozilla/5.0 (compatible; Googlebot/2.1; +http://www.google.com/bot.html)"


class FakeGeoResolver:
    """Resolver that answers from a fixed location and records lookups"""

    def __init__(self, location=None):
        self.location = location or LocationResult(
            country="Germany", country_code="DE", region="Berlin",
            city="Berlin", latitude=52.52, longitude=13.4, source="ip"
        )
        self.calls = []

    def resolve(self, ip):
        self.calls.append(ip)
        return self.location


@pytest.fixture
def store():
    record_store = RecordStore(build_engine("sqlite://"))
    record_store.open()
    yield record_store
    record_store.close()


@pytest.fixture
def geo():
    return FakeGeoResolver()


@pytest.fixture
def make_link(store):
    """Insert a link straight into the store"""

    def _make_link(short_code=None, **fields):
        now = datetime.now(timezone.utc)
        values = {
            "id": new_record_id(),
            "short_code": short_code or new_record_id()[-8:],
            "original_url": "https://example.com",
            "created_at": now,
            "updated_at": now,
        }
        values.update(fields)
        link = LinkRecord(**values)
        store.insert_link(link)
        return link

    return _make_link


def build_click_record(link, timestamp=None, session_id=None, country=None,
                       city=None, referer=None, device_type="desktop", browser="Chrome"):
    return ClickRecord(
        id=new_record_id(),
        link_id=link.id,
        short_code=link.short_code,
        timestamp=timestamp or datetime.now(timezone.utc),
        ip_address="203.0.113.7",
        user_agent=CHROME_WINDOWS_UA,
        referer=referer,
        location=Location(country=country, city=city, source="ip"),
        device=DeviceInfo(type=device_type, browser=browser),
        session_id=session_id or new_session_id(),
    )


@pytest.fixture
def make_click(store):
    """Insert a click for a link through the store"""

    def _make_click(link, **kwargs):
        click = build_click_record(link, **kwargs)
        store.insert_click(click)
        return click

    return _make_click


@pytest.fixture
async def client(store, geo):
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_geo_resolver] = lambda: geo

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def past():
    return datetime.now(timezone.utc) - timedelta(seconds=1)


@pytest.fixture
def click_record():
    """Build click records without storing them"""
    return build_click_record
