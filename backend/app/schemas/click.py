from datetime import datetime
from typing import Literal, Optional

from .base import CamelModel

DeviceType = Literal["desktop", "mobile", "tablet", "unknown"]
LocationSource = Literal["ip", "browser", "both"]
SourceType = Literal["direct", "search", "social", "email", "other"]


class Location(CamelModel):
    """Where a click came from"""
    country: Optional[str] = None
    country_code: Optional[str] = None
    region: Optional[str] = None
    city: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    timezone: Optional[str] = None
    isp: Optional[str] = None
    accuracy: Optional[float] = None  # meters, browser geolocation only
    source: LocationSource = "ip"


class LocationResult(Location):
    """Geolocation lookup result; `error` is set when the lookup failed"""
    error: Optional[str] = None

    def to_location(self) -> Location:
        return Location.model_validate(self.model_dump(exclude={"error"}))


class Screen(CamelModel):
    width: int
    height: int


class DeviceInfo(CamelModel):
    type: DeviceType = "unknown"
    browser: str = "Unknown"
    browser_version: str = "Unknown"
    os: str = "Unknown"
    os_version: str = "Unknown"
    screen: Optional[Screen] = None


class RefererInfo(CamelModel):
    domain: str
    source_type: SourceType
    search_engine: Optional[str] = None
    social_platform: Optional[str] = None


class ClickRecord(CamelModel):
    """One tracked, non-bot visit"""
    id: str
    link_id: str
    short_code: str
    timestamp: datetime
    ip_address: str
    user_agent: str
    referer: Optional[str] = None
    location: Location
    device: DeviceInfo
    session_id: str
