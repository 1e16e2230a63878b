from .link import LinkCreate, LinkUpdate, LinkRecord
from .click import ClickRecord, DeviceInfo, Location, LocationResult, RefererInfo
from .analytics import AnalyticsOverview, LinkStats

__all__ = [
    "LinkCreate", "LinkUpdate", "LinkRecord",
    "ClickRecord", "DeviceInfo", "Location", "LocationResult", "RefererInfo",
    "AnalyticsOverview", "LinkStats",
]
