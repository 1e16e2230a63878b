from datetime import datetime
from typing import Dict, List, Optional

from .base import CamelModel
from .click import ClickRecord


class TopLink(CamelModel):
    """Entry of the top performing links table"""
    id: str
    title: str
    short_code: str
    clicks: int


class RecentActivity(CamelModel):
    """One recent click in the overview feed"""
    link_id: str
    short_code: str
    clicks: int = 1
    timestamp: datetime
    location: Optional[str] = None


class AnalyticsOverview(CamelModel):
    """Global counts across all links"""
    total_links: int
    total_clicks: int
    unique_clicks: int
    clicks_today: int
    clicks_this_week: int
    clicks_this_month: int
    top_performing_links: List[TopLink]
    recent_activity: List[RecentActivity]


class LocationStats(CamelModel):
    """Country-level statistics"""
    country: str
    clicks: int
    percentage: float


class LinkStats(CamelModel):
    """Complete analytics for a link"""
    link_id: str
    total_clicks: int
    unique_clicks: int
    clicks_by_date: Dict[str, int]
    clicks_by_country: Dict[str, int]
    clicks_by_device: Dict[str, int]
    clicks_by_browser: Dict[str, int]
    clicks_by_referer: Dict[str, int]
    average_clicks_per_day: float
    top_locations: List[LocationStats]
    recent_clicks: List[ClickRecord]
