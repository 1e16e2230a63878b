import math
from collections import Counter
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from ..schemas.analytics import (
    AnalyticsOverview, LinkStats, LocationStats, RecentActivity, TopLink
)
from ..schemas.click import ClickRecord
from ..schemas.link import LinkRecord
from ..utils.device import parse_referer

TOP_LINKS_LIMIT = 5
RECENT_ACTIVITY_LIMIT = 10
TOP_LOCATIONS_LIMIT = 10
RECENT_CLICKS_LIMIT = 50


def _now(now: Optional[datetime]) -> datetime:
    return now or datetime.now(timezone.utc)


def _utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def format_location(click: ClickRecord) -> Optional[str]:
    """City and country joined by a comma, skipping whichever is unknown"""
    location = click.location
    return ", ".join(filter(None, (location.city, location.country))) or None


def _most_recent(clicks: List[ClickRecord], limit: int) -> List[ClickRecord]:
    return sorted(clicks, key=lambda click: click.timestamp, reverse=True)[:limit]


def build_overview(links: List[LinkRecord], clicks: List[ClickRecord],
                   now: Optional[datetime] = None) -> AnalyticsOverview:
    """Summarize every link and click"""
    now = _utc(_now(now))
    today = now.date()
    week_start = now - timedelta(days=7)
    month_start = now - timedelta(days=30)

    clicks_today = sum(1 for click in clicks if _utc(click.timestamp).date() == today)
    clicks_this_week = sum(1 for click in clicks if click.timestamp >= week_start)
    clicks_this_month = sum(1 for click in clicks if click.timestamp >= month_start)

    # Top performing links
    top_links = sorted(links, key=lambda link: link.total_clicks, reverse=True)[:TOP_LINKS_LIMIT]

    return AnalyticsOverview(
        total_links=len(links),
        total_clicks=len(clicks),
        unique_clicks=len({click.session_id for click in clicks}),
        clicks_today=clicks_today,
        clicks_this_week=clicks_this_week,
        clicks_this_month=clicks_this_month,
        top_performing_links=[
            TopLink(
                id=link.id,
                title=link.title or link.original_url,
                short_code=link.short_code,
                clicks=link.total_clicks,
            )
            for link in top_links
        ],
        recent_activity=[
            RecentActivity(
                link_id=click.link_id,
                short_code=click.short_code,
                timestamp=click.timestamp,
                location=format_location(click),
            )
            for click in _most_recent(clicks, RECENT_ACTIVITY_LIMIT)
        ],
    )


def build_link_stats(link: LinkRecord, clicks: List[ClickRecord],
                     now: Optional[datetime] = None) -> LinkStats:
    """Roll up one link's clicks"""
    now = _utc(_now(now))

    clicks_by_date = Counter()
    clicks_by_country = Counter()
    clicks_by_device = Counter()
    clicks_by_browser = Counter()
    clicks_by_referer = Counter()

    for click in clicks:
        clicks_by_date[_utc(click.timestamp).date().isoformat()] += 1
        if click.location.country:
            clicks_by_country[click.location.country] += 1
        clicks_by_device[click.device.type] += 1
        clicks_by_browser[click.device.browser] += 1
        if click.referer:
            clicks_by_referer[parse_referer(click.referer).domain] += 1
        else:
            clicks_by_referer["Direct"] += 1

    # Percentages are relative to the link's stored counter, not to the
    # grouped sum, so they only add up to 100 while the two agree.
    top_locations = [
        LocationStats(
            country=country,
            clicks=count,
            percentage=count / link.total_clicks * 100 if link.total_clicks else 0.0,
        )
        for country, count in clicks_by_country.most_common(TOP_LOCATIONS_LIMIT)
    ]

    age = now - _utc(link.created_at)
    days_since_creation = max(1, math.ceil(age / timedelta(days=1)))

    return LinkStats(
        link_id=link.id,
        total_clicks=link.total_clicks,
        unique_clicks=len({click.session_id for click in clicks}),
        clicks_by_date=dict(clicks_by_date),
        clicks_by_country=dict(clicks_by_country),
        clicks_by_device=dict(clicks_by_device),
        clicks_by_browser=dict(clicks_by_browser),
        clicks_by_referer=dict(clicks_by_referer),
        average_clicks_per_day=link.total_clicks / days_since_creation,
        top_locations=top_locations,
        recent_clicks=_most_recent(clicks, RECENT_CLICKS_LIMIT),
    )


def get_analytics_overview(store, now: Optional[datetime] = None) -> AnalyticsOverview:
    return build_overview(store.list_links(), store.list_clicks(), now)


def get_link_stats(store, link_id: str, now: Optional[datetime] = None) -> Optional[LinkStats]:
    link = store.get_link_by_id(link_id)
    if link is None:
        return None
    return build_link_stats(link, store.list_clicks_for_link(link_id), now)
