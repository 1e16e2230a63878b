import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from ..core.exceptions import GoneError, NotFoundError
from ..core.shortener import new_record_id
from ..schemas.click import ClickRecord, LocationResult
from ..schemas.link import LinkRecord
from ..utils.device import parse_user_agent

logger = logging.getLogger(__name__)


class PasswordRequired(Exception):
    """The link is password protected and no matching password was given"""

    def __init__(self, short_code: str, attempted: bool):
        super().__init__(short_code)
        self.short_code = short_code
        self.attempted = attempted


@dataclass
class Visit:
    """Request data needed to record a click"""
    ip_address: str
    user_agent: str
    referer: Optional[str]
    session_id: str


def is_link_expired(link: LinkRecord, now: Optional[datetime] = None) -> bool:
    if not link.expires_at:
        return False
    now = now or datetime.now(timezone.utc)
    return link.expires_at < now


def is_password_protected(link: LinkRecord) -> bool:
    return bool(link.password)


def check_link_password(link: LinkRecord, password: Optional[str]) -> bool:
    """Plaintext comparison; passwords are stored unhashed"""
    if not is_password_protected(link):
        return True
    return password is not None and link.password == password


def resolve_link(store, short_code: str, password: Optional[str] = None,
                 now: Optional[datetime] = None) -> LinkRecord:
    """
    Find the link behind a short code and check it may be followed.

    Raises:
        NotFoundError: No link has this code
        GoneError: The link is disabled or expired
        PasswordRequired: The link needs a password that wasn't supplied
    """
    link = store.get_link_by_code(short_code)

    if link is None:
        raise NotFoundError("Link not found")

    if not link.is_active:
        raise GoneError("Link is disabled")

    if is_link_expired(link, now):
        raise GoneError("Link has expired")

    if not check_link_password(link, password):
        raise PasswordRequired(short_code, attempted=password is not None)

    return link


def build_click(link: LinkRecord, visit: Visit, location: LocationResult,
                now: Optional[datetime] = None) -> ClickRecord:
    return ClickRecord(
        id=new_record_id(),
        link_id=link.id,
        short_code=link.short_code,
        timestamp=now or datetime.now(timezone.utc),
        ip_address=visit.ip_address,
        user_agent=visit.user_agent,
        referer=visit.referer,
        location=location.to_location(),
        device=parse_user_agent(visit.user_agent),
        session_id=visit.session_id,
    )


def track_click(store, resolver, link: LinkRecord, visit: Visit) -> Optional[ClickRecord]:
    """
    Record a click for a visit that has already been redirected.

    Runs after the response went out. Failures are logged and dropped, they
    must never reach the visitor.
    """
    try:
        location = resolver.resolve(visit.ip_address)
        click = build_click(link, visit, location)
        store.insert_click(click)
    except Exception:
        logger.exception("Error tracking click for %s", link.short_code)
        return None

    logger.debug("Tracked click %s for %s", click.id, link.short_code)
    return click
