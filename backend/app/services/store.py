import logging
import threading
from contextlib import contextmanager
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from ..core.exceptions import ConflictError, NotFoundError, StorageError
from ..database import Base, engine, utcnow
from ..models import Click, Link
from ..schemas.click import ClickRecord, DeviceInfo, Location, Screen
from ..schemas.link import LinkRecord, LinkUpdate

logger = logging.getLogger(__name__)


def _link_to_record(link: Link) -> LinkRecord:
    return LinkRecord.model_validate(link)


def _click_to_record(click: Click) -> ClickRecord:
    screen = None
    if click.screen_width is not None and click.screen_height is not None:
        screen = Screen(width=click.screen_width, height=click.screen_height)

    return ClickRecord(
        id=click.id,
        link_id=click.link_id,
        short_code=click.short_code,
        timestamp=click.timestamp,
        ip_address=click.ip_address or "",
        user_agent=click.user_agent or "",
        referer=click.referer,
        session_id=click.session_id,
        location=Location(
            country=click.country,
            country_code=click.country_code,
            region=click.region,
            city=click.city,
            latitude=click.latitude,
            longitude=click.longitude,
            timezone=click.timezone,
            isp=click.isp,
            accuracy=click.accuracy,
            source=click.location_source,
        ),
        device=DeviceInfo(
            type=click.device_type,
            browser=click.browser,
            browser_version=click.browser_version,
            os=click.os,
            os_version=click.os_version,
            screen=screen,
        ),
    )


def _record_to_click(record: ClickRecord) -> Click:
    location = record.location
    device = record.device
    return Click(
        id=record.id,
        link_id=record.link_id,
        short_code=record.short_code,
        timestamp=record.timestamp,
        ip_address=record.ip_address,
        user_agent=record.user_agent[:512],
        referer=record.referer[:512] if record.referer else None,
        session_id=record.session_id,
        country=location.country,
        country_code=location.country_code,
        region=location.region,
        city=location.city,
        latitude=location.latitude,
        longitude=location.longitude,
        timezone=location.timezone,
        isp=location.isp,
        accuracy=location.accuracy,
        location_source=location.source,
        device_type=device.type,
        browser=device.browser,
        browser_version=device.browser_version,
        os=device.os,
        os_version=device.os_version,
        screen_width=device.screen.width if device.screen else None,
        screen_height=device.screen.height if device.screen else None,
    )


class RecordStore:
    """
    Owns the canonical link and click tables.

    Reads return detached pydantic copies, never live ORM objects. Writes are
    serialized through one in-process lock; nothing here coordinates across
    processes.
    """

    def __init__(self, bind):
        self.engine = bind
        self._session_factory = sessionmaker(
            bind=bind, autocommit=False, autoflush=False, expire_on_commit=False
        )
        self._write_lock = threading.Lock()

    def open(self) -> None:
        """Create tables if they don't exist yet"""
        try:
            Base.metadata.create_all(bind=self.engine)
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to initialize storage: {e}") from e
        logger.info("Record store opened on %s", self.engine.url)

    def close(self) -> None:
        self.engine.dispose()
        logger.info("Record store closed")

    @contextmanager
    def _session(self):
        db = self._session_factory()
        try:
            yield db
        except SQLAlchemyError as e:
            db.rollback()
            raise StorageError(f"Storage operation failed: {e}") from e
        finally:
            db.close()

    # Links

    def list_links(self) -> List[LinkRecord]:
        with self._session() as db:
            links = db.query(Link).order_by(Link.created_at, Link.id).all()
            return [_link_to_record(link) for link in links]

    def get_link_by_code(self, code: str) -> Optional[LinkRecord]:
        with self._session() as db:
            link = db.query(Link).filter(Link.short_code == code).first()
            return _link_to_record(link) if link else None

    def get_link_by_id(self, link_id: str) -> Optional[LinkRecord]:
        with self._session() as db:
            link = db.get(Link, link_id)
            return _link_to_record(link) if link else None

    def insert_link(self, record: LinkRecord) -> None:
        with self._write_lock, self._session() as db:
            if db.query(Link.id).filter(Link.short_code == record.short_code).first():
                raise ConflictError("Custom short code already exists")
            db.add(Link(**record.model_dump()))
            try:
                db.commit()
            except IntegrityError as e:
                db.rollback()
                raise ConflictError("Custom short code already exists") from e

    def update_link(self, link_id: str, patch: LinkUpdate) -> bool:
        """
        Merge the fields set on `patch` into the link.

        Returns:
            False if the link doesn't exist
        """
        with self._write_lock, self._session() as db:
            link = db.get(Link, link_id)
            if link is None:
                return False
            for field, value in patch.changes().items():
                setattr(link, field, value)
            link.updated_at = utcnow()
            db.commit()
            return True

    def delete_link(self, link_id: str) -> bool:
        """Delete a link together with all of its clicks"""
        with self._write_lock, self._session() as db:
            link = db.get(Link, link_id)
            if link is None:
                return False
            db.query(Click).filter(Click.link_id == link_id).delete(synchronize_session=False)
            db.delete(link)
            db.commit()
            return True

    # Clicks

    def list_clicks(self) -> List[ClickRecord]:
        with self._session() as db:
            clicks = db.query(Click).order_by(Click.timestamp, Click.id).all()
            return [_click_to_record(click) for click in clicks]

    def list_clicks_for_link(self, link_id: str) -> List[ClickRecord]:
        with self._session() as db:
            clicks = db.query(Click).filter(
                Click.link_id == link_id
            ).order_by(Click.timestamp, Click.id).all()
            return [_click_to_record(click) for click in clicks]

    def insert_click(self, record: ClickRecord) -> None:
        """
        Append a click and refresh the owning link's counters.

        Both happen in one transaction: nobody sees the click without the
        updated counters or the other way round.
        """
        with self._write_lock, self._session() as db:
            link = db.get(Link, record.link_id)
            if link is None:
                raise NotFoundError(f"Link {record.link_id} not found")

            db.add(_record_to_click(record))
            db.flush()

            total, unique = db.query(
                func.count(Click.id),
                func.count(func.distinct(Click.session_id))
            ).filter(Click.link_id == link.id).one()

            link.total_clicks = total
            link.unique_clicks = unique
            link.last_click_at = record.timestamp
            link.updated_at = utcnow()
            db.commit()


default_store = RecordStore(engine)


# Dependency to get the record store
def get_store() -> RecordStore:
    return default_store
