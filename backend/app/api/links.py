import logging

from fastapi import APIRouter, Depends, Query, Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from ..config import settings
from ..core.exceptions import NotFoundError
from ..core.shortener import generate_short_code, new_record_id
from ..database import utcnow
from ..schemas.link import LinkCreate, LinkRecord, LinkUpdate
from ..services.analytics import get_link_stats
from ..services.store import RecordStore, get_store

router = APIRouter()
limiter = Limiter(key_func=get_remote_address, enabled=settings.RATE_LIMIT_ENABLED)
logger = logging.getLogger(__name__)


def build_short_url(short_code: str) -> str:
    return f"{settings.BASE_URL.rstrip('/')}/r/{short_code}"


@router.get("/links")
async def list_links(store: RecordStore = Depends(get_store)):
    """List every link. Passwords are never exposed."""
    links = store.list_links()
    return {
        "success": True,
        "data": [link.to_public_dict() for link in links]
    }


@router.post("/links", status_code=201)
@limiter.limit(f"{settings.RATE_LIMIT_PER_HOUR}/hour")
async def create_link(
    request: Request,
    link_data: LinkCreate,
    store: RecordStore = Depends(get_store)
):
    """
    Create a short link.

    Rate limited to prevent spam.
    """
    # Custom code or a freshly generated one
    short_code = generate_short_code(store, link_data.custom_code)

    now = utcnow()
    new_link = LinkRecord(
        id=new_record_id(),
        short_code=short_code,
        original_url=link_data.original_url,
        title=link_data.title,
        description=link_data.description,
        created_at=now,
        updated_at=now,
        is_active=True,
        expires_at=link_data.expires_at,
        password=link_data.password,
    )
    store.insert_link(new_link)
    logger.info("Created link %s -> %s", short_code, link_data.original_url)

    return {
        "success": True,
        "data": new_link.to_public_dict(),
        "shortUrl": build_short_url(short_code)
    }


@router.get("/links/{link_id}")
async def get_link(
    link_id: str,
    include_stats: bool = Query(False, alias="includeStats"),
    store: RecordStore = Depends(get_store)
):
    link = store.get_link_by_id(link_id)
    if link is None:
        raise NotFoundError("Link not found")

    data = link.to_public_dict()
    if include_stats:
        stats = get_link_stats(store, link_id)
        data["stats"] = stats.model_dump(mode="json", by_alias=True) if stats else None

    return {"success": True, "data": data}


@router.put("/links/{link_id}")
async def update_link(
    link_id: str,
    patch: LinkUpdate,
    store: RecordStore = Depends(get_store)
):
    """
    Patch a link.

    Only title, description, isActive, password and expiresAt can change;
    any other field in the body is ignored.
    """
    if not store.update_link(link_id, patch):
        raise NotFoundError("Link not found")

    updated_link = store.get_link_by_id(link_id)
    return {"success": True, "data": updated_link.to_public_dict()}


@router.delete("/links/{link_id}")
async def delete_link(link_id: str, store: RecordStore = Depends(get_store)):
    """Delete a link and all of its clicks"""
    if not store.delete_link(link_id):
        raise NotFoundError("Link not found")

    logger.info("Deleted link %s", link_id)
    return {"success": True, "message": "Link deleted successfully"}
