from typing import Optional

from fastapi import APIRouter, Depends, Query

from ..core.exceptions import NotFoundError
from ..services.analytics import get_analytics_overview, get_link_stats
from ..services.store import RecordStore, get_store

router = APIRouter()


@router.get("/analytics")
async def get_analytics(
    link_id: Optional[str] = Query(None, alias="linkId"),
    store: RecordStore = Depends(get_store)
):
    """
    Analytics overview across all links, or the full stats of one link when
    `linkId` is given.

    Recomputed from the stored clicks on every request.
    """
    if link_id:
        stats = get_link_stats(store, link_id)
        if stats is None:
            raise NotFoundError("Link not found")
        return {"success": True, "data": stats.model_dump(mode="json", by_alias=True)}

    overview = get_analytics_overview(store)
    return {"success": True, "data": overview.model_dump(mode="json", by_alias=True)}
