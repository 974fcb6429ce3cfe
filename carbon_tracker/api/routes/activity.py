"""
Carbon Tracker — Web Activity Routes
Page-load and navigation events from the browser.
"""

from fastapi import APIRouter, Depends

from carbon_tracker.core.database import get_store
from carbon_tracker.schemas.schemas import ActivityEvent, WebCarbonStats
from carbon_tracker.services.storage import WEB_GLOBAL_STATS, KeyValueStore
from carbon_tracker.services.web_activity import WebActivityTracker

router = APIRouter()


async def _current(store: KeyValueStore) -> WebCarbonStats:
    return WebCarbonStats.model_validate(await store.get(WEB_GLOBAL_STATS) or {})


@router.post(
    "/page-load",
    response_model=WebCarbonStats,
    response_model_by_alias=True,
    summary="Record a completed page load",
    description="Counts a visit unless the page is a search results page.",
)
async def page_load(event: ActivityEvent, store: KeyValueStore = Depends(get_store)):
    await WebActivityTracker(store).record_page_load(event.url)
    return await _current(store)


@router.post(
    "/navigation",
    response_model=WebCarbonStats,
    response_model_by_alias=True,
    summary="Record a completed navigation",
    description="Counts a search when the navigation landed on a search engine.",
)
async def navigation(event: ActivityEvent, store: KeyValueStore = Depends(get_store)):
    await WebActivityTracker(store).record_navigation(event.url)
    return await _current(store)
