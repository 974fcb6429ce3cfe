"""
Carbon Tracker — Dashboard Routes
Read-only views over the persisted session, chat and web records.
"""

import csv
import io
import json

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import Response

from carbon_tracker.core.database import get_store
from carbon_tracker.schemas.schemas import (
    CumulativeStats,
    GlobalCarbonStats,
    LimitStatus,
    SessionMeasurement,
    UsagePoint,
    UsageSeries,
    WebCarbonStats,
)
from carbon_tracker.services.storage import (
    CHAT_GLOBAL_STATS,
    CHAT_PERIOD_STATS,
    SESSION_STATS,
    WEB_GLOBAL_STATS,
    WEB_PERIOD_STATS,
    KeyValueStore,
)
from carbon_tracker.utils.carbon import generate_equivalents
from carbon_tracker.utils.periods import PERIODS, last_n_keys

router = APIRouter()


def limit_band(percent: float) -> str:
    if percent < 70:
        return "ok"
    if percent < 90:
        return "warning"
    return "exceeded"


@router.get(
    "/session",
    response_model=SessionMeasurement,
    response_model_by_alias=True,
    summary="Current session",
    description="The session record last written by the tracker.",
)
async def get_session(store: KeyValueStore = Depends(get_store)):
    return SessionMeasurement.model_validate(await store.get(SESSION_STATS) or {})


@router.get(
    "/chat",
    response_model=GlobalCarbonStats,
    response_model_by_alias=True,
    summary="All-time chat usage",
)
async def get_chat_stats(store: KeyValueStore = Depends(get_store)):
    return GlobalCarbonStats.model_validate(await store.get(CHAT_GLOBAL_STATS) or {})


@router.get(
    "/web",
    response_model=WebCarbonStats,
    response_model_by_alias=True,
    summary="All-time web browsing usage",
)
async def get_web_stats(store: KeyValueStore = Depends(get_store)):
    return WebCarbonStats.model_validate(await store.get(WEB_GLOBAL_STATS) or {})


@router.get(
    "/cumulative",
    response_model=CumulativeStats,
    summary="Combined chat and web footprint",
)
async def get_cumulative(store: KeyValueStore = Depends(get_store)):
    """Chat and web totals combined, with each side's share."""
    chat = GlobalCarbonStats.model_validate(await store.get(CHAT_GLOBAL_STATS) or {})
    web = WebCarbonStats.model_validate(await store.get(WEB_GLOBAL_STATS) or {})

    total = chat.total_carbon_emissions + web.total_carbon_emissions
    denominator = total if total > 0 else 1.0
    return CumulativeStats(
        total_emissions=total,
        chat_emissions=chat.total_carbon_emissions,
        web_emissions=web.total_carbon_emissions,
        chat_share=round(chat.total_carbon_emissions / denominator, 4),
        web_share=round(web.total_carbon_emissions / denominator, 4),
        total_tokens=chat.total_input_tokens + chat.total_output_tokens,
        total_web_actions=web.total_visits + web.total_searches,
        equivalents=generate_equivalents(total),
    )


@router.get(
    "/usage/{period}",
    response_model=UsageSeries,
    summary="Usage per day, week or month",
)
async def get_usage(
    period: str,
    count: int = Query(default=7, ge=1, le=366),
    store: KeyValueStore = Depends(get_store),
):
    if period not in PERIODS:
        raise HTTPException(status_code=404, detail=f"Unknown period '{period}'")

    chat_buckets = await store.get(CHAT_PERIOD_STATS[period]) or {}
    web_buckets = await store.get(WEB_PERIOD_STATS[period]) or {}

    points = []
    for key in last_n_keys(period, count):
        chat = chat_buckets.get(key) or {}
        web = web_buckets.get(key) or {}
        points.append(UsagePoint(
            key=key,
            chat_emissions=chat.get("carbonEmissions", 0.0),
            web_emissions=web.get("totalCarbonEmissions", 0.0),
        ))
    return UsageSeries(period=period, points=points)


@router.get(
    "/limit",
    response_model=LimitStatus,
    summary="Progress against a personal emission limit",
)
async def get_limit_status(
    limit: float = Query(default=100.0, gt=0, description="Limit in g CO2e"),
    store: KeyValueStore = Depends(get_store),
):
    chat = GlobalCarbonStats.model_validate(await store.get(CHAT_GLOBAL_STATS) or {})
    web = WebCarbonStats.model_validate(await store.get(WEB_GLOBAL_STATS) or {})
    total = chat.total_carbon_emissions + web.total_carbon_emissions

    percent = min(100.0, total / limit * 100)
    return LimitStatus(total_emissions=total, limit=limit, percent=round(percent, 2), status=limit_band(percent))


@router.get(
    "/export",
    summary="Export all records as CSV",
)
async def export_csv(store: KeyValueStore = Depends(get_store)):
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL)
    writer.writerow(["key", "value"])
    for key, value in sorted((await store.items()).items()):
        writer.writerow([key, json.dumps(value, sort_keys=True)])

    return Response(
        content=buffer.getvalue(),
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="carbon_tracker_export.csv"'},
    )
