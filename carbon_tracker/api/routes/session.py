"""
Carbon Tracker — Session Routes
Control of the tracker running inside this process.
"""

from fastapi import APIRouter, HTTPException, Request, status

from carbon_tracker.schemas.schemas import SessionMeasurement

router = APIRouter()


@router.post(
    "/reset",
    response_model=SessionMeasurement,
    response_model_by_alias=True,
    summary="Reset the session",
    description="Credits any outstanding usage, then starts a new session from zero.",
)
async def reset_session(request: Request):
    tracker = getattr(request.app.state, "tracker", None)
    if tracker is None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="No tracker is running")

    if not await tracker.reset():
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Reset could not be saved",
        )
    return tracker.stats
