"""
BuyBox tracker management endpoints
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from buybox.core.exceptions import StoreFailureError, SubjectNotFoundError
from buybox.dependencies import get_tracker
from buybox.scheduler import TrackingScheduler
from buybox.schemas.tracking import RunSummary, SchedulerStatus

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/tracker", tags=["tracker"])


@router.get("/status", response_model=SchedulerStatus)
async def tracker_status(tracker: TrackingScheduler = Depends(get_tracker)):
    """Get current tracker state and the last cycle's results"""
    return tracker.status()


@router.post("/start")
async def start_tracker(
    period_seconds: Optional[int] = Query(None, gt=0),
    tracker: TrackingScheduler = Depends(get_tracker),
):
    """Start the recurring tracking cycle"""
    started = await tracker.start(period_seconds)
    if not started:
        return {"status": "warning", "message": "Tracker already running"}
    return {"status": "success", "message": f"Tracker started, every {tracker.period_seconds}s"}


@router.post("/stop")
async def stop_tracker(tracker: TrackingScheduler = Depends(get_tracker)):
    """Stop future cycles; a cycle in flight finishes"""
    stopped = await tracker.stop()
    if not stopped:
        return {"status": "warning", "message": "Tracker not running"}
    return {"status": "success", "message": "Tracker stopped"}


@router.post("/trigger/{subject_id}", response_model=RunSummary)
async def trigger_subject(subject_id: str, tracker: TrackingScheduler = Depends(get_tracker)):
    """Run one subject's items now, outside the schedule"""
    try:
        return await tracker.trigger_once(subject_id)
    except SubjectNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except StoreFailureError as e:
        logger.error(f"Error triggering subject {subject_id}: {str(e)}")
        raise HTTPException(status_code=503, detail=str(e))
