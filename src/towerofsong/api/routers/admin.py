from fastapi import APIRouter, Depends

from towerofsong.api.deps import get_scheduler, require_auth
from towerofsong.api.schemas import ScanStatus, ScanTriggerResponse
from towerofsong.worker.scheduler import ScanScheduler

router = APIRouter(dependencies=[Depends(require_auth)])


@router.post("/scan", response_model=ScanTriggerResponse)
async def trigger_scan(scheduler: ScanScheduler = Depends(get_scheduler)):
    """Start a sync pass now. Dropped (status 'busy') if one is running."""
    started = scheduler.trigger()
    return ScanTriggerResponse(status="started" if started else "busy")


@router.get("/scan", response_model=ScanStatus)
async def get_scan_status(scheduler: ScanScheduler = Depends(get_scheduler)):
    """Whether a pass is running, and the stats of the last completed one."""
    return scheduler.status()
