"""
Scheduler management endpoints
"""

import logging
from fastapi import APIRouter, HTTPException
from typing import Dict, Any

from wms.scheduler import get_scheduler_status, retry_failed_syncs_task

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/scheduler", tags=["scheduler"])


@router.get("/status", response_model=Dict[str, Any])
async def scheduler_status():
    """Get current scheduler status and configured jobs"""
    try:
        status = await get_scheduler_status()
        return status
    except Exception as e:
        logger.error(f"Error getting scheduler status: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/trigger-retry")
async def trigger_retry():
    """Run the scheduled retry pass now"""
    try:
        logger.info("Retry pass triggered manually")
        await retry_failed_syncs_task()
        return {"status": "success", "message": "Retry pass triggered successfully"}
    except Exception as e:
        logger.error(f"Error triggering retry: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e))
