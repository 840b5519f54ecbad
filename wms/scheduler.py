"""
Scheduled tasks for the sync engine.

Runs inside the FastAPI process: the retry coordinator on RETRY_SCHEDULE and
the zombie order cleanup once a night.
"""

import logging
from datetime import datetime
from typing import Optional
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.events import EVENT_JOB_EXECUTED, EVENT_JOB_ERROR

from wms.core.config import get_settings
from wms.services.engine import engine_session

logger = logging.getLogger(__name__)

# Global scheduler instance
scheduler: Optional[AsyncIOScheduler] = None


async def retry_failed_syncs_task():
    """Task to retry unresolved stock sync failures"""
    try:
        logger.info("=== SCHEDULED RETRY STARTING ===")
        async with engine_session() as engine:
            summary = await engine.retry.retry_unresolved()
        logger.info(
            f"Scheduled retry completed: {summary.resolved} resolved, {summary.still_failing} still failing"
        )
    except Exception as e:
        logger.exception(f"Error in scheduled retry task: {str(e)}")


async def cleanup_zombie_orders_task():
    """Task to delete local orders that no longer exist in Sellus"""
    try:
        logger.info("Starting cleanup of zombie orders")
        async with engine_session() as engine:
            summary = await engine.order_import.cleanup_zombie_orders()
        logger.info(f"Zombie cleanup finished ({summary.status.value}): {summary.message}")
    except Exception as e:
        logger.exception(f"Error in zombie cleanup task: {str(e)}")


def job_listener(event):
    """Listen to job events for logging"""
    if event.exception:
        logger.error(f"Job {event.job_id} crashed: {event.exception}")
    else:
        logger.info(f"Job {event.job_id} executed successfully at {datetime.now()}")


def create_scheduler() -> AsyncIOScheduler:
    """Create and configure the scheduler"""
    global scheduler

    if scheduler is not None:
        return scheduler

    settings = get_settings()
    scheduler = AsyncIOScheduler()

    # Add job event listeners
    scheduler.add_listener(job_listener, EVENT_JOB_EXECUTED | EVENT_JOB_ERROR)

    if settings.RETRY_SCHEDULE_ENABLED:
        scheduler.add_job(
            retry_failed_syncs_task,
            CronTrigger.from_crontab(settings.RETRY_SCHEDULE),
            id="retry_failed_syncs",
            name="Retry Failed Syncs",
            replace_existing=True,
            max_instances=1,  # Only one retry pass at a time
            misfire_grace_time=600
        )
        logger.info(f"Scheduled retry job added with schedule: {settings.RETRY_SCHEDULE}")
    else:
        logger.info("Scheduled retry is disabled. Set RETRY_SCHEDULE_ENABLED=true to enable")

    if settings.ZOMBIE_CLEANUP_ENABLED:
        # Runs daily at 3 AM
        scheduler.add_job(
            cleanup_zombie_orders_task,
            CronTrigger(hour=3, minute=0),
            id="cleanup_zombie_orders",
            name="Cleanup Zombie Orders",
            replace_existing=True,
            max_instances=1
        )
        logger.info("Scheduled zombie cleanup job added for 3:00 AM daily")

    return scheduler


async def start_scheduler():
    """Start the scheduler"""
    global scheduler

    if scheduler is None:
        scheduler = create_scheduler()

    if not scheduler.running:
        scheduler.start()
        logger.info("Scheduler started successfully")

        jobs = scheduler.get_jobs()
        if jobs:
            logger.info(f"Active scheduled jobs: {len(jobs)}")
            for job in jobs:
                logger.info(f"  - {job.name}: {job.trigger}")
        else:
            logger.info("No scheduled jobs configured")


async def stop_scheduler():
    """Stop the scheduler gracefully"""
    global scheduler

    if scheduler and scheduler.running:
        scheduler.shutdown(wait=True)
        logger.info("Scheduler stopped successfully")


async def get_scheduler_status():
    """Get current scheduler status and job information"""
    global scheduler

    if scheduler is None:
        return {"status": "not_initialized", "jobs": []}

    jobs_info = []
    for job in scheduler.get_jobs():
        jobs_info.append({
            "id": job.id,
            "name": job.name,
            "next_run": job.next_run_time.isoformat() if job.next_run_time else None,
            "trigger": str(job.trigger)
        })

    return {
        "status": "running" if scheduler.running else "stopped",
        "jobs": jobs_info
    }
