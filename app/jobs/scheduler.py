"""
APScheduler Configuration

Background job scheduler for inventory housekeeping. Jobs run inside the
application's event loop and open their own database sessions.
"""

import logging
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.jobstores.memory import MemoryJobStore
from apscheduler.executors.asyncio import AsyncIOExecutor

from app.config import settings

logger = logging.getLogger(__name__)

# Job stores
jobstores = {
    'default': MemoryJobStore()
}

# Executors
executors = {
    'default': AsyncIOExecutor(),
}

# Job defaults
job_defaults = {
    'coalesce': True,  # Combine multiple pending executions into one
    'max_instances': 1,  # Only one instance of each job at a time
    'misfire_grace_time': 60,  # Allow 60 seconds grace time for misfires
}

# Create scheduler
scheduler = AsyncIOScheduler(
    jobstores=jobstores,
    executors=executors,
    job_defaults=job_defaults,
    timezone='UTC'
)


async def run_inventory_consistency_job():
    """Called by APScheduler; never lets a failure escape into the scheduler."""
    from app.jobs.inventory_jobs import sync_inventory_consistency

    try:
        result = await sync_inventory_consistency()
        logger.info(f"Job 'sync_inventory_consistency' completed: {result}")
    except Exception as e:
        logger.error(f"Job 'sync_inventory_consistency' failed: {e}")


def start_scheduler():
    """Start the background job scheduler."""
    if not scheduler.running:
        # Rebuild inventory status and location capacity caches
        scheduler.add_job(
            run_inventory_consistency_job,
            'interval',
            minutes=settings.INVENTORY_SYNC_INTERVAL_MINUTES,
            id='sync_inventory_consistency',
            name='Sync Inventory Consistency',
            replace_existing=True,
        )

        scheduler.start()
        logger.info("Background job scheduler started")

        # Log all scheduled jobs
        jobs = scheduler.get_jobs()
        for job in jobs:
            logger.info(f"Scheduled job: {job.name} - Next run: {job.next_run_time}")


def shutdown_scheduler():
    """Shutdown the scheduler gracefully."""
    if scheduler.running:
        scheduler.shutdown(wait=True)
        logger.info("Background job scheduler stopped")


def get_job_status():
    """Get status of all scheduled jobs."""
    jobs = scheduler.get_jobs()
    return [
        {
            'id': job.id,
            'name': job.name,
            'next_run_time': str(job.next_run_time) if job.next_run_time else None,
            'trigger': str(job.trigger),
        }
        for job in jobs
    ]
