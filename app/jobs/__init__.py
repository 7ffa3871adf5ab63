"""
Background Jobs Module

Handles scheduled tasks for:
- Inventory status / location capacity consistency
"""

from app.jobs.scheduler import scheduler, start_scheduler, shutdown_scheduler, get_job_status
from app.jobs.inventory_jobs import sync_inventory_consistency

__all__ = [
    "scheduler",
    "start_scheduler",
    "shutdown_scheduler",
    "get_job_status",
    "sync_inventory_consistency",
]
