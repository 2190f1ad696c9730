"""
Scheduler exports.
"""

from dealer_portal.scheduler.jobs import build_scheduler, run_scheduled_extraction, run_scheduled_inventory

__all__ = ["build_scheduler", "run_scheduled_extraction", "run_scheduled_inventory"]
