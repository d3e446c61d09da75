"""
Cron-style scheduling for the republishing pipeline.
"""

from .cron import CronSchedule, describe_cron_schedule
from .pipeline_scheduler import PipelineScheduler

__all__ = [
    "CronSchedule",
    "PipelineScheduler",
    "describe_cron_schedule",
]
