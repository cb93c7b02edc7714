from .scheduler_service import SchedulerService

__all__ = ["SchedulerService"]
