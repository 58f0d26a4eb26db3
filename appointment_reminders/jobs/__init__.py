from .scheduler import ReminderScheduler

__all__ = ["ReminderScheduler"]
