from .tasks import purge_expired_notifications_task

__all__ = ["purge_expired_notifications_task"]
