from celery import shared_task

from forumutils.logging import CeleryLogger


@shared_task(bind=True, max_retries=3, default_retry_delay=300)
def purge_expired_notifications_task(self):
    """
    Daily task deleting notifications past their retention window.

    Scheduled through CELERY_BEAT_SCHEDULE; database errors are retried.
    """
    logger = CeleryLogger.get_logger(__name__)
    try:
        from forum.services.notification import NotificationService

        deleted = NotificationService.purge_expired()
    except Exception as exc:
        logger.error("notification_purge_failed", exception_message=str(exc))
        raise self.retry(exc=exc) from exc

    logger.info("notification_purge_completed", deleted=deleted)
    return {"deleted": deleted}
