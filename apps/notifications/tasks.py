import logging

from celery import shared_task

from .services import purge_read

logger = logging.getLogger(__name__)


@shared_task(bind=True, max_retries=3, default_retry_delay=60)
def purge_read_notifications(self, older_than_days=None):
    """
    Housekeeping: drop read notifications past the retention window.
    Scheduled from CELERY_BEAT_SCHEDULE.
    """
    try:
        deleted = purge_read(older_than_days)
    except Exception as exc:
        logger.exception("Notification purge failed")
        raise self.retry(exc=exc)

    logger.info(f"Purged {deleted} read notifications.")
    return deleted
