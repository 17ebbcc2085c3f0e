"""
Celery tasks for catalog app.
"""
from celery import shared_task
import logging

from main.uploads import UploadError, destroy_image

logger = logging.getLogger(__name__)


@shared_task(bind=True, max_retries=3, default_retry_delay=60)
def delete_remote_image(self, public_id):
    """
    Delete a product image file from the image host.

    Queued after an Image row is deleted; retried a few times when the host
    cannot be reached.
    """
    try:
        destroy_image(public_id)
    except UploadError as e:
        logger.warning(f"Retrying remote delete of {public_id}: {e}")
        raise self.retry(exc=e)
