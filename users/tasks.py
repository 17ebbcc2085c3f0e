import logging

from celery import shared_task
from oauth2_provider.models import clear_expired

logger = logging.getLogger(__name__)


@shared_task
def clear_expired_tokens():
    """Remove expired access tokens and stale refresh tokens."""
    clear_expired()
    logger.info("Expired OAuth tokens cleared")
