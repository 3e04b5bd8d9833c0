from django.apps import AppConfig
import logging
from django.conf import settings


class CoreConfig(AppConfig):
    name = 'core'
    default_auto_field = 'django.db.models.BigAutoField'

    def ready(self):
        """Log important runtime configuration on startup."""
        logger = logging.getLogger(__name__)
        access_lifetime = settings.SIMPLE_JWT.get('ACCESS_TOKEN_LIFETIME')
        logger.info(f"ACCESS TOKEN LIFETIME: {access_lifetime}")
        logger.info(f"ACTIVITY POLL INTERVAL: {settings.ACTIVITY_POLL_INTERVAL_SECONDS}s")
