import logging

from django.apps import AppConfig


class ExtlinkerConfig(AppConfig):
    """Configuration for the extlinker Django app."""

    default_auto_field = 'django.db.models.BigAutoField'
    name = 'extlinker'
    verbose_name = 'External links'

    def ready(self) -> None:
        from .services import get_link_config

        # Mirrors the debug_mode option onto the package logger.
        if get_link_config().debug_mode:
            logging.getLogger('extlinker').setLevel(logging.DEBUG)
