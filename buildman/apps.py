"""
Django Buildman app configuration.
"""

from django.apps import AppConfig
from django.utils.translation import gettext_lazy as _


class BuildmanConfig(AppConfig):
    """Buildman application configuration."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "buildman"
    label = "buildman"
    verbose_name = _("Production Planning")

    def ready(self):
        """Import signal handlers when app is ready."""
        from buildman.signals import handlers  # noqa: F401
