from django.apps import AppConfig
from django.conf import settings
from django.core.exceptions import ImproperlyConfigured
import logging

logger = logging.getLogger(__name__)


class CoreConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'apps.core'
    verbose_name = 'Core'

    def ready(self):
        """
        Validate access-core settings when Django initializes.

        Misconfigured authorization settings must stop startup rather than
        silently weakening enforcement.
        """
        self._validate_rbac_settings()

    def _validate_rbac_settings(self):
        header = getattr(settings, 'RBAC_BUSINESS_ID_HEADER', 'X-Business-ID')
        if not header or not str(header).strip():
            raise ImproperlyConfigured("RBAC_BUSINESS_ID_HEADER must be a non-empty header name.")

        max_limit = getattr(settings, 'RBAC_AUDIT_MAX_LIMIT', 500)
        if not isinstance(max_limit, int) or max_limit < 1:
            raise ImproperlyConfigured(
                f"RBAC_AUDIT_MAX_LIMIT must be a positive integer. Current value: {max_limit!r}"
            )

        exempt = getattr(settings, 'RBAC_CONTEXT_EXEMPT_PATHS', [])
        if any(not str(path).startswith('/') or str(path) == '/' for path in exempt):
            raise ImproperlyConfigured(
                "RBAC_CONTEXT_EXEMPT_PATHS entries must be absolute path prefixes other than '/'."
            )

        if getattr(settings, 'RBAC_LEGACY_OWNER_FALLBACK', False):
            logger.warning(
                "RBAC_LEGACY_OWNER_FALLBACK is enabled: authenticated users without a "
                "membership get owner-equivalent access"
            )
