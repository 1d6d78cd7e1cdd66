"""Sentry error tracking integration.

Initialized only when SENTRY_DSN is set; safe to call unconditionally.
"""

import logging

from app.core.config import settings
from app.core.exceptions import PositionLookupError

logger = logging.getLogger(__name__)

# Logged and skipped per keyword by the sync job; not worth an alert each time
_IGNORED_EXCEPTIONS = (PositionLookupError,)


def _before_send(event, hint):
    exc_info = hint.get("exc_info")
    if exc_info and isinstance(exc_info[1], _IGNORED_EXCEPTIONS):
        return None
    return event


def init_sentry() -> None:
    """Initialize Sentry if SENTRY_DSN is configured."""
    if not settings.sentry_dsn:
        logger.debug("Sentry DSN not configured, skipping")
        return

    import sentry_sdk
    from sentry_sdk.integrations.celery import CeleryIntegration
    from sentry_sdk.integrations.fastapi import FastApiIntegration
    from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration

    sentry_sdk.init(
        dsn=settings.sentry_dsn,
        environment=settings.app_env,
        traces_sample_rate=0.1 if settings.app_env == "production" else 1.0,
        send_default_pii=False,
        before_send=_before_send,
        integrations=[
            FastApiIntegration(transaction_style="endpoint"),
            SqlalchemyIntegration(),
            CeleryIntegration(),
        ],
    )
    logger.info("Sentry initialized (env=%s)", settings.app_env)
