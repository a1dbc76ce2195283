import logging
from typing import Any, Optional

import sentry_sdk

from prode.core.config import settings

logger = logging.getLogger(__name__)


def init_sentry() -> bool:
    """Activate Sentry only when a DSN is configured."""
    if not settings.SENTRY_DSN:
        logger.info("Sentry disabled (SENTRY_DSN not set)")
        return False

    sentry_sdk.init(
        dsn=settings.SENTRY_DSN,
        environment=settings.SENTRY_ENVIRONMENT,
        traces_sample_rate=0.0,
    )
    logger.info("Sentry initialized (env=%s)", settings.SENTRY_ENVIRONMENT)
    return True


def report_error(
    tag: str,
    context: Optional[dict[str, Any]],
    error: BaseException,
    *,
    level: str = "error",
    extra_tags: Optional[dict[str, Any]] = None,
) -> None:
    """Send a tagged exception to the error tracker.

    Without an initialized client the SDK drops the event, so this is safe to
    call from tests and local runs. Reporting must never break the caller.
    """
    try:
        with sentry_sdk.new_scope() as scope:
            scope.set_tag("service", tag)
            for key, value in (extra_tags or {}).items():
                scope.set_tag(key, value)
            if context:
                scope.set_context(tag, context)
            scope.set_level(level)
            sentry_sdk.capture_exception(error)
    except Exception as exc:  # pragma: no cover
        logger.warning("Could not report error to Sentry: %s", exc)
