"""Optional Sentry error reporting.

Flask is only imported once reporting is actually enabled, so the CLI tools and
tests can call this freely.
"""

from __future__ import annotations

from typing import Any

from loguru import logger

_SENTRY_INITIALIZED = False


def _sentry_options(cfg: Any, dsn: str) -> dict[str, Any]:
    from sentry_sdk.integrations.flask import FlaskIntegration
    from sentry_sdk.integrations.logging import LoggingIntegration

    options: dict[str, Any] = {
        "dsn": dsn,
        # breadcrumbs only; events come from unhandled request errors
        "integrations": [LoggingIntegration(level=None, event_level="ERROR"), FlaskIntegration()],
        "send_default_pii": False,
        "attach_stacktrace": True,
    }
    environment = str(getattr(cfg, "environment", "") or "").strip()
    if environment:
        options["environment"] = environment
    rate = float(getattr(cfg, "traces_sample_rate", 0.0) or 0.0)
    if rate > 0:
        options["traces_sample_rate"] = min(rate, 1.0)
    return options


def initialize_sentry(*, settings_obj: Any | None = None) -> bool:
    """Initialize Sentry once, when ``sentry.enabled`` is set and a DSN is configured.

    Returns True when reporting is active. Failures are logged, never raised.
    """
    global _SENTRY_INITIALIZED
    if _SENTRY_INITIALIZED:
        return True

    if settings_obj is None:
        from config import settings as settings_obj

    cfg = getattr(settings_obj, "sentry", None)
    dsn = str(getattr(cfg, "dsn", "") or "").strip()
    if not getattr(cfg, "enabled", False) or not dsn:
        return False

    try:
        import sentry_sdk

        sentry_sdk.init(**_sentry_options(cfg, dsn))
        sentry_sdk.set_tag("service", "paper-search")
    except Exception:
        logger.opt(exception=True).warning("Failed to initialize Sentry (ignored)")
        return False

    _SENTRY_INITIALIZED = True
    logger.info("Sentry error reporting enabled")
    return True
