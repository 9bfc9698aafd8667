import json
import os
from logging.config import dictConfig

from flask import current_app
from pythonjsonlogger import jsonlogger

_PROD_LIKE = ("staging", "production")


def init_logging(app):
    """JSON logs to stdout in staging/production; Flask's console handler elsewhere."""
    app_env = (os.getenv("APP_ENV", "development") or "development").lower()
    level = (app.config.get("LOG_LEVEL") or "INFO").upper()
    if app_env not in _PROD_LIKE:
        app.logger.setLevel(level)
        return

    dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "json": {
                "()": jsonlogger.JsonFormatter,
                "fmt": "%(asctime)s %(levelname)s %(name)s %(message)s",
            },
        },
        "handlers": {"stdout": {"class": "logging.StreamHandler", "formatter": "json"}},
        "root": {"level": level, "handlers": ["stdout"]},
    })


def log_event(event: str, **fields) -> None:
    """One grep-able JSON line per billing state change or webhook delivery."""
    current_app.logger.info(json.dumps({"event": event, **fields}, default=str))


def _scrub_stripe_headers(event, hint):
    # Webhook signatures and session cookies never leave the process
    headers = (event.get("request") or {}).get("headers") or {}
    for name in list(headers):
        if name.lower() in ("stripe-signature", "cookie", "authorization"):
            headers[name] = "[filtered]"
    return event


def init_sentry(app):
    """Report errors to Sentry when SENTRY_DSN is set; otherwise do nothing."""
    dsn = os.getenv("SENTRY_DSN")
    if not dsn:
        return
    import sentry_sdk
    from sentry_sdk.integrations.flask import FlaskIntegration

    sentry_sdk.init(
        dsn=dsn,
        integrations=[FlaskIntegration()],
        traces_sample_rate=float(os.getenv("SENTRY_TRACES", "0.0")),
        environment=os.getenv("APP_ENV", "development"),
        send_default_pii=False,
        before_send=_scrub_stripe_headers,
    )
    app.logger.info("Sentry enabled for %s", os.getenv("APP_ENV", "development"))
