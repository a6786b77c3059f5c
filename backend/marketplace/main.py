"""
Flask application factory for the consultation marketplace booking core.
"""

import logging
import os

from dotenv import load_dotenv
from flask import Flask

# Only load from .env when DATABASE_URL is not already defined by the environment
if not os.getenv("DATABASE_URL"):
    load_dotenv()


def create_app(config_overrides=None) -> Flask:
    """Build the Flask app: logging, error handling, rate limiting, blueprints."""
    from marketplace.core import config
    from marketplace.core.logging_config import setup_logging

    app = Flask(__name__)
    app.config["TESTING"] = config.is_testing()
    app.json.sort_keys = False
    app.config["RATELIMIT_ENABLED"] = config.get_rate_limit_enabled()
    if config_overrides:
        app.config.update(config_overrides)

    setup_logging(
        app=app,
        log_level=config.get_log_level(),
        enable_sql_echo=os.getenv("SQL_ECHO", "false").lower() in ("true", "1", "yes"),
        log_to_file=config.get_log_to_file(),
        use_json_format=config.get_log_json(),
    )
    logger = logging.getLogger(__name__)

    config.log_timezone_config()
    config.log_booking_config()

    sentry_dsn = os.getenv("SENTRY_DSN")
    if sentry_dsn:
        import sentry_sdk
        from sentry_sdk.integrations.flask import FlaskIntegration
        from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration

        sentry_sdk.init(
            dsn=sentry_dsn,
            environment=os.getenv("FLASK_ENV", "production"),
            release=os.getenv("GIT_SHA", "unknown"),
            integrations=[FlaskIntegration(), SqlalchemyIntegration()],
            traces_sample_rate=0.1,
            send_default_pii=False,
        )
        logger.info(
            "Sentry initialized",
            extra={"context": {"release": os.getenv("GIT_SHA", "unknown")}},
        )
    else:
        logger.info("Sentry not initialized (SENTRY_DSN not set)")

    from marketplace.core.limiter_config import limiter

    limiter.init_app(app)
    logger.info(
        "Rate limiter configured",
        extra={"context": {"enabled": app.config["RATELIMIT_ENABLED"]}},
    )

    _register_error_handlers(app)

    from marketplace.controllers import availability_bp, consultation_bp, provider_bp

    app.register_blueprint(availability_bp)
    app.register_blueprint(consultation_bp)
    app.register_blueprint(provider_bp)

    from marketplace.core.api_utils import api_response

    @app.route("/health")
    def health():
        return api_response(True, "ok")

    from marketplace.db.session import create_tables

    create_tables()
    return app


def _register_error_handlers(app: Flask) -> None:
    from marketplace.core.api_utils import api_response
    from marketplace.core.exceptions import MarketplaceError
    from marketplace.schemas.dtos import ErrorResponse

    logger = logging.getLogger("marketplace.errors")

    @app.errorhandler(MarketplaceError)
    def handle_marketplace_error(exc: MarketplaceError):
        log = logger.warning if exc.status_code >= 409 else logger.info
        log(
            f"{type(exc).__name__}: {exc.message}",
            extra={"context": {"code": exc.code, "status": exc.status_code}},
        )
        return api_response(
            False,
            exc.message,
            ErrorResponse.from_exception(exc).to_dict(),
            exc.status_code,
        )

    @app.errorhandler(404)
    def not_found(error):
        return api_response(False, "Resource not found", {"error": "not_found"}, 404)

    @app.errorhandler(405)
    def method_not_allowed(error):
        return api_response(
            False, "Method not allowed", {"error": "method_not_allowed"}, 405
        )

    @app.errorhandler(500)
    def internal_error(error):
        logger.error(
            "Unhandled server error",
            exc_info=getattr(error, "original_exception", None),
        )
        body = ErrorResponse.server_error()
        return api_response(False, body.message, body.to_dict(), 500)


if __name__ == "__main__":
    create_app().run(debug=False, port=int(os.getenv("PORT", "5000")))
