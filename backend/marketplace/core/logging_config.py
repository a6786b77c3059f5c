"""
Centralized logging configuration for the consultation marketplace.

This module provides structured logging with:
- JSON formatting for production
- Console formatting for development
- Optional SQLAlchemy query timing
- Request/response logging when a Flask app is supplied
- Log rotation

Usage:
    from marketplace.core.logging_config import setup_logging, log_performance

    # In create_app()
    setup_logging(app, log_level="INFO")

    # Around a timed operation
    log_performance("rating_recompute", 3.2, provider_id=7)
"""

import json
import logging
import logging.handlers
import sys
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional, Union

from flask import Flask, g, request
from sqlalchemy import event
from sqlalchemy.engine import Engine


class JSONFormatter(logging.Formatter):
    """
    Custom JSON formatter for structured logging.
    Outputs logs as JSON with timestamp, level, message, and extra context.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        if hasattr(record, "context"):
            log_data["context"] = getattr(record, "context", {})

        return json.dumps(log_data, ensure_ascii=False, default=str)


class ConsoleFormatter(logging.Formatter):
    """
    Human-readable console formatter with colors for development.
    """

    COLORS = {
        "DEBUG": "\033[36m",  # Cyan
        "INFO": "\033[32m",  # Green
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",  # Red
        "CRITICAL": "\033[35m",  # Magenta
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        # Work on a copy so file handlers sharing the record see the plain level
        record = logging.makeLogRecord(record.__dict__)
        color = self.COLORS.get(record.levelname, self.RESET)
        record.levelname = f"{color}{record.levelname:8}{self.RESET}"
        message = super().format(record)
        context = getattr(record, "context", None)
        if context:
            message = f"{message} | {json.dumps(context, default=str)}"
        return message


_sql_timing_registered = False


def _register_sql_timing() -> None:
    global _sql_timing_registered
    if _sql_timing_registered:
        return

    @event.listens_for(Engine, "before_cursor_execute")
    def before_cursor_execute(conn, cursor, statement, parameters, context, executemany):
        conn.info.setdefault("query_start_time", []).append(time.time())

    @event.listens_for(Engine, "after_cursor_execute")
    def after_cursor_execute(conn, cursor, statement, parameters, context, executemany):
        started = conn.info.get("query_start_time")
        if not started:
            return
        total_time = time.time() - started.pop(-1)
        logging.getLogger("sqlalchemy.performance").debug(
            f"Query executed in {total_time * 1000:.2f}ms",
            extra={
                "context": {
                    "sql_query": statement[:500],
                    "sql_duration_ms": round(total_time * 1000, 2),
                }
            },
        )

    _sql_timing_registered = True


def setup_logging(
    app: Optional[Flask] = None,
    log_level: Union[int, str] = "INFO",
    enable_sql_echo: bool = False,
    log_to_file: bool = True,
    use_json_format: bool = False,
    log_dir: Optional[Path] = None,
) -> None:
    """
    Configure logging for the booking core and, optionally, a Flask app.

    Args:
        app: Flask application instance (enables request/response hooks)
        log_level: Logging level (int like logging.INFO or string "INFO")
        enable_sql_echo: Enable SQLAlchemy query logging with timings
        log_to_file: Write logs to rotating files under ``log_dir``
        use_json_format: Use JSON format instead of console format
        log_dir: Directory for log files (defaults to backend/logs)
    """
    if isinstance(log_level, int):
        level = log_level
    else:
        level = getattr(logging, str(log_level).upper(), logging.INFO)

    log_dir = log_dir or Path(__file__).parent.parent.parent / "logs"
    early_warnings = []
    if log_to_file:
        try:
            log_dir.mkdir(exist_ok=True)
        except OSError as e:
            early_warnings.append(
                f"Failed to create logs directory: {e}. Logging will only go to console."
            )
            log_to_file = False

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    for handler in root_logger.handlers[:]:
        handler.close()
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    if use_json_format:
        console_handler.setFormatter(JSONFormatter())
    else:
        console_handler.setFormatter(
            ConsoleFormatter(
                "%(asctime)s | %(levelname)s | %(name)s | %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
    root_logger.addHandler(console_handler)

    for msg in early_warnings:
        root_logger.warning(msg, extra={"context": {"component": "logging_setup"}})

    if log_to_file:
        file_formatter = JSONFormatter()  # Always JSON for files
        for filename, handler_level in (
            ("marketplace.log", level),
            ("marketplace_errors.log", logging.ERROR),
        ):
            try:
                file_handler = logging.handlers.RotatingFileHandler(
                    log_dir / filename,
                    maxBytes=10 * 1024 * 1024,  # 10 MB
                    backupCount=5,
                    encoding="utf-8",
                )
            except OSError as e:
                root_logger.warning(
                    f"Failed to create file handler for {filename}: {e}. "
                    "Falling back to console-only logging.",
                    extra={"context": {"component": "logging_setup"}},
                )
                continue
            file_handler.setLevel(handler_level)
            file_handler.setFormatter(file_formatter)
            root_logger.addHandler(file_handler)

    if enable_sql_echo:
        logging.getLogger("sqlalchemy.engine").setLevel(logging.INFO)
        _register_sql_timing()

    if app is not None:

        @app.before_request
        def log_request():
            g.request_start_time = time.time()
            g.request_id = request.headers.get("X-Request-Id") or f"{time.time()}-{id(request)}"
            logging.getLogger("flask.request").info(
                f"{request.method} {request.path}",
                extra={
                    "context": {
                        "request_id": g.request_id,
                        "method": request.method,
                        "path": request.path,
                        "caller_id": request.headers.get("X-Caller-Id"),
                        "remote_addr": request.remote_addr,
                    }
                },
            )

        @app.after_request
        def log_response(response):
            if hasattr(g, "request_start_time"):
                duration_ms = (time.time() - g.request_start_time) * 1000
                logging.getLogger("flask.response").info(
                    f"{request.method} {request.path} {response.status_code} in {duration_ms:.2f}ms",
                    extra={
                        "context": {
                            "request_id": g.get("request_id"),
                            "status_code": response.status_code,
                            "duration_ms": round(duration_ms, 2),
                        }
                    },
                )
            return response

    logging.getLogger("werkzeug").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)

    app_logger = logging.getLogger("marketplace")
    app_logger.setLevel(level)
    app_logger.info(
        f"Logging configured: level={level}, sql_echo={enable_sql_echo}, "
        f"log_to_file={log_to_file}, json_format={use_json_format}"
    )


def log_performance(func_name: str, duration_ms: float, **kwargs) -> None:
    """
    Log performance metrics for a function or operation.

    Args:
        func_name: Name of the function or operation
        duration_ms: Execution duration in milliseconds
        **kwargs: Additional context (provider_id, record_count, etc.)
    """
    perf_logger = logging.getLogger("marketplace.performance")
    context = {"function": func_name, "duration_ms": round(duration_ms, 2)}
    context.update(kwargs)
    perf_logger.info(
        f"{func_name} completed in {duration_ms:.2f}ms",
        extra={"context": context},
    )
