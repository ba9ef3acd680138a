"""
Production logging utility for structured JSON logging.

Provides event-specific logging functions with mandatory fields:
- timestamp (ISO8601)
- level
- service
- event

Optional fields (included when applicable):
- path
- size_bytes
- duration_ms

Signature tokens and the shared secret are never passed to these helpers.

Usage:
    from httpupload.utils.logging import configure_logging, log_upload_created

    configure_logging('httpupload', 'INFO')
    log_upload_created(logger, path='/a/b.png', size_bytes=10, duration_ms=4.2)
"""
import logging
import sys
from typing import Optional, Dict, Any
from pythonjsonlogger import jsonlogger


def build_formatter() -> jsonlogger.JsonFormatter:
    """JSON formatter emitting timestamp, level, logger name and message."""
    return jsonlogger.JsonFormatter(
        '%(timestamp)s %(levelname)s %(name)s %(message)s',
        rename_fields={"levelname": "level"},
        timestamp=True,
        json_ensure_ascii=False
    )


class StructuredLogger:
    """Structured JSON logger with mandatory fields."""

    _service_name = None
    _configured = False

    @classmethod
    def configure(cls, service_name: str, log_level: str = "INFO"):
        """
        Configure structured JSON logging for the application.

        Args:
            service_name: Service identifier
            log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        """
        if cls._configured:
            return  # Already configured

        cls._service_name = service_name

        # Remove default handlers
        root_logger = logging.getLogger()
        root_logger.handlers = []

        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(build_formatter())

        root_logger.addHandler(handler)
        root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

        # Add service name to all log records via filter
        class ServiceFilter(logging.Filter):
            def filter(self, record):
                record.service = cls._service_name
                return True

        handler.addFilter(ServiceFilter())
        cls._configured = True


def _build_log_extra(
    event: str,
    path: Optional[str] = None,
    size_bytes: Optional[int] = None,
    duration_ms: Optional[float] = None,
    **kwargs
) -> Dict[str, Any]:
    """
    Build extra fields for structured logging.

    Args:
        event: Event name (mandatory)
        path: Optional request path
        size_bytes: Optional number of bytes
        duration_ms: Optional duration in milliseconds
        **kwargs: Additional fields

    Returns:
        Dictionary of extra fields
    """
    extra = {
        "event": event,
        **kwargs
    }

    if path:
        extra["path"] = path
    if size_bytes is not None:
        extra["size_bytes"] = size_bytes
    if duration_ms is not None:
        extra["duration_ms"] = round(duration_ms, 2)

    return extra


def log_server_started(
    logger: logging.Logger,
    listen_address: str,
    storage_path: str,
    **kwargs
):
    """Log startup, with where the server listens and stores files."""
    extra = _build_log_extra(
        event="server_started",
        listen_address=listen_address,
        storage_path=storage_path,
        **kwargs
    )

    logger.info(f"Starting up HTTP upload server on {listen_address}", extra=extra)


def log_upload_created(
    logger: logging.Logger,
    path: str,
    size_bytes: int,
    duration_ms: Optional[float] = None,
    **kwargs
):
    """
    Log a successfully stored upload.

    Args:
        logger: Logger instance
        path: Request path (required)
        size_bytes: Bytes written (required)
        duration_ms: Optional duration in milliseconds
        **kwargs: Additional fields
    """
    extra = _build_log_extra(
        event="upload_created",
        path=path,
        size_bytes=size_bytes,
        duration_ms=duration_ms,
        **kwargs
    )

    logger.info(f"Upload created: {path}", extra=extra)


def log_upload_conflict(
    logger: logging.Logger,
    path: str,
    **kwargs
):
    """Log an upload refused because the path is taken."""
    extra = _build_log_extra(
        event="upload_conflict",
        path=path,
        **kwargs
    )

    logger.info(f"Upload conflict, already exists: {path}", extra=extra)


def log_upload_rejected(
    logger: logging.Logger,
    path: str,
    status_code: int,
    reason: Optional[str] = None,
    scheme: Optional[str] = None,
    **kwargs
):
    """
    Log an upload rejected before reaching storage.

    Args:
        logger: Logger instance
        path: Request path (required)
        status_code: HTTP status returned to the client (required)
        reason: Internal rejection reason (missing_token, mismatch, ...)
        scheme: Signature scheme evaluated, if any
        **kwargs: Additional fields
    """
    extra = _build_log_extra(
        event="upload_rejected",
        path=path,
        status_code=status_code,
        **kwargs
    )
    if reason:
        extra["reason"] = reason
    if scheme:
        extra["scheme"] = scheme

    logger.warning(f"Upload rejected ({status_code}): {path}", extra=extra)


def log_upload_failed(
    logger: logging.Logger,
    path: str,
    error: str,
    size_bytes: Optional[int] = None,
    include_traceback: bool = True,
    **kwargs
):
    """
    Log an upload that failed on the server side.

    Args:
        logger: Logger instance
        path: Request path (required)
        error: Error message (required)
        size_bytes: Optional bytes written before the failure
        include_traceback: Whether to include stack trace (default: True)
        **kwargs: Additional fields
    """
    extra = _build_log_extra(
        event="upload_failed",
        path=path,
        size_bytes=size_bytes,
        error=str(error),
        **kwargs
    )

    message = f"Error processing PUT {path}: {error}"

    if include_traceback:
        exc_info = sys.exc_info()
        if exc_info[0] is not None:
            logger.error(message, extra=extra, exc_info=exc_info)
        else:
            logger.error(message, extra=extra)
    else:
        logger.error(message, extra=extra)


def configure_logging(service_name: str, log_level: str = "INFO"):
    """Configure logging (alias for StructuredLogger.configure)."""
    StructuredLogger.configure(service_name, log_level)
