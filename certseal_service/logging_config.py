"""
Logging configuration for the CertSeal service.

Provides structured JSON logging for audit trails and debugging. Audit
events never carry subject names, and digests are shortened.
"""

import json
import logging
import sys
import time
import uuid
from contextvars import ContextVar
from typing import List, Optional

# Context variable for request ID tracking
request_id_var: ContextVar[str] = ContextVar('request_id', default='')

DIGEST_PREFIX_LENGTH = 16


def short_digest(digest: Optional[str]) -> Optional[str]:
    """Shorten a digest for log output."""
    if not digest:
        return digest
    return digest[:DIGEST_PREFIX_LENGTH] + "..."


class StructuredFormatter(logging.Formatter):
    """
    JSON formatter for structured logging.

    Outputs logs in a consistent JSON format suitable for
    log aggregation systems.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": time.strftime('%Y-%m-%dT%H:%M:%SZ', time.gmtime(record.created)),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        request_id = request_id_var.get()
        if request_id:
            log_data["request_id"] = request_id

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        if hasattr(record, 'extra_fields'):
            log_data.update(record.extra_fields)

        return json.dumps(log_data)


class AuditLogger:
    """
    Specialized logger for audit events.

    Records issuance, verification outcomes and security-relevant
    events such as tamper detection and rate limiting.
    """

    def __init__(self, name: str = "certseal.audit"):
        self._logger = logging.getLogger(name)

    def _log(self, level: int, event_type: str, **kwargs) -> None:
        """Internal logging method with extra fields."""
        extra = {
            "event_type": event_type,
            "request_id": request_id_var.get(),
            **kwargs
        }

        record = self._logger.makeRecord(
            self._logger.name,
            level,
            "",
            0,
            f"{event_type}: {kwargs.get('message', '')}",
            (),
            None
        )
        record.extra_fields = extra
        self._logger.handle(record)

    def certificate_issued(
        self,
        certificate_id: str,
        digest: str,
        serial_number: Optional[str] = None,
        client_id: Optional[str] = None
    ) -> None:
        """Log a certificate issuance."""
        self._log(
            logging.INFO,
            "CERTIFICATE_ISSUED",
            certificate_id=certificate_id,
            digest=short_digest(digest),
            serial_number=serial_number,
            client_id=client_id,
            message=f"Certificate issued: {certificate_id}"
        )

    def verification_result(
        self,
        verification_id: str,
        method: str,
        security_level: str,
        certificate_id: Optional[str] = None,
        client_id: Optional[str] = None
    ) -> None:
        """Log the outcome of a verification call."""
        event_type = "CERTIFICATE_VERIFIED" if security_level == "VERIFIED" else "VERIFICATION_FAILED"
        level = logging.INFO if security_level == "VERIFIED" else logging.WARNING
        self._log(
            level,
            event_type,
            verification_id=verification_id,
            verification_method=method,
            security_level=security_level,
            certificate_id=certificate_id,
            client_id=client_id,
            message=f"Verification {security_level} via {method}"
        )

    def tamper_detected(
        self,
        verification_id: str,
        certificate_id: Optional[str],
        failed_checks: List[str],
        client_id: Optional[str] = None
    ) -> None:
        """Log a tamper detection."""
        self._log(
            logging.ERROR,
            "TAMPER_DETECTED",
            verification_id=verification_id,
            certificate_id=certificate_id,
            failed_checks=failed_checks,
            client_id=client_id,
            message=f"Tamper detected for {certificate_id}"
        )

    def security_event(
        self,
        event: str,
        severity: str = "medium",
        **details
    ) -> None:
        """Log a security-relevant event."""
        level = {
            "low": logging.INFO,
            "medium": logging.WARNING,
            "high": logging.ERROR,
            "critical": logging.CRITICAL
        }.get(severity, logging.WARNING)

        self._log(
            level,
            "SECURITY_EVENT",
            security_event=event,
            severity=severity,
            **details,
            message=f"Security event: {event}"
        )

    def rate_limit_exceeded(
        self,
        client_id: str,
        endpoint: str
    ) -> None:
        """Log rate limit exceeded."""
        self._log(
            logging.WARNING,
            "RATE_LIMIT_EXCEEDED",
            client_id=client_id,
            endpoint=endpoint,
            message=f"Rate limit exceeded for {client_id} on {endpoint}"
        )


def configure_logging(
    level: str = "INFO",
    json_format: bool = True,
    log_file: Optional[str] = None
) -> None:
    """
    Configure logging for the application.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_format: Use JSON formatting (recommended for production)
        log_file: Optional file path for log output
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper()))

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    if json_format:
        formatter = StructuredFormatter()
    else:
        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)


def set_request_id(request_id: Optional[str] = None) -> str:
    """
    Set the request ID for the current context.

    Args:
        request_id: Request ID to set, or None to generate one

    Returns:
        The request ID that was set
    """
    if request_id is None:
        request_id = str(uuid.uuid4())
    request_id_var.set(request_id)
    return request_id


def get_request_id() -> str:
    """Get the current request ID."""
    return request_id_var.get()


# Global audit logger instance
audit_log = AuditLogger()
