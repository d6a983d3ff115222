"""
Security helpers for the CertSeal service.

Client identification for rate limiting and redaction for log output.
"""

from typing import Any, Dict, List, Optional


# Claim fields that identify a person and never go to logs
PERSONAL_FIELDS = ["subject_name", "subjectName"]

DEFAULT_SENSITIVE_FIELDS = ["signature", "private_key_b64", "secret", "password", "token"]


def extract_client_id(
    headers: Dict[str, str],
    client_host: Optional[str] = None,
    trust_proxy: bool = False,
) -> str:
    """
    Extract a client identifier for rate limiting.

    The peer address is used unless the service runs behind a trusted
    proxy, in which case the last X-Forwarded-For hop (the one that proxy
    appended) is used. Caller-supplied headers are otherwise ignored.
    """
    if trust_proxy:
        forwarded = headers.get("x-forwarded-for", "")
        hops = [h.strip() for h in forwarded.split(",") if h.strip()]
        if hops:
            return f"ip:{hops[-1]}"

    if client_host:
        return f"ip:{client_host}"

    return "anonymous"


def sanitize_for_logging(data: Dict[str, Any], sensitive_fields: List[str] = None) -> Dict[str, Any]:
    """
    Sanitize data for logging.

    Personal fields are dropped to a marker; secret-like fields are masked
    down to their first and last four characters.

    Args:
        data: The data to sanitize
        sensitive_fields: List of field names to mask

    Returns:
        Sanitized copy of the data
    """
    if sensitive_fields is None:
        sensitive_fields = DEFAULT_SENSITIVE_FIELDS

    result = {}
    for key, value in data.items():
        if key in PERSONAL_FIELDS:
            result[key] = "[REDACTED]"
        elif key in sensitive_fields:
            if isinstance(value, str) and len(value) > 8:
                result[key] = value[:4] + "..." + value[-4:]
            else:
                result[key] = "[REDACTED]"
        elif isinstance(value, dict):
            result[key] = sanitize_for_logging(value, sensitive_fields)
        elif isinstance(value, list):
            result[key] = [
                sanitize_for_logging(item, sensitive_fields) if isinstance(item, dict) else item
                for item in value
            ]
        else:
            result[key] = value

    return result
