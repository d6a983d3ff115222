"""
CertSeal Error Taxonomy

Every failure the protocol can report has its own type so that callers
never confuse "this certificate does not exist" with "this certificate
was forged". The verification engine converts all of these into verdicts;
only issuance lets them propagate.
"""

from typing import Any, Dict, List, Optional


class CertificateError(Exception):
    """Base class for all CertSeal protocol errors."""
    code = "CERTIFICATE_ERROR"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        d = {"error_code": self.code, "message": self.message}
        d.update(self.details)
        return d


class ValidationError(CertificateError):
    """Raised when raw issuance input fails field constraints."""
    code = "VALIDATION_FAILED"

    def __init__(self, field: str, message: str):
        self.field = field
        super().__init__(f"{field}: {message}", {"field": field})


class MalformedIdError(CertificateError):
    """Raised when a certificate ID does not match the public ID format."""
    code = "MALFORMED_ID"

    def __init__(self, message: str = "Certificate ID is not in the expected format"):
        super().__init__(message)


class UnknownCertificateError(CertificateError):
    """No record exists for the presented certificate ID."""
    code = "UNKNOWN_CERTIFICATE"

    def __init__(self, certificate_id: str):
        self.certificate_id = certificate_id
        super().__init__("No certificate with this ID was issued by this system")


class RevokedError(CertificateError):
    """The record exists but is no longer active."""
    code = "REVOKED"

    def __init__(self, certificate_id: str):
        self.certificate_id = certificate_id
        super().__init__("Certificate was issued by this system but has been revoked")


class TamperDetectedError(CertificateError):
    """A digest, ID or signature comparison failed against an existing record."""
    code = "TAMPER_DETECTED"

    def __init__(self, certificate_id: str, failed_checks: List[str]):
        self.certificate_id = certificate_id
        self.failed_checks = list(failed_checks)
        super().__init__(
            "Certificate content does not match the issued record",
            {"failed_checks": self.failed_checks},
        )


class VerificationError(CertificateError):
    """Upstream extraction or transport failure; the outcome is unknown."""
    code = "VERIFICATION_ERROR"


class StoreError(CertificateError):
    """Record store failure."""
    code = "STORE_ERROR"


class DuplicateRecordError(StoreError):
    """A record with the same certificate ID already exists."""
    code = "DUPLICATE_RECORD"

    def __init__(self, certificate_id: str):
        self.certificate_id = certificate_id
        super().__init__(f"Record already exists: {certificate_id}")


class StoreUnavailableError(StoreError):
    """The backing store could not be reached or queried."""
    code = "STORE_UNAVAILABLE"
