"""
CertSeal Verification Engine

Confirms that a presented certificate was issued by this system and has
not been modified. Two kinds of request are accepted:

- DocumentEvidence: metadata extracted from a presented document. The
  claim is re-encoded and re-hashed, the ID re-derived, and everything is
  compared against the claimed values and the stored record.
- BareId: a certificate ID typed in by a verifier. Only existence and
  status are checked; no document is available to re-hash, so this path
  cannot detect content tampering.

Both requests go through one function and produce the same verdict type.
Verification never writes to the record store.
"""

import hmac
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Union

from .canonicalization import encode
from .claim import CertificateClaim
from .errors import (
    CertificateError,
    MalformedIdError,
    RevokedError,
    StoreError,
    TamperDetectedError,
    UnknownCertificateError,
    VerificationError,
)
from .hashing import digests_equal, integrity_digest, is_digest
from .identifiers import derive_id, is_well_formed, validate_certificate_id
from .issuance import CertificateRecord
from .signing import SealSigner, seal_payload


logger = logging.getLogger(__name__)


class SecurityLevel(str, Enum):
    """Security classification shared by both verification paths."""
    VERIFIED = "VERIFIED"
    TAMPER_DETECTED = "TAMPER_DETECTED"
    UNKNOWN = "UNKNOWN"
    REVOKED = "REVOKED"
    VERIFICATION_FAILED = "VERIFICATION_FAILED"


class VerificationMethod(str, Enum):
    DOCUMENT_REHASH = "DOCUMENT_REHASH"
    ID_LOOKUP = "ID_LOOKUP"


# What each method actually proves
GUARANTEES = {
    VerificationMethod.DOCUMENT_REHASH: "CONTENT_INTEGRITY",
    VerificationMethod.ID_LOOKUP: "ID_EXISTENCE_ONLY",
}


@dataclass(frozen=True)
class DocumentEvidence:
    """Metadata an external extractor pulled out of a presented document."""
    claimed_digest: str
    claimed_id: str
    extracted_claim_fields: Mapping[str, Any]


@dataclass(frozen=True)
class BareId:
    """A certificate ID presented without a document."""
    certificate_id: str


VerificationRequest = Union[DocumentEvidence, BareId]


@dataclass
class Check:
    """A single comparison made during document verification."""
    name: str
    passed: bool

    def to_dict(self) -> Dict[str, Any]:
        return {"check": self.name, "passed": self.passed}


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


@dataclass
class VerificationVerdict:
    """Result of one verification call. Never persisted as authoritative state."""
    valid: bool
    security_level: SecurityLevel
    tamper_detected: bool
    verification_method: VerificationMethod
    details: Dict[str, Any] = field(default_factory=dict)
    certificate_id: Optional[str] = None
    verification_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    verified_at: str = field(default_factory=_utc_now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "valid": self.valid,
            "security_level": self.security_level.value,
            "tamper_detected": self.tamper_detected,
            "verification_method": self.verification_method.value,
            "certificate_id": self.certificate_id,
            "details": self.details,
            "verification_id": self.verification_id,
            "verified_at": self.verified_at,
        }


VERIFIED_MESSAGES = {
    VerificationMethod.DOCUMENT_REHASH: "Certificate is authentic and its content is unmodified",
    VerificationMethod.ID_LOOKUP: "Certificate ID is registered and active; document content was not checked",
}

# Checked in MRO order, so subclasses resolve to their nearest entry
_ERROR_LEVELS = {
    TamperDetectedError: SecurityLevel.TAMPER_DETECTED,
    UnknownCertificateError: SecurityLevel.UNKNOWN,
    RevokedError: SecurityLevel.REVOKED,
    MalformedIdError: SecurityLevel.VERIFICATION_FAILED,
    VerificationError: SecurityLevel.VERIFICATION_FAILED,
}


def _level_for(error: CertificateError) -> SecurityLevel:
    for cls in type(error).__mro__:
        if cls in _ERROR_LEVELS:
            return _ERROR_LEVELS[cls]
    return SecurityLevel.VERIFICATION_FAILED


class VerificationEngine:
    """
    Verification engine.

    Args:
        store: RecordStore used for read-only lookups
        signer: Optional SealSigner; when given, the issuer seal on stored
            records is checked during document verification
    """

    def __init__(self, store, signer: Optional[SealSigner] = None):
        self.store = store
        self.signer = signer

    def verify(self, request: VerificationRequest) -> VerificationVerdict:
        """
        Verify a request and return a verdict.

        Protocol errors are reported inside the verdict and never raised.
        """
        if isinstance(request, DocumentEvidence):
            method = VerificationMethod.DOCUMENT_REHASH
            presented_id = request.claimed_id
        elif isinstance(request, BareId):
            method = VerificationMethod.ID_LOOKUP
            presented_id = request.certificate_id
        else:
            raise TypeError(f"Unsupported verification request: {type(request).__name__}")

        certificate_id = presented_id if is_well_formed(presented_id) else None
        checks: List[Check] = []

        try:
            try:
                if method == VerificationMethod.DOCUMENT_REHASH:
                    record = self._verify_document(request, checks)
                else:
                    record = self._verify_id(request)
            except StoreError as e:
                raise VerificationError(f"Record store unavailable: {e.message}")
        except CertificateError as e:
            verdict = self._error_verdict(e, method, certificate_id, checks)
        else:
            verdict = self._verified_verdict(record, method, checks)

        logger.info(
            "Verification %s via %s: %s",
            verdict.verification_id, method.value, verdict.security_level.value,
        )
        return verdict

    def reject(self, error: CertificateError, method: VerificationMethod) -> VerificationVerdict:
        """
        Verdict for a request that could not be assembled, such as document
        text with no readable metadata. Nothing is looked up.
        """
        verdict = self._error_verdict(error, method, None, [])
        logger.info(
            "Verification %s via %s: %s (request rejected)",
            verdict.verification_id, method.value, verdict.security_level.value,
        )
        return verdict

    def _verify_document(self, evidence: DocumentEvidence, checks: List[Check]) -> CertificateRecord:
        claim = CertificateClaim.from_fields(evidence.extracted_claim_fields)
        if not is_digest(evidence.claimed_digest):
            raise VerificationError("Claimed digest is not a 128-character hex value")
        validate_certificate_id(evidence.claimed_id)

        try:
            canonical = encode(claim)
        except (TypeError, UnicodeEncodeError) as e:
            raise VerificationError(f"Extracted claim fields cannot be encoded: {e}")
        recomputed_digest = integrity_digest(canonical)
        recomputed_id = derive_id(recomputed_digest, claim)

        checks.append(Check(
            "recomputed_digest_matches_claimed",
            digests_equal(recomputed_digest, evidence.claimed_digest),
        ))
        checks.append(Check(
            "recomputed_id_matches_claimed",
            hmac.compare_digest(recomputed_id, evidence.claimed_id),
        ))

        record = self.store.get_by_id(evidence.claimed_id)
        if record is None:
            raise UnknownCertificateError(evidence.claimed_id)

        checks.append(Check(
            "stored_digest_matches_claimed",
            digests_equal(record.digest, evidence.claimed_digest),
        ))
        checks.append(Check(
            "stored_digest_matches_recomputed",
            digests_equal(record.digest, recomputed_digest),
        ))
        checks.append(Check(
            "stored_id_matches_claimed",
            hmac.compare_digest(record.certificate_id, evidence.claimed_id),
        ))

        if self.signer is not None and record.signature and record.key_id == self.signer.key_id:
            payload = seal_payload(record.certificate_id, record.digest, record.claim.issued_at_epoch_millis)
            checks.append(Check(
                "issuer_signature_valid",
                self.signer.verify(payload, record.signature, record.key_id),
            ))

        failed = [c.name for c in checks if not c.passed]
        if failed:
            raise TamperDetectedError(evidence.claimed_id, failed)

        if not record.is_active():
            raise RevokedError(record.certificate_id)
        return record

    def _verify_id(self, request: BareId) -> CertificateRecord:
        # Format check comes first: garbage input never reaches the store
        validate_certificate_id(request.certificate_id)

        record = self.store.get_by_id(request.certificate_id)
        if record is None:
            raise UnknownCertificateError(request.certificate_id)
        if not record.is_active():
            raise RevokedError(record.certificate_id)
        return record

    def _verified_verdict(
        self,
        record: CertificateRecord,
        method: VerificationMethod,
        checks: List[Check],
    ) -> VerificationVerdict:
        details = {
            "error_code": None,
            "message": VERIFIED_MESSAGES[method],
            "guarantee": GUARANTEES[method],
            "record": record.public_summary(),
        }
        if method == VerificationMethod.DOCUMENT_REHASH:
            details["checks"] = [c.to_dict() for c in checks]
        return VerificationVerdict(
            valid=True,
            security_level=SecurityLevel.VERIFIED,
            tamper_detected=False,
            verification_method=method,
            details=details,
            certificate_id=record.certificate_id,
        )

    def _error_verdict(
        self,
        error: CertificateError,
        method: VerificationMethod,
        certificate_id: Optional[str],
        checks: List[Check],
    ) -> VerificationVerdict:
        level = _level_for(error)
        details = error.to_dict()
        details["guarantee"] = GUARANTEES[method]
        if method == VerificationMethod.DOCUMENT_REHASH:
            details["checks"] = [c.to_dict() for c in checks]
        return VerificationVerdict(
            valid=False,
            security_level=level,
            tamper_detected=level == SecurityLevel.TAMPER_DETECTED,
            verification_method=method,
            details=details,
            certificate_id=certificate_id,
        )


def verify_document(
    store,
    evidence: DocumentEvidence,
    signer: Optional[SealSigner] = None,
) -> VerificationVerdict:
    """Convenience function for document verification."""
    return VerificationEngine(store, signer=signer).verify(evidence)


def verify_id(store, certificate_id: str) -> VerificationVerdict:
    """Convenience function for anonymous ID lookup."""
    return VerificationEngine(store).verify(BareId(certificate_id))
