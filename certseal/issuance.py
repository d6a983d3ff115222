"""
CertSeal Issuance Pipeline

Produces certificate records:

    validate -> claim -> canonical form -> digest -> certificate ID
             -> issuer seal -> record -> renderer -> record store

Validation failures stop the pipeline before anything is hashed. A record
reaches the store in a single write, or not at all.
"""

import collections.abc
import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, Mapping, Optional, Tuple

from .canonicalization import encode
from .claim import (
    CertificateClaim,
    create_claim,
    generate_nonce,
    now_epoch_millis,
    validate_course_name,
    validate_subject_name,
)
from .errors import ValidationError
from .hashing import integrity_digest
from .identifiers import derive_id
from .signing import SealSigner, seal_payload


logger = logging.getLogger(__name__)

SERIAL_NUMBER_BYTES = 12


class CertificateStatus(str, Enum):
    """Lifecycle status of an issued certificate."""
    ACTIVE = "ACTIVE"
    REVOKED = "REVOKED"


@dataclass(frozen=True)
class CertificateRecord:
    """
    Persisted certificate record.

    Created once at issuance. Only the revocation workflow may change its
    status; verification never writes to it.
    """
    certificate_id: str
    digest: str
    claim: CertificateClaim
    status: CertificateStatus = CertificateStatus.ACTIVE
    serial_number: Optional[str] = None
    signature: Optional[str] = None
    key_id: Optional[str] = None

    @property
    def issued_at(self) -> datetime:
        return datetime.fromtimestamp(self.claim.issued_at_epoch_millis / 1000, tz=timezone.utc)

    def is_active(self) -> bool:
        return self.status == CertificateStatus.ACTIVE

    def with_status(self, status: CertificateStatus) -> 'CertificateRecord':
        return CertificateRecord(
            certificate_id=self.certificate_id,
            digest=self.digest,
            claim=self.claim,
            status=CertificateStatus(status),
            serial_number=self.serial_number,
            signature=self.signature,
            key_id=self.key_id,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "certificate_id": self.certificate_id,
            "digest": self.digest,
            "claim": self.claim.to_fields(),
            "status": self.status.value,
            "serial_number": self.serial_number,
            "signature": self.signature,
            "key_id": self.key_id,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CertificateRecord':
        return cls(
            certificate_id=data["certificate_id"],
            digest=data["digest"],
            claim=CertificateClaim.from_fields(data["claim"]),
            status=CertificateStatus(data.get("status", CertificateStatus.ACTIVE.value)),
            serial_number=data.get("serial_number"),
            signature=data.get("signature"),
            key_id=data.get("key_id"),
        )

    def public_summary(self) -> Dict[str, Any]:
        """Record fields that may be shown to an anonymous verifier."""
        return {
            "certificate_id": self.certificate_id,
            "status": self.status.value,
            "issue_date": self.issued_at.date().isoformat(),
            "serial_number": self.serial_number,
        }


@dataclass(frozen=True)
class RenderRequest:
    """What a document renderer receives for embedding."""
    claim: CertificateClaim
    certificate_id: str
    digest: str


def generate_serial_number() -> str:
    return secrets.token_hex(SERIAL_NUMBER_BYTES).upper()


def validate_raw_input(raw: Mapping[str, Any]) -> Tuple[str, str]:
    """
    Validate raw issuance input.

    Outer whitespace is stripped; whitespace-only values are rejected.

    Returns:
        (subject_name, course_or_exam_name)

    Raises:
        ValidationError: naming the first offending field
    """
    if not isinstance(raw, collections.abc.Mapping):
        raise ValidationError("input", "must be an object")
    return validate_subject_name(raw), validate_course_name(raw)


class IssuancePipeline:
    """
    Certificate issuance.

    Collaborators are injected:
    - store: RecordStore receiving exactly one put per successful issue
    - signer: optional SealSigner sealing the record
    - renderer: optional callable receiving a RenderRequest before the
      record is stored; an exception aborts issuance
    - clock / nonce_factory / serial_factory: overridable for tests
    """

    def __init__(
        self,
        store,
        signer: Optional[SealSigner] = None,
        renderer: Optional[Callable[[RenderRequest], Any]] = None,
        clock: Optional[Callable[[], int]] = None,
        nonce_factory: Optional[Callable[[], str]] = None,
        serial_factory: Optional[Callable[[], str]] = None,
    ):
        self.store = store
        self.signer = signer
        self.renderer = renderer
        self._clock = clock or now_epoch_millis
        self._nonce_factory = nonce_factory or generate_nonce
        self._serial_factory = serial_factory or generate_serial_number

    def build_record(self, raw: Mapping[str, Any]) -> CertificateRecord:
        """Run every step except rendering and persistence."""
        subject_name, course_name = validate_raw_input(raw)

        claim = create_claim(
            subject_name=subject_name,
            course_or_exam_name=course_name,
            issued_at_epoch_millis=self._clock(),
            nonce=self._nonce_factory(),
        )

        canonical = encode(claim)
        digest = integrity_digest(canonical)
        certificate_id = derive_id(digest, claim)

        signature = key_id = None
        if self.signer is not None:
            sealed = self.signer.sign(
                seal_payload(certificate_id, digest, claim.issued_at_epoch_millis)
            )
            signature, key_id = sealed["sig"], sealed["key_id"]

        return CertificateRecord(
            certificate_id=certificate_id,
            digest=digest,
            claim=claim,
            status=CertificateStatus.ACTIVE,
            serial_number=self._serial_factory(),
            signature=signature,
            key_id=key_id,
        )

    def issue(self, raw: Mapping[str, Any]) -> CertificateRecord:
        """
        Issue a certificate.

        Args:
            raw: Mapping with subject_name and course_or_exam_name

        Returns:
            The persisted CertificateRecord

        Raises:
            ValidationError: Raw input failed field constraints
            StoreError: The record could not be persisted
        """
        record = self.build_record(raw)

        if self.renderer is not None:
            self.renderer(RenderRequest(
                claim=record.claim,
                certificate_id=record.certificate_id,
                digest=record.digest,
            ))

        self.store.put(record)
        logger.info("Issued certificate %s", record.certificate_id)
        return record
