"""
CertSeal Certificate Claim

The semantic payload of a certificate before hashing. A claim holds
exactly seven fields; nothing else may ever enter its canonical form.
"""

import collections.abc
import re
import secrets
import time
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Tuple

from .errors import ValidationError, VerificationError


FORMAT_VERSION = "4.0"
ISSUER_TAG = "CertSeal Certificate System"
INTEGRITY_ALGORITHM_TAG = "SHA-512"

NONCE_BYTES = 16

# attribute name -> canonical wire name
WIRE_FIELDS: Tuple[Tuple[str, str], ...] = (
    ("subject_name", "subjectName"),
    ("course_or_exam_name", "courseOrExamName"),
    ("issued_at_epoch_millis", "issuedAtEpochMillis"),
    ("nonce", "nonce"),
    ("format_version", "formatVersion"),
    ("issuer_tag", "issuerTag"),
    ("integrity_algorithm_tag", "integrityAlgorithmTag"),
)
WIRE_FIELD_NAMES = frozenset(wire for _, wire in WIRE_FIELDS)
INTEGER_FIELDS = frozenset({"issuedAtEpochMillis"})

SUBJECT_NAME_PATTERN = re.compile(r"^[A-Za-z .'\-]+$")
COURSE_NAME_PATTERN = re.compile(r"^[A-Za-z0-9 .,:;&()'/+#\-]+$")
NONCE_PATTERN = re.compile(r"^[a-f0-9]{32}$")

SUBJECT_NAME_LENGTH = (2, 100)
COURSE_NAME_LENGTH = (5, 200)


@dataclass(frozen=True)
class CertificateClaim:
    """
    Certificate claim.

    Fields:
    - subject_name: Person the certificate is issued to
    - course_or_exam_name: What was completed
    - issued_at_epoch_millis: Issuance time, Unix epoch milliseconds
    - nonce: 128-bit random value, lowercase hex
    - format_version / issuer_tag / integrity_algorithm_tag: system constants
    """
    subject_name: str
    course_or_exam_name: str
    issued_at_epoch_millis: int
    nonce: str
    format_version: str = FORMAT_VERSION
    issuer_tag: str = ISSUER_TAG
    integrity_algorithm_tag: str = INTEGRITY_ALGORITHM_TAG

    def to_fields(self) -> Dict[str, Any]:
        """Return exactly the seven canonical wire fields."""
        return {wire: getattr(self, attr) for attr, wire in WIRE_FIELDS}

    @classmethod
    def from_fields(cls, fields: Mapping[str, Any]) -> 'CertificateClaim':
        """
        Rebuild a claim from wire fields supplied by a document extractor.

        Only structure is checked here. Values are taken as-is so that any
        alteration shows up later as a digest mismatch.
        """
        if not isinstance(fields, collections.abc.Mapping):
            raise VerificationError("Extracted claim fields must be an object")

        keys = set(fields.keys())
        missing = sorted(WIRE_FIELD_NAMES - keys)
        extra = sorted(str(k) for k in keys - WIRE_FIELD_NAMES)
        if missing or extra:
            raise VerificationError(
                "Extracted claim fields do not match the certificate field set",
                {"missing_fields": missing, "unexpected_fields": extra},
            )

        for _, wire in WIRE_FIELDS:
            value = fields[wire]
            if wire in INTEGER_FIELDS:
                ok = isinstance(value, int) and not isinstance(value, bool)
            else:
                ok = isinstance(value, str)
            if not ok:
                raise VerificationError(
                    f"Extracted claim field has the wrong type: {wire}",
                    {"field": wire},
                )

        return cls(**{attr: fields[wire] for attr, wire in WIRE_FIELDS})


def generate_nonce() -> str:
    """Generate a 128-bit nonce as lowercase hex."""
    return secrets.token_hex(NONCE_BYTES)


def now_epoch_millis() -> int:
    return int(time.time() * 1000)


def _clean_text(raw: Mapping[str, Any], field: str) -> str:
    if field not in raw or raw[field] is None:
        raise ValidationError(field, "is required")
    value = raw[field]
    if not isinstance(value, str):
        raise ValidationError(field, "must be a string")
    value = value.strip()
    if not value:
        raise ValidationError(field, "cannot be empty")
    return value


def validate_subject_name(raw: Mapping[str, Any]) -> str:
    value = _clean_text(raw, "subject_name")
    lo, hi = SUBJECT_NAME_LENGTH
    if not lo <= len(value) <= hi:
        raise ValidationError("subject_name", f"must be between {lo} and {hi} characters")
    if not SUBJECT_NAME_PATTERN.fullmatch(value):
        raise ValidationError(
            "subject_name",
            "may only contain letters, spaces, periods, hyphens and apostrophes",
        )
    return value


def validate_course_name(raw: Mapping[str, Any]) -> str:
    value = _clean_text(raw, "course_or_exam_name")
    lo, hi = COURSE_NAME_LENGTH
    if not lo <= len(value) <= hi:
        raise ValidationError("course_or_exam_name", f"must be between {lo} and {hi} characters")
    if not COURSE_NAME_PATTERN.fullmatch(value):
        raise ValidationError("course_or_exam_name", "contains unsupported characters")
    return value


def create_claim(
    subject_name: str,
    course_or_exam_name: str,
    issued_at_epoch_millis: int,
    nonce: str,
) -> CertificateClaim:
    """
    Factory for claims with already-validated text fields.

    The timestamp and nonce are checked structurally; the constant fields
    are filled in from this module.
    """
    if not isinstance(issued_at_epoch_millis, int) or isinstance(issued_at_epoch_millis, bool):
        raise ValidationError("issued_at_epoch_millis", "must be an integer")
    if issued_at_epoch_millis < 0:
        raise ValidationError("issued_at_epoch_millis", "must not be negative")
    if not isinstance(nonce, str) or not NONCE_PATTERN.fullmatch(nonce):
        raise ValidationError("nonce", "must be 32 lowercase hex characters")

    return CertificateClaim(
        subject_name=subject_name,
        course_or_exam_name=course_or_exam_name,
        issued_at_epoch_millis=issued_at_epoch_millis,
        nonce=nonce,
    )
