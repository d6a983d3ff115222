"""
CertSeal Certificate Identifiers

A certificate ID is a short, typable public lookup key:

    CERT-XXXX-XXXX-XXXX-<tag>-XXXX

The four XXXX segments are uppercase hex slices of the integrity digest,
so an ID can be recomputed from a presented document without a lookup
table. The tag hints at the course without revealing anything about the
certificate holder.
"""

import hashlib
import re
import string
from typing import NamedTuple

from .claim import CertificateClaim
from .errors import MalformedIdError
from .hashing import is_digest


ID_PREFIX = "CERT"
MAX_ID_LENGTH = 64

CERTIFICATE_ID_PATTERN = re.compile(
    r'^CERT-([A-F0-9]{4})-([A-F0-9]{4})-([A-F0-9]{4})-([A-Z0-9]+)-([A-F0-9]{4})$'
)

# (start, end) byte offsets into the 64-byte digest
LEADING_SLICES = ((0, 2), (2, 4), (4, 6))
TRAILING_SLICE = (62, 64)

TAG_HINT_LENGTH = 3
TAG_HASH_LENGTH = 3
_BASE36 = string.digits + string.ascii_uppercase


class CertificateIdParts(NamedTuple):
    """Named segments of a well-formed certificate ID."""
    segment1: str
    segment2: str
    segment3: str
    course_tag: str
    checksum: str


def _digest_slice(digest_bytes: bytes, bounds) -> str:
    start, end = bounds
    return digest_bytes[start:end].hex().upper()


def _base36(value: int, width: int) -> str:
    chars = []
    for _ in range(width):
        value, rem = divmod(value, 36)
        chars.append(_BASE36[rem])
    return ''.join(reversed(chars))


def course_tag(course_or_exam_name: str) -> str:
    """
    Derive the course tag segment.

    First three alphanumeric characters of the name (uppercased, padded with
    'X') followed by three base-36 characters of SHA-256(name).
    """
    hint = ''.join(ch for ch in course_or_exam_name if ch.isascii() and ch.isalnum())
    hint = hint[:TAG_HINT_LENGTH].upper().ljust(TAG_HINT_LENGTH, 'X')

    h = hashlib.sha256(course_or_exam_name.encode('utf-8')).digest()
    suffix = _base36(int.from_bytes(h[:8], 'big'), TAG_HASH_LENGTH)
    return hint + suffix


def derive_id(digest: str, claim: CertificateClaim) -> str:
    """
    Derive the certificate ID from a digest and its claim.

    Same digest and same claim always yield the same ID.
    """
    if not is_digest(digest):
        raise ValueError("digest must be 128 hex characters")

    digest_bytes = bytes.fromhex(digest)
    lead = [_digest_slice(digest_bytes, b) for b in LEADING_SLICES]
    tail = _digest_slice(digest_bytes, TRAILING_SLICE)
    tag = course_tag(claim.course_or_exam_name)

    return '-'.join([ID_PREFIX, *lead, tag, tail])


def is_well_formed(value) -> bool:
    """Check a candidate ID against the public ID format."""
    if not isinstance(value, str) or len(value) > MAX_ID_LENGTH:
        return False
    return CERTIFICATE_ID_PATTERN.fullmatch(value) is not None


def validate_certificate_id(value) -> str:
    """
    Validate a candidate ID.

    Raises:
        MalformedIdError: If the value does not match the ID format
    """
    if not is_well_formed(value):
        raise MalformedIdError()
    return value


def parse_certificate_id(value: str) -> CertificateIdParts:
    """Split a well-formed ID into its named segments."""
    validate_certificate_id(value)
    return CertificateIdParts(*CERTIFICATE_ID_PATTERN.fullmatch(value).groups())


def id_matches_digest(certificate_id: str, digest: str) -> bool:
    """Check that the hex segments of an ID agree with a digest."""
    if not is_well_formed(certificate_id) or not is_digest(digest):
        return False

    parts = parse_certificate_id(certificate_id)
    digest_bytes = bytes.fromhex(digest)
    expected = [_digest_slice(digest_bytes, b) for b in LEADING_SLICES]
    expected.append(_digest_slice(digest_bytes, TRAILING_SLICE))
    return [parts.segment1, parts.segment2, parts.segment3, parts.checksum] == expected
