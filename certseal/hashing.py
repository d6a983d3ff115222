"""
CertSeal Integrity Hashing

All certificate digests are SHA-512 over the exact canonical bytes, with
lowercase hexadecimal output. Hashing is unkeyed: it binds content, it
does not hide it.
"""

import hashlib
import hmac
import re

from .canonicalization import encode
from .claim import CertificateClaim


HASH_ALGORITHM = "SHA-512"
DIGEST_HEX_LENGTH = 128

_DIGEST_PATTERN = re.compile(r'^[a-fA-F0-9]{128}$')


def integrity_digest(canonical: bytes) -> str:
    """
    Compute the integrity digest of a canonical form.

    Only raw bytes are accepted; re-encoding a string or a parsed object
    here could normalize away a tamper signal.

    Returns:
        128 lowercase hex characters
    """
    if not isinstance(canonical, (bytes, bytearray, memoryview)):
        raise TypeError(
            f"integrity_digest expects canonical bytes, got {type(canonical).__name__}"
        )
    return hashlib.sha512(canonical).hexdigest()


def claim_digest(claim: CertificateClaim) -> str:
    """
    Compute the digest of a claim.

    digest = SHA-512(encode(claim))
    """
    return integrity_digest(encode(claim))


def is_digest(value) -> bool:
    """Check that a value looks like an integrity digest."""
    return isinstance(value, str) and bool(_DIGEST_PATTERN.fullmatch(value))


def digests_equal(a: str, b: str) -> bool:
    """Compare two hex digests in constant time, ignoring hex case."""
    if not isinstance(a, str) or not isinstance(b, str):
        return False
    return hmac.compare_digest(a.lower().encode('ascii', 'replace'), b.lower().encode('ascii', 'replace'))


def verify_digest(declared: str, canonical: bytes) -> bool:
    """Recompute the digest of canonical bytes and compare it to a declared one."""
    return digests_equal(declared, integrity_digest(canonical))
