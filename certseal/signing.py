"""
CertSeal Issuer Signing

Uses Ed25519 (RFC 8032) to seal issued records. The seal covers the
certificate ID, its digest and the issuance time, so a record whose
digest was swapped in storage no longer verifies.

Keys are supplied by the deployment environment as a JSON key file:

    {"kid": "...", "private_key_b64": "...", "public_key_b64": "..."}
"""

import base64
import binascii
import json
import os
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from nacl.exceptions import CryptoError
from nacl.signing import SigningKey, VerifyKey


SIGNATURE_ALGORITHM = "Ed25519"


def b64e(b: bytes) -> str:
    return base64.b64encode(b).decode('ascii')


def b64d(s: str) -> bytes:
    return base64.b64decode(s.encode('ascii'), validate=True)


def seal_payload(certificate_id: str, digest: str, issued_at_epoch_millis: int) -> bytes:
    """Bytes covered by the issuer signature: "<id>:<digest>:<millis>"."""
    return f"{certificate_id}:{digest}:{issued_at_epoch_millis}".encode('utf-8')


@dataclass
class KeyPair:
    """Ed25519 key pair."""
    key_id: str
    signing_key: bytes
    verify_key: bytes
    created_at: datetime
    algorithm: str = SIGNATURE_ALGORITHM

    def to_key_file(self) -> Dict[str, Any]:
        return {
            "kid": self.key_id,
            "algorithm": self.algorithm,
            "private_key_b64": b64e(self.signing_key),
            "public_key_b64": b64e(self.verify_key),
            "created_at": self.created_at.isoformat().replace("+00:00", "Z"),
        }

    def to_public_entry(self) -> Dict[str, Any]:
        """Public half only, safe to publish to verifiers."""
        return {
            "kid": self.key_id,
            "algorithm": self.algorithm,
            "public_key_b64": b64e(self.verify_key),
        }


class SealSigner:
    """
    Issuer signing service.

    One active key signs new records; verification uses the same key's
    public half.
    """

    def __init__(self, key_pair: KeyPair):
        self._key_pair = key_pair
        self._sk = SigningKey(key_pair.signing_key)
        self._vk = VerifyKey(key_pair.verify_key)

    @classmethod
    def generate(cls, key_id: str = "kid:certseal-issuer-001") -> 'SealSigner':
        """Generate a fresh signer (development and tests)."""
        sk = SigningKey.generate()
        return cls(KeyPair(
            key_id=key_id,
            signing_key=bytes(sk),
            verify_key=bytes(sk.verify_key),
            created_at=datetime.now(timezone.utc),
        ))

    @classmethod
    def from_key_file(cls, path: str) -> 'SealSigner':
        """Load a signer from a JSON key file."""
        with open(path, "r", encoding="utf-8") as f:
            raw = json.load(f)

        sk = SigningKey(b64d(raw["private_key_b64"]))
        created = raw.get("created_at")
        return cls(KeyPair(
            key_id=raw["kid"],
            signing_key=bytes(sk),
            verify_key=bytes(sk.verify_key),
            created_at=(
                datetime.fromisoformat(created.replace("Z", "+00:00"))
                if created else datetime.now(timezone.utc)
            ),
        ))

    @property
    def key_id(self) -> str:
        return self._key_pair.key_id

    @property
    def key_pair(self) -> KeyPair:
        return self._key_pair

    def write_key_file(self, path: str) -> None:
        """Write the key pair as JSON, readable by the owner only."""
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(self._key_pair.to_key_file(), f, indent=2)

    def sign(self, payload: bytes) -> Dict[str, Any]:
        """
        Sign payload bytes.

        Returns:
            Signature dict with key_id, algorithm and base64 signature
        """
        signature = self._sk.sign(payload).signature
        return {
            "key_id": self.key_id,
            "algorithm": SIGNATURE_ALGORITHM,
            "sig": b64e(signature),
        }

    def verify(self, payload: bytes, signature_b64: Optional[str], key_id: Optional[str] = None) -> bool:
        """
        Verify a base64 signature against this signer's public key.

        Returns False for a foreign key ID, undecodable input or a bad
        signature.
        """
        if key_id is not None and key_id != self.key_id:
            return False
        if not signature_b64:
            return False
        try:
            self._vk.verify(payload, b64d(signature_b64))
            return True
        except (CryptoError, binascii.Error, ValueError):
            return False
