"""
CertSeal Document Metadata

The boundary with document rendering and extraction. A renderer embeds a
machine-readable payload into the certificate document; later, an
extractor recovers the document's text and this module turns the embedded
payload back into DocumentEvidence.

Three embeddings are written, and read back in this order:

    ---CERT-VERIFY-START---{json}---CERT-VERIFY-END---
    CERTDATA:{json}:ENDDATA
    METADATA{base64 json}ENDMETA

Document bytes are never parsed here; text extraction happens upstream.
"""

import base64
import binascii
import collections.abc
import json
import re
from typing import Any, Callable, Dict, List, Optional

from .claim import FORMAT_VERSION
from .errors import VerificationError
from .issuance import CertificateRecord, RenderRequest
from .verifier import DocumentEvidence


START_MARKER = "---CERT-VERIFY-START---"
END_MARKER = "---CERT-VERIFY-END---"
CERTDATA_PREFIX = "CERTDATA:"
CERTDATA_SUFFIX = ":ENDDATA"
METADATA_PREFIX = "METADATA"
METADATA_SUFFIX = "ENDMETA"

_BASE64_BLOCK = re.compile(r'METADATA([A-Za-z0-9+/=\s]+?)ENDMETA')


def render_metadata(request: RenderRequest) -> Dict[str, Any]:
    """Minimal payload available to a renderer during issuance."""
    return {
        "version": FORMAT_VERSION,
        "certificateId": request.certificate_id,
        "digest": request.digest,
        "claimFields": request.claim.to_fields(),
    }


def build_document_metadata(record: CertificateRecord) -> Dict[str, Any]:
    """
    Build the verification payload a renderer embeds into a document.

    The claim fields go in as-is so that a verifier can re-encode them;
    a pre-serialized canonical string is never embedded.
    """
    payload = render_metadata(RenderRequest(
        claim=record.claim,
        certificate_id=record.certificate_id,
        digest=record.digest,
    ))
    payload.update({
        "serialNumber": record.serial_number,
        "signature": record.signature,
        "keyId": record.key_id,
    })
    return payload


def embed_metadata(payload: Dict[str, Any]) -> str:
    """Render the payload into the marker text written into documents."""
    text = json.dumps(payload, separators=(',', ':'), ensure_ascii=False)
    encoded = base64.b64encode(text.encode('utf-8')).decode('ascii')
    return "\n".join([
        f"{START_MARKER}{text}{END_MARKER}",
        f"{CERTDATA_PREFIX}{text}{CERTDATA_SUFFIX}",
        f"{METADATA_PREFIX}{encoded}{METADATA_SUFFIX}",
    ])


def evidence_from_metadata(payload: Any) -> DocumentEvidence:
    """
    Convert a parsed metadata payload into DocumentEvidence.

    Raises:
        VerificationError: If required keys are missing or mistyped
    """
    if not isinstance(payload, collections.abc.Mapping):
        raise VerificationError("Certificate metadata must be an object")

    missing = [k for k in ("certificateId", "digest", "claimFields") if k not in payload]
    if missing:
        raise VerificationError(
            "Certificate metadata is incomplete",
            {"missing_fields": missing},
        )

    if not isinstance(payload["claimFields"], collections.abc.Mapping):
        raise VerificationError("Certificate metadata claimFields must be an object")

    return DocumentEvidence(
        claimed_digest=payload["digest"],
        claimed_id=payload["certificateId"],
        extracted_claim_fields=dict(payload["claimFields"]),
    )


def _between(text: str, start: str, end: str) -> Optional[str]:
    i = text.find(start)
    if i == -1:
        return None
    j = text.find(end, i + len(start))
    if j == -1:
        return None
    return text[i + len(start):j]


def _from_markers(text: str) -> Optional[str]:
    return _between(text, START_MARKER, END_MARKER)


def _from_certdata(text: str) -> Optional[str]:
    return _between(text, CERTDATA_PREFIX, CERTDATA_SUFFIX)


def _from_base64(text: str) -> Optional[str]:
    m = _BASE64_BLOCK.search(text)
    if not m:
        return None
    try:
        raw = base64.b64decode(re.sub(r'\s+', '', m.group(1)), validate=True)
        return raw.decode('utf-8')
    except (binascii.Error, UnicodeDecodeError):
        return None


_EXTRACTORS: List[Callable[[str], Optional[str]]] = [_from_markers, _from_certdata, _from_base64]


def extract_metadata(text: str) -> Dict[str, Any]:
    """
    Find and parse the embedded payload in extracted document text.

    Raises:
        VerificationError: If no embedding yields a JSON object
    """
    if not isinstance(text, str) or not text:
        raise VerificationError("No document text to search for certificate metadata")

    for extractor in _EXTRACTORS:
        candidate = extractor(text)
        if candidate is None:
            continue
        try:
            payload = json.loads(candidate)
        except ValueError:
            continue
        if isinstance(payload, dict):
            return payload

    raise VerificationError("Certificate metadata not found in document text")


def extract_evidence(text: str) -> DocumentEvidence:
    """Extract DocumentEvidence from document text."""
    return evidence_from_metadata(extract_metadata(text))
