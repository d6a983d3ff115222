"""
CertSeal Certificate Integrity Protocol

Version: 1.0.0

Issues tamper-evident certificates and later proves to an independent
verifier that a presented certificate is authentic and unmodified.

    claim -> canonical bytes -> SHA-512 digest -> CERT-XXXX-XXXX-XXXX-<tag>-XXXX

Verification accepts either a presented document's extracted metadata
(re-hashed and compared against the stored record) or a bare certificate
ID (existence and status only). Both produce the same verdict type.

Usage:
    from certseal import (
        InMemoryRecordStore,
        IssuancePipeline,
        VerificationEngine,
        DocumentEvidence,
        BareId,
    )

    store = InMemoryRecordStore()
    record = IssuancePipeline(store).issue({
        "subject_name": "Jane Doe",
        "course_or_exam_name": "Intro to Cryptography",
    })

    engine = VerificationEngine(store)
    verdict = engine.verify(BareId(record.certificate_id))

    if verdict.valid:
        # ID exists and is active; document content was not checked
        ...

    verdict = engine.verify(DocumentEvidence(
        claimed_digest=record.digest,
        claimed_id=record.certificate_id,
        extracted_claim_fields=record.claim.to_fields(),
    ))
    # verdict.security_level is VERIFIED, TAMPER_DETECTED, UNKNOWN,
    # REVOKED or VERIFICATION_FAILED
"""

__version__ = "1.0.0"
__license__ = "Apache-2.0"

# Errors
from .errors import (
    CertificateError,
    ValidationError,
    MalformedIdError,
    UnknownCertificateError,
    RevokedError,
    TamperDetectedError,
    VerificationError,
    StoreError,
    DuplicateRecordError,
    StoreUnavailableError,
)

# Claim
from .claim import (
    CertificateClaim,
    create_claim,
    generate_nonce,
    FORMAT_VERSION,
    ISSUER_TAG,
    INTEGRITY_ALGORITHM_TAG,
)

# Canonicalization and hashing
from .canonicalization import encode, canonicalize_str, canonicalize_fields
from .hashing import (
    integrity_digest,
    claim_digest,
    digests_equal,
    is_digest,
    verify_digest,
)

# Identifiers
from .identifiers import (
    derive_id,
    course_tag,
    is_well_formed,
    validate_certificate_id,
    parse_certificate_id,
    id_matches_digest,
    CertificateIdParts,
)

# Signing
from .signing import SealSigner, KeyPair, seal_payload

# Issuance
from .issuance import (
    IssuancePipeline,
    CertificateRecord,
    CertificateStatus,
    RenderRequest,
    validate_raw_input,
)

# Stores
from .store import RecordStore, InMemoryRecordStore, SqliteRecordStore

# Verification
from .verifier import (
    VerificationEngine,
    VerificationVerdict,
    SecurityLevel,
    VerificationMethod,
    DocumentEvidence,
    BareId,
    verify_document,
    verify_id,
)

# Document metadata
from .metadata import (
    build_document_metadata,
    render_metadata,
    embed_metadata,
    extract_evidence,
    extract_metadata,
    evidence_from_metadata,
)


__all__ = [
    "__version__",

    # Errors
    "CertificateError",
    "ValidationError",
    "MalformedIdError",
    "UnknownCertificateError",
    "RevokedError",
    "TamperDetectedError",
    "VerificationError",
    "StoreError",
    "DuplicateRecordError",
    "StoreUnavailableError",

    # Claim
    "CertificateClaim",
    "create_claim",
    "generate_nonce",
    "FORMAT_VERSION",
    "ISSUER_TAG",
    "INTEGRITY_ALGORITHM_TAG",

    # Canonicalization
    "encode",
    "canonicalize_str",
    "canonicalize_fields",

    # Hashing
    "integrity_digest",
    "claim_digest",
    "digests_equal",
    "is_digest",
    "verify_digest",

    # Identifiers
    "derive_id",
    "course_tag",
    "is_well_formed",
    "validate_certificate_id",
    "parse_certificate_id",
    "id_matches_digest",
    "CertificateIdParts",

    # Signing
    "SealSigner",
    "KeyPair",
    "seal_payload",

    # Issuance
    "IssuancePipeline",
    "CertificateRecord",
    "CertificateStatus",
    "RenderRequest",
    "validate_raw_input",

    # Stores
    "RecordStore",
    "InMemoryRecordStore",
    "SqliteRecordStore",

    # Verification
    "VerificationEngine",
    "VerificationVerdict",
    "SecurityLevel",
    "VerificationMethod",
    "DocumentEvidence",
    "BareId",
    "verify_document",
    "verify_id",

    # Document metadata
    "build_document_metadata",
    "render_metadata",
    "embed_metadata",
    "extract_evidence",
    "extract_metadata",
    "evidence_from_metadata",
]
