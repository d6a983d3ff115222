#!/usr/bin/env python3
"""
CertSeal Command Line Interface

Usage:
    certseal issue --subject <name> --course <name> [--db <file>] [--key <file>]
    certseal verify-id <certificate_id> [--db <file>]
    certseal verify-document (--metadata <file> | --text <file>) [--db <file>] [--key <file>]
    certseal revoke <certificate_id> [--db <file>]
    certseal hash --file <claim.json>
    certseal keygen --output <file>
    certseal demo
"""

import argparse
import json
import sys
from datetime import datetime


DEFAULT_DB = "certseal.db"


def load_json(path: str) -> dict:
    """Load JSON from file."""
    with open(path, 'r', encoding='utf-8') as f:
        return json.load(f)


def _open_store(args):
    from certseal import SqliteRecordStore
    return SqliteRecordStore(args.db)


def _load_signer(args):
    from certseal import SealSigner
    if getattr(args, "key", None):
        return SealSigner.from_key_file(args.key)
    return None


def _print_verdict(verdict) -> int:
    print(json.dumps(verdict.to_dict(), indent=2))
    if verdict.valid:
        print(f"\n✓ {verdict.security_level.value}", file=sys.stderr)
        return 0
    print(f"\n✗ {verdict.security_level.value}: {verdict.details.get('message')}", file=sys.stderr)
    for name in verdict.details.get("failed_checks", []):
        print(f"  - {name}", file=sys.stderr)
    return 1


def cmd_issue(args):
    """Issue a certificate."""
    from certseal import (
        IssuancePipeline,
        CertificateError,
        build_document_metadata,
        embed_metadata,
    )

    renderer = None
    if args.pdf_dir:
        from certseal.pdf import PdfCertificateRenderer
        renderer = PdfCertificateRenderer(args.pdf_dir)

    pipeline = IssuancePipeline(_open_store(args), signer=_load_signer(args), renderer=renderer)
    try:
        record = pipeline.issue({
            "subject_name": args.subject,
            "course_or_exam_name": args.course,
        })
    except CertificateError as e:
        print(f"✗ {e.code}: {e.message}", file=sys.stderr)
        return 1

    metadata = build_document_metadata(record)
    if args.output:
        with open(args.output, 'w', encoding='utf-8') as f:
            f.write(embed_metadata(metadata))
        print(f"Document metadata saved to: {args.output}", file=sys.stderr)
    else:
        print(json.dumps(metadata, indent=2))

    if renderer is not None:
        print(f"Document rendered to: {renderer.last_path}", file=sys.stderr)
    print(f"\n✓ Issued {record.certificate_id}", file=sys.stderr)
    return 0


def cmd_verify_id(args):
    """Verify a bare certificate ID."""
    from certseal import VerificationEngine, BareId

    engine = VerificationEngine(_open_store(args))
    return _print_verdict(engine.verify(BareId(args.certificate_id)))


def cmd_verify_document(args):
    """Verify extracted document metadata."""
    from certseal import (
        VerificationEngine,
        VerificationError,
        VerificationMethod,
        extract_evidence,
        evidence_from_metadata,
    )

    engine = VerificationEngine(_open_store(args), signer=_load_signer(args))
    try:
        if args.metadata:
            evidence = evidence_from_metadata(load_json(args.metadata))
        else:
            with open(args.text, 'r', encoding='utf-8') as f:
                evidence = extract_evidence(f.read())
    except OSError as e:
        print(f"✗ Cannot read {args.metadata or args.text}: {e}", file=sys.stderr)
        return 1
    except ValueError as e:
        # Undecodable text or JSON is unreadable metadata
        verdict = engine.reject(
            VerificationError(f"Could not read certificate metadata: {e}"),
            VerificationMethod.DOCUMENT_REHASH,
        )
    except VerificationError as e:
        verdict = engine.reject(e, VerificationMethod.DOCUMENT_REHASH)
    else:
        verdict = engine.verify(evidence)
    return _print_verdict(verdict)


def cmd_revoke(args):
    """Revoke an issued certificate."""
    from certseal import CertificateStatus, CertificateError, validate_certificate_id

    try:
        validate_certificate_id(args.certificate_id)
        record = _open_store(args).set_status(args.certificate_id, CertificateStatus.REVOKED)
    except CertificateError as e:
        print(f"✗ {e.code}: {e.message}", file=sys.stderr)
        return 1

    print(f"✓ {record.certificate_id} is now {record.status.value}")
    return 0


def cmd_hash(args):
    """Compute the canonical form, digest and ID of a claim file."""
    from certseal import CertificateClaim, CertificateError, encode, integrity_digest, derive_id

    try:
        claim = CertificateClaim.from_fields(load_json(args.file))
        canonical = encode(claim)
    except OSError as e:
        print(f"✗ Cannot read {args.file}: {e}", file=sys.stderr)
        return 1
    except ValueError as e:
        print(f"✗ Claim file cannot be parsed or encoded: {e}", file=sys.stderr)
        return 1
    except CertificateError as e:
        print(f"✗ {e.code}: {e.message}", file=sys.stderr)
        return 1
    digest = integrity_digest(canonical)

    print(f"canonical: {canonical.decode('utf-8')}")
    print(f"sha512: {digest}")
    print(f"certificate_id: {derive_id(digest, claim)}")
    return 0


def cmd_keygen(args):
    """Generate an Ed25519 issuer key file."""
    from certseal import SealSigner

    key_id = args.key_id or f"kid:certseal-{datetime.now().strftime('%Y%m%d')}-001"
    signer = SealSigner.generate(key_id=key_id)

    if args.output:
        signer.write_key_file(args.output)
        print(f"Key file saved to: {args.output}")
    print(json.dumps(signer.key_pair.to_public_entry(), indent=2))
    print(f"\nGenerated key: {key_id}", file=sys.stderr)


def cmd_demo(args):
    """Run a demonstration of CertSeal."""
    from certseal import (
        IssuancePipeline,
        InMemoryRecordStore,
        SealSigner,
        VerificationEngine,
        DocumentEvidence,
        BareId,
        CertificateStatus,
    )

    print("=" * 60)
    print("CertSeal Protocol Demonstration")
    print("=" * 60)

    store = InMemoryRecordStore()
    signer = SealSigner.generate()
    pipeline = IssuancePipeline(store, signer=signer)
    engine = VerificationEngine(store, signer=signer)

    record = pipeline.issue({
        "subject_name": "Jane Doe",
        "course_or_exam_name": "Intro to Cryptography",
    })
    print(f"\nIssued: {record.certificate_id}")
    print(f"Digest: {record.digest[:40]}...")

    evidence = DocumentEvidence(
        claimed_digest=record.digest,
        claimed_id=record.certificate_id,
        extracted_claim_fields=record.claim.to_fields(),
    )

    print("\n" + "-" * 60)
    print("Scenario 1: Unmodified document")
    print("-" * 60)
    verdict = engine.verify(evidence)
    print(f"Security level: {verdict.security_level.value}")

    print("\n" + "-" * 60)
    print("Scenario 2: Subject name edited to 'John Doe'")
    print("-" * 60)
    forged_fields = dict(record.claim.to_fields(), subjectName="John Doe")
    verdict = engine.verify(DocumentEvidence(
        claimed_digest=record.digest,
        claimed_id=record.certificate_id,
        extracted_claim_fields=forged_fields,
    ))
    print(f"Security level: {verdict.security_level.value}")
    for name in verdict.details.get("failed_checks", []):
        print(f"  Failed: {name}")

    print("\n" + "-" * 60)
    print("Scenario 3: Anonymous ID lookup")
    print("-" * 60)
    verdict = engine.verify(BareId(record.certificate_id))
    print(f"Security level: {verdict.security_level.value}")
    print(f"Guarantee: {verdict.details['guarantee']}")

    print("\n" + "-" * 60)
    print("Scenario 4: Revoked certificate")
    print("-" * 60)
    store.set_status(record.certificate_id, CertificateStatus.REVOKED)
    verdict = engine.verify(BareId(record.certificate_id))
    print(f"Security level: {verdict.security_level.value}")

    print("\n" + "=" * 60)
    print("Demonstration complete.")
    print("=" * 60)


def main():
    parser = argparse.ArgumentParser(
        description="CertSeal Certificate Integrity CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  certseal demo                              Run demonstration
  certseal issue -s "Jane Doe" -c "Intro to Cryptography"
  certseal verify-id CERT-1A2B-3C4D-5E6F-INTK3Z-9A8B
  certseal verify-document -t extracted.txt
  certseal hash -f claim.json
  certseal keygen -o issuer_key.json
        """
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # issue
    issue_parser = subparsers.add_parser("issue", help="Issue a certificate")
    issue_parser.add_argument("-s", "--subject", required=True, help="Subject name")
    issue_parser.add_argument("-c", "--course", required=True, help="Course or exam name")
    issue_parser.add_argument("-o", "--output", help="Output file for embedded metadata text")
    issue_parser.add_argument("--pdf-dir", help="Render a PDF into this directory (needs reportlab)")
    issue_parser.add_argument("--db", default=DEFAULT_DB, help="Record store database")
    issue_parser.add_argument("--key", help="Issuer key file")

    # verify-id
    vid_parser = subparsers.add_parser("verify-id", help="Verify a certificate ID")
    vid_parser.add_argument("certificate_id", help="Certificate ID")
    vid_parser.add_argument("--db", default=DEFAULT_DB, help="Record store database")

    # verify-document
    vdoc_parser = subparsers.add_parser("verify-document", help="Verify document metadata")
    source = vdoc_parser.add_mutually_exclusive_group(required=True)
    source.add_argument("-m", "--metadata", help="Metadata JSON file")
    source.add_argument("-t", "--text", help="Extracted document text file")
    vdoc_parser.add_argument("--db", default=DEFAULT_DB, help="Record store database")
    vdoc_parser.add_argument("--key", help="Issuer key file")

    # revoke
    revoke_parser = subparsers.add_parser("revoke", help="Revoke a certificate")
    revoke_parser.add_argument("certificate_id", help="Certificate ID")
    revoke_parser.add_argument("--db", default=DEFAULT_DB, help="Record store database")

    # hash
    hash_parser = subparsers.add_parser("hash", help="Compute claim digest and ID")
    hash_parser.add_argument("-f", "--file", required=True, help="Claim fields JSON file")

    # keygen
    keygen_parser = subparsers.add_parser("keygen", help="Generate issuer key")
    keygen_parser.add_argument("-o", "--output", help="Output key file")
    keygen_parser.add_argument("-k", "--key-id", help="Key identifier")

    # demo
    subparsers.add_parser("demo", help="Run demonstration")

    args = parser.parse_args()

    if args.command == "issue":
        sys.exit(cmd_issue(args))
    elif args.command == "verify-id":
        sys.exit(cmd_verify_id(args))
    elif args.command == "verify-document":
        sys.exit(cmd_verify_document(args))
    elif args.command == "revoke":
        sys.exit(cmd_revoke(args))
    elif args.command == "hash":
        sys.exit(cmd_hash(args))
    elif args.command == "keygen":
        cmd_keygen(args)
    elif args.command == "demo":
        cmd_demo(args)
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
