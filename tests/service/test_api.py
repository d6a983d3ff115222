from fastapi.testclient import TestClient

from certseal_service import main
from certseal_service.main import app

client = TestClient(app)

JANE = {"subject_name": "Jane Doe", "course_or_exam_name": "Intro to Cryptography"}


def issue(payload=None):
    return client.post("/certificates", json=payload or JANE)


def issued():
    r = issue()
    assert r.status_code == 201
    return r.json()


# Issuance -> 201 with embeddable metadata
def test_issue_certificate():
    body = issued()
    assert body["certificate_id"].startswith("CERT-")
    assert body["status"] == "ACTIVE"
    assert len(body["digest"]) == 128
    assert body["metadata"]["certificateId"] == body["certificate_id"]
    assert body["metadata"]["claimFields"]["subjectName"] == "Jane Doe"
    assert body["metadata"]["keyId"] == "kid:test-service"
    assert "---CERT-VERIFY-START---" in body["embedded_metadata"]
    assert "subject_name" not in body


# Invalid input -> 400 naming the field, nothing persisted
def test_issue_invalid_field():
    r = issue({"subject_name": "J", "course_or_exam_name": "Intro to Cryptography"})
    assert r.status_code == 400
    detail = r.json()["detail"]
    assert detail["error_code"] == "VALIDATION_FAILED"
    assert detail["field"] == "subject_name"
    assert main.STORE.count() == 0


def test_issue_missing_field():
    r = issue({"subject_name": "Jane Doe"})
    assert r.status_code == 400
    assert r.json()["detail"]["field"] == "course_or_exam_name"


# Path B: registered ID -> VERIFIED, existence only
def test_verify_id():
    body = issued()
    r = client.get(f"/verify/{body['certificate_id']}")
    assert r.status_code == 200
    verdict = r.json()
    assert verdict["valid"] is True
    assert verdict["security_level"] == "VERIFIED"
    assert verdict["verification_method"] == "ID_LOOKUP"
    assert verdict["details"]["guarantee"] == "ID_EXISTENCE_ONLY"
    assert "Jane Doe" not in r.text


def test_verify_unknown_id():
    r = client.get("/verify/CERT-1A2B-3C4D-5E6F-INT4K2-9A8B")
    assert r.status_code == 200
    assert r.json()["security_level"] == "UNKNOWN"
    assert r.json()["valid"] is False


def test_verify_malformed_id():
    r = client.get("/verify/not-a-certificate")
    assert r.status_code == 200
    verdict = r.json()
    assert verdict["security_level"] == "VERIFICATION_FAILED"
    assert verdict["details"]["error_code"] == "MALFORMED_ID"
    assert verdict["certificate_id"] is None


def test_verify_revoked_id():
    body = issued()
    main.STORE.set_status(body["certificate_id"], "REVOKED")
    r = client.get(f"/verify/{body['certificate_id']}")
    assert r.json()["security_level"] == "REVOKED"


# Path A: presented metadata re-hashed
def test_verify_document():
    body = issued()
    r = client.post("/verify/document", json=body["metadata"])
    assert r.status_code == 200
    verdict = r.json()
    assert verdict["valid"] is True
    assert verdict["verification_method"] == "DOCUMENT_REHASH"
    assert verdict["details"]["guarantee"] == "CONTENT_INTEGRITY"


def test_verify_forged_document():
    body = issued()
    forged = dict(body["metadata"])
    forged["claimFields"] = dict(forged["claimFields"], subjectName="Mallory Smith")
    r = client.post("/verify/document", json=forged)
    assert r.status_code == 200
    verdict = r.json()
    assert verdict["valid"] is False
    assert verdict["tamper_detected"] is True
    assert verdict["security_level"] == "TAMPER_DETECTED"
    assert "recomputed_digest_matches_claimed" in verdict["details"]["failed_checks"]


def test_verify_document_incomplete():
    body = issued()
    r = client.post("/verify/document", json={"certificateId": body["certificate_id"]})
    assert r.status_code == 200
    assert r.json()["security_level"] == "VERIFICATION_FAILED"


def test_verify_document_mistyped_id():
    body = issued()
    r = client.post("/verify/document", json=dict(body["metadata"], certificateId=12345))
    assert r.status_code == 200
    verdict = r.json()
    assert verdict["security_level"] == "VERIFICATION_FAILED"
    assert verdict["details"]["error_code"] == "MALFORMED_ID"


def test_verify_document_claim_fields_not_object():
    body = issued()
    r = client.post("/verify/document", json=dict(body["metadata"], claimFields=["x"]))
    assert r.status_code == 200
    verdict = r.json()
    assert verdict["security_level"] == "VERIFICATION_FAILED"
    assert verdict["details"]["error_code"] == "VERIFICATION_ERROR"


def test_verify_document_text_not_string():
    r = client.post("/verify/document/text", json={"text": 5})
    assert r.status_code == 200
    assert r.json()["security_level"] == "VERIFICATION_FAILED"


def test_verify_document_text():
    body = issued()
    text = "Certificate of Completion\nJane Doe\n" + body["embedded_metadata"]
    r = client.post("/verify/document/text", json={"text": text})
    assert r.status_code == 200
    assert r.json()["security_level"] == "VERIFIED"


def test_verify_document_text_without_metadata():
    r = client.post("/verify/document/text", json={"text": "Certificate of Completion"})
    assert r.status_code == 200
    verdict = r.json()
    assert verdict["security_level"] == "VERIFICATION_FAILED"
    assert verdict["details"]["error_code"] == "VERIFICATION_ERROR"


# Rate limiting -> 429 with Retry-After
def test_issue_rate_limited():
    for _ in range(main.issue_limiter.limit):
        assert issue().status_code == 201
    r = issue()
    assert r.status_code == 429
    assert r.json()["detail"]["error_code"] == "RATE_LIMIT"
    assert int(r.headers["Retry-After"]) > 0
    assert r.json()["detail"]["request_id"] == r.headers["X-Request-ID"]
    assert main.STORE.count() == main.issue_limiter.limit


def test_rate_limit_ignores_spoofed_headers():
    codes = [
        client.post(
            "/certificates",
            json=JANE,
            headers={"X-Forwarded-For": f"10.0.0.{i}", "X-API-Key": f"key-{i}"},
        ).status_code
        for i in range(30)
    ]
    assert codes.count(201) == main.issue_limiter.limit
    assert 429 in codes
    assert main.STORE.count() == main.issue_limiter.limit
    assert main.issue_limiter.tracked_keys == 1


def test_rate_limit_behind_trusted_proxy(monkeypatch):
    monkeypatch.setattr(main, "TRUST_PROXY_HEADERS", True)
    for _ in range(main.issue_limiter.limit):
        client.post("/certificates", json=JANE, headers={"X-Forwarded-For": "203.0.113.7"})
    blocked = client.post("/certificates", json=JANE, headers={"X-Forwarded-For": "203.0.113.7"})
    assert blocked.status_code == 429

    # Only the hop appended by the proxy counts
    spoofed = client.post("/certificates", json=JANE, headers={"X-Forwarded-For": "1.1.1.1, 203.0.113.7"})
    assert spoofed.status_code == 429

    other = client.post("/certificates", json=JANE, headers={"X-Forwarded-For": "203.0.113.8"})
    assert other.status_code == 201


# Request IDs
def test_request_id_echoed():
    r = client.get("/", headers={"X-Request-ID": "abc-123"})
    assert r.headers["X-Request-ID"] == "abc-123"


def test_request_id_generated_for_bad_header():
    r = client.get("/", headers={"X-Request-ID": "bad id with spaces"})
    assert r.headers["X-Request-ID"] != "bad id with spaces"
    assert r.headers["X-Request-ID"]


# Stats stay anonymous counters
def test_stats_counters():
    body = issued()
    client.get(f"/verify/{body['certificate_id']}")
    forged = dict(body["metadata"], digest="0" * 128)
    client.post("/verify/document", json=forged)

    stats = client.get("/stats").json()
    assert stats["certificates_generated"] == 1
    assert stats["verifications_performed"] == 2
    assert stats["successful_verifications"] == 1
    assert stats["tamper_detected"] == 1
    assert stats["success_rate"] == 0.5


def test_health():
    r = client.get("/health")
    assert r.status_code == 200
    body = r.json()
    assert body["status"] == "ok"
    assert body["store"] is True
    assert body["signing_key_id"] == "kid:test-service"


def test_index():
    body = client.get("/").json()
    assert body["endpoints"]["issue"] == "POST /certificates"
