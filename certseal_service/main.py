import logging
import math
import re
from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from certseal import (
    __version__,
    BareId,
    DuplicateRecordError,
    IssuancePipeline,
    SealSigner,
    SqliteRecordStore,
    StoreError,
    ValidationError,
    VerificationEngine,
    VerificationError,
    VerificationMethod,
    build_document_metadata,
    embed_metadata,
    evidence_from_metadata,
    extract_evidence,
)
from .config import (
    DB_PATH,
    ENV,
    ISSUE_RATE_LIMIT,
    KEY_ID,
    LOG_FILE,
    LOG_JSON,
    LOG_LEVEL,
    RATE_LIMIT_MAX_CLIENTS,
    RATE_LIMIT_WINDOW_SECONDS,
    SIGNING_KEY_PATH,
    TRUST_PROXY_HEADERS,
    VERIFY_RATE_LIMIT,
    is_debug,
    is_production,
    validate_config,
)
from .logging_config import audit_log, configure_logging, get_request_id, set_request_id
from .models import DocumentVerifyRequest, IssueRequest, TextVerifyRequest
from .rate_limit import RateLimiter
from .security import extract_client_id, sanitize_for_logging
from .stats import ServiceStats

logger = logging.getLogger(__name__)

app = FastAPI(title="CertSeal Certificate Service", version=__version__)

REQUEST_ID_PATTERN = re.compile(r'^[A-Za-z0-9\-]{1,64}$')

issue_limiter = RateLimiter(ISSUE_RATE_LIMIT, RATE_LIMIT_WINDOW_SECONDS, max_keys=RATE_LIMIT_MAX_CLIENTS)
verify_limiter = RateLimiter(VERIFY_RATE_LIMIT, RATE_LIMIT_WINDOW_SECONDS, max_keys=RATE_LIMIT_MAX_CLIENTS)
STATS = ServiceStats()

STORE = None
SIGNER = None
PIPELINE = None
ENGINE = None

def get_signer() -> SealSigner:
    if SIGNING_KEY_PATH:
        return SealSigner.from_key_file(SIGNING_KEY_PATH)
    if is_production():
        raise RuntimeError("CERTSEAL_SIGNING_KEY_PATH must be set in production")
    logger.warning("No signing key configured; generated ephemeral key %s", KEY_ID)
    return SealSigner.generate(key_id=KEY_ID)

def init_services(store=None, signer=None) -> None:
    """Wire the store, signer, pipeline and engine used by the endpoints."""
    global STORE, SIGNER, PIPELINE, ENGINE
    STORE = store if store is not None else SqliteRecordStore(DB_PATH)
    SIGNER = signer if signer is not None else get_signer()
    PIPELINE = IssuancePipeline(STORE, signer=SIGNER)
    ENGINE = VerificationEngine(STORE, signer=SIGNER)

@app.on_event("startup")
def _startup():
    configure_logging("DEBUG" if is_debug() else LOG_LEVEL, json_format=LOG_JSON, log_file=LOG_FILE)
    if STORE is None:
        init_services()
    logger.info("CertSeal service started (env=%s, key=%s)", ENV, SIGNER.key_id)

@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    incoming = request.headers.get("x-request-id", "")
    request_id = set_request_id(incoming if REQUEST_ID_PATTERN.match(incoming) else None)
    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response

def _client_id(request: Request) -> str:
    return extract_client_id(
        request.headers,
        request.client.host if request.client else None,
        trust_proxy=TRUST_PROXY_HEADERS,
    )

def _enforce_rate_limit(limiter: RateLimiter, request: Request, endpoint: str) -> str:
    client_id = _client_id(request)
    result = limiter.check(client_id)
    if not result.allowed:
        audit_log.rate_limit_exceeded(client_id, endpoint)
        raise HTTPException(
            429,
            detail={
                "error_code": "RATE_LIMIT",
                "message": "Too many requests, please try again later",
                "request_id": get_request_id(),
            },
            headers={"Retry-After": str(math.ceil(result.retry_after or 0))},
        )
    return client_id

def _report(verdict, client_id: str) -> dict:
    STATS.record_verification(verdict.valid, verdict.tamper_detected)
    audit_log.verification_result(
        verdict.verification_id,
        verdict.verification_method.value,
        verdict.security_level.value,
        certificate_id=verdict.certificate_id,
        client_id=client_id,
    )
    if verdict.tamper_detected:
        audit_log.tamper_detected(
            verdict.verification_id,
            verdict.certificate_id,
            verdict.details.get("failed_checks", []),
            client_id=client_id,
        )
    return verdict.to_dict()

def _verify_evidence(build_evidence, client_id: str) -> dict:
    try:
        evidence = build_evidence()
    except VerificationError as e:
        verdict = ENGINE.reject(e, VerificationMethod.DOCUMENT_REHASH)
    else:
        verdict = ENGINE.verify(evidence)
    return _report(verdict, client_id)

@app.get("/")
def index():
    return {
        "service": "CertSeal Certificate Service",
        "version": __version__,
        "endpoints": {
            "issue": "POST /certificates",
            "verify_id": "GET /verify/{certificate_id}",
            "verify_document": "POST /verify/document",
            "verify_document_text": "POST /verify/document/text",
            "stats": "GET /stats",
            "health": "GET /health",
        },
    }

@app.get("/health")
def health():
    try:
        STORE.count()
        store_ok = True
    except StoreError as e:
        logger.error("Record store health check failed: %s", e.message)
        store_ok = False

    body = {
        "status": "ok" if store_ok else "degraded",
        "env": ENV,
        "store": store_ok,
        "signing_key_id": SIGNER.key_id,
        "config": validate_config(),
    }
    return JSONResponse(body, status_code=200 if store_ok else 503)

@app.get("/stats")
def stats():
    return STATS.snapshot()

@app.post("/certificates", status_code=201)
def issue_certificate(req: IssueRequest, request: Request):
    client_id = _enforce_rate_limit(issue_limiter, request, "issue")
    try:
        record = PIPELINE.issue(req.model_dump())
    except ValidationError as e:
        logger.info("Issuance rejected (%s): %s", e.field, sanitize_for_logging(req.model_dump()))
        raise HTTPException(400, detail=e.to_dict())
    except DuplicateRecordError as e:
        audit_log.security_event("DUPLICATE_CERTIFICATE_ID", severity="high", certificate_id=e.certificate_id)
        raise HTTPException(409, detail=e.to_dict())
    except StoreError as e:
        logger.error("Issuance failed to persist: %s", e.message)
        raise HTTPException(503, detail=e.to_dict())

    STATS.record_issued()
    audit_log.certificate_issued(
        record.certificate_id,
        record.digest,
        serial_number=record.serial_number,
        client_id=client_id,
    )

    metadata = build_document_metadata(record)
    return {
        **record.public_summary(),
        "digest": record.digest,
        "metadata": metadata,
        "embedded_metadata": embed_metadata(metadata),
    }

@app.get("/verify/{certificate_id}")
def verify_certificate_id(certificate_id: str, request: Request):
    client_id = _enforce_rate_limit(verify_limiter, request, "verify")
    return _report(ENGINE.verify(BareId(certificate_id)), client_id)

@app.post("/verify/document")
def verify_document(req: DocumentVerifyRequest, request: Request):
    client_id = _enforce_rate_limit(verify_limiter, request, "verify")
    return _verify_evidence(lambda: evidence_from_metadata(req.to_metadata()), client_id)

@app.post("/verify/document/text")
def verify_document_text(req: TextVerifyRequest, request: Request):
    client_id = _enforce_rate_limit(verify_limiter, request, "verify")
    return _verify_evidence(lambda: extract_evidence(req.text), client_id)
