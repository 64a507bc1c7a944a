"""
FastAPI application and endpoints for the Byte Savings Backend
Includes CORS, request size limits, request IDs and structured error handling
"""

# Standard library imports
import asyncio
import traceback
from typing import Dict, Any, List

# Third-party imports
from fastapi import FastAPI, HTTPException, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError

# Local application imports
from byte_savings.config import get_settings
from byte_savings.detectors import DETECTORS, get_detector
from byte_savings.estimation import estimate_transfer_size, round_half_up
from byte_savings.exceptions import AuditError, MissingArtifactError, UnknownAuditError
from byte_savings.models import (
    AuditRequest,
    AuditResponse,
    AuditSettings,
    DetectorInfo,
    ScoreRequest,
    ScoreResponse,
    TransferSizeRequest,
    TransferSizeResponse,
)
from byte_savings.orchestrator import run_audit
from byte_savings.scoring import score_for_wasted_ms
from byte_savings.utils.cache import get_cache
from byte_savings.utils.logging_config import (
    setup_logging,
    get_logger,
    get_request_id,
    set_request_id,
)
from byte_savings.utils.result_store import get_result_store, StoredAudit

logger = get_logger(__name__)

settings = get_settings()

setup_logging(
    level=settings.log_level,
    json_format=settings.log_format_json,
    log_file=settings.log_file,
    max_bytes=settings.log_max_bytes,
    backup_count=settings.log_backup_count,
)

app = FastAPI(
    title="Byte Savings API",
    version="1.0.0",
    description="Estimates load-time savings of byte-efficiency opportunities",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

MAX_REQUEST_SIZE = settings.max_request_size
AUDIT_TIMEOUT = settings.audit_timeout


def check_request_size(request: Request) -> None:
    """Check if request size exceeds limit"""
    content_length = request.headers.get("content-length")
    if content_length:
        size = int(content_length)
        if size > MAX_REQUEST_SIZE:
            raise HTTPException(
                status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                detail=f"Request size ({size} bytes) exceeds maximum ({MAX_REQUEST_SIZE} bytes)",
            )


@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    """Middleware to add request ID to all requests"""
    request_id = set_request_id(request.headers.get("X-Request-ID"))
    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


@app.middleware("http")
async def request_size_middleware(request: Request, call_next):
    """Reject oversized bodies before they are parsed"""
    try:
        check_request_size(request)
    except HTTPException as exc:
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "code": f"http_{exc.status_code}",
                "message": exc.detail,
                "details": {"status_code": exc.status_code},
            },
        )
    return await call_next(request)


def add_debug_info(error_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Attach the traceback to an error payload when DEBUG is enabled"""
    if settings.debug and "traceback" not in error_dict.get("details", {}):
        error_dict.setdefault("details", {})
        error_dict["details"]["traceback"] = traceback.format_exc()
    return error_dict


@app.exception_handler(AuditError)
async def audit_error_handler(request: Request, exc: AuditError):
    """Map audit errors to structured responses"""
    if isinstance(exc, UnknownAuditError):
        status_code = status.HTTP_404_NOT_FOUND
    elif isinstance(exc, MissingArtifactError):
        status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    else:
        status_code = status.HTTP_400_BAD_REQUEST
    logger.error(f"Audit error: {exc.message}", extra={"code": exc.code})
    return JSONResponse(status_code=status_code, content=add_debug_info(exc.to_dict()))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle Pydantic validation errors with structured format"""
    logger.warning(f"Validation error: {exc.errors()}")

    error_messages = []
    for error in exc.errors():
        loc = " -> ".join(str(x) for x in error.get("loc", []))
        msg = error.get("msg", "Validation error")
        error_messages.append(f"{loc}: {msg}")

    error_response: Dict[str, Any] = {
        "code": "validation_error",
        "message": "; ".join(error_messages),
        "details": {"errors": exc.errors()},
    }

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=add_debug_info(error_response),
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    """Handle HTTP exceptions with structured format"""
    logger.warning(f"HTTP exception: {exc.status_code} - {exc.detail}")

    error_response: Dict[str, Any] = {
        "code": f"http_{exc.status_code}",
        "message": exc.detail if isinstance(exc.detail, str) else str(exc.detail),
        "details": {"status_code": exc.status_code},
    }

    return JSONResponse(status_code=exc.status_code, content=add_debug_info(error_response))


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle all unhandled exceptions with structured format"""
    logger.exception("Unhandled exception", exc_info=exc)

    error_response: Dict[str, Any] = {
        "code": "internal_error",
        "message": str(exc) if settings.debug else "An internal error occurred",
        "details": {
            "exception_type": type(exc).__name__,
            "request_id": get_request_id(),
        },
    }

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=add_debug_info(error_response),
    )


@app.get("/")
def read_root():
    """Root endpoint with API information"""
    return {
        "message": "Byte Savings API",
        "version": "1.0.0",
        "endpoints": {
            "audits": "/audits",
            "run_audit": "/audits/{audit_id}",
            "audit_result": "/audits/results/{result_id}",
            "score": "/score",
            "estimate_transfer_size": "/estimate-transfer-size",
            "health": "/health",
            "cache_stats": "/cache/stats",
        },
    }


@app.get("/health")
def health_check():
    """Health check endpoint"""
    return {"status": "healthy"}


@app.get("/cache/stats")
def cache_stats():
    """Computed artifact cache statistics"""
    return get_cache().get_stats()


@app.get("/audits", response_model=List[DetectorInfo])
def list_audits():
    """List registered byte-efficiency audits"""
    return [DetectorInfo(id=d.id, title=d.title) for d in DETECTORS.values()]


@app.post("/audits/{audit_id}", response_model=AuditResponse)
async def run_audit_endpoint(audit_id: str, request: AuditRequest):
    """
    Run a byte-efficiency audit over the supplied artifacts

    Returns the scored audit product and an ID to fetch it again.
    """
    detector = get_detector(audit_id)
    audit_settings = request.settings or AuditSettings.from_service_settings()
    logger.info(
        f"Audit request received: audit={audit_id}, mode={audit_settings.gather_mode}, "
        f"records={len(request.artifacts.network_records)}"
    )

    try:
        product = await asyncio.wait_for(
            run_audit(detector, request.artifacts, audit_settings, cache=get_cache()),
            timeout=AUDIT_TIMEOUT,
        )
    except asyncio.TimeoutError:
        raise HTTPException(
            status_code=status.HTTP_408_REQUEST_TIMEOUT,
            detail=f"Audit '{audit_id}' exceeded timeout of {AUDIT_TIMEOUT} seconds",
        )

    result_id = get_result_store().store(
        StoredAudit(audit_id, product, ttl_hours=settings.result_store_ttl_hours)
    )

    return AuditResponse(
        success=True,
        audit_id=audit_id,
        result_id=result_id,
        product=product,
    )


@app.get("/audits/results/{result_id}", response_model=AuditResponse)
def get_audit_result(result_id: str):
    """Fetch a stored audit result"""
    stored = get_result_store().get(result_id)
    if stored is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Result '{result_id}' not found or expired",
        )
    return AuditResponse(
        success=True,
        audit_id=stored.audit_id,
        result_id=stored.id,
        product=stored.product,
    )


@app.post("/score", response_model=ScoreResponse)
def score_endpoint(request: ScoreRequest):
    """Score a wasted-time estimate"""
    return ScoreResponse(
        wasted_ms=request.wasted_ms,
        score=score_for_wasted_ms(request.wasted_ms),
    )


@app.post("/estimate-transfer-size", response_model=TransferSizeResponse)
def estimate_transfer_size_endpoint(request: TransferSizeRequest):
    """Estimate the on-the-wire size of a resource"""
    return TransferSizeResponse(
        transfer_size=round_half_up(
            estimate_transfer_size(
                request.network_record, request.total_bytes, request.resource_type
            )
        )
    )
