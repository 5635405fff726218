"""
FastAPI application for the Invoice Readiness Analyzer.

Provides REST API endpoints for:
- Health check
- Readiness analysis of parsed rows or raw CSV/JSON content
- Field detection only
- Listing the rules and the GETS schema

Reports are returned, not stored.
"""

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from .analyzer import analyze_content, analyze_dataset
from .config import API_HOST, API_PORT, MAX_UPLOAD_SIZE_MB, logger
from .detector import detect_fields
from .exceptions import DataParseError, InputError
from .gets import GETS_SCHEMA
from .rules import VALIDATION_RULES
from .schemas import AnalyzeRequest, DetectRequest, DetectResponse, ReadinessReport
from .scoring import calculate_coverage_score


# ============================================================================
# FastAPI App Configuration
# ============================================================================

app = FastAPI(
    title="Invoice Readiness API",
    description="""
    E-Invoicing Readiness Analyzer API.

    Scores how ready an invoice export is for the GETS e-invoicing schema.

    ## Features

    - **Analyze**: Field coverage, rule checks and an overall readiness score
    - **Detect**: Column-to-schema mapping only
    """,
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

# Configure CORS for local development
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",
        "http://localhost:5173",
        "http://127.0.0.1:3000",
        "http://127.0.0.1:5173",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ============================================================================
# Response Models
# ============================================================================

class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    version: str


# ============================================================================
# API Endpoints
# ============================================================================

@app.get("/health", response_model=HealthResponse, tags=["System"])
async def health_check() -> HealthResponse:
    """
    Health check endpoint.

    Returns the service status and version information.
    """
    from . import __version__
    return HealthResponse(status="ok", version=__version__)


@app.post(
    "/analyze",
    response_model=ReadinessReport,
    tags=["Analysis"],
    summary="Analyze invoice data",
)
async def analyze(request: AnalyzeRequest) -> ReadinessReport:
    """
    Analyze invoice rows and return a readiness report.

    Send either `rows` (already parsed objects) or `content` (raw CSV or
    JSON text, with an optional `file_type`).

    **Report contents:**
    - Data, coverage, rules and posture scores plus the weighted overall score
    - Matched / close / missing GETS fields
    - Findings of the five rule checks
    - Human-readable gaps
    """
    if request.rows is None and request.content is None:
        raise HTTPException(status_code=400, detail="Either rows or content is required")

    if request.content is not None:
        max_size = MAX_UPLOAD_SIZE_MB * 1024 * 1024
        if len(request.content.encode("utf-8")) > max_size:
            raise HTTPException(
                status_code=413,
                detail=f"Content too large (max {MAX_UPLOAD_SIZE_MB}MB)",
            )

    logger.info("Received analysis request")

    if request.rows is not None:
        return analyze_dataset(
            request.rows,
            questionnaire=request.questionnaire,
            country=request.country,
            erp=request.erp,
        )

    return analyze_content(
        request.content,
        file_type=request.file_type,
        questionnaire=request.questionnaire,
        country=request.country,
        erp=request.erp,
    )


@app.post(
    "/detect",
    response_model=DetectResponse,
    tags=["Analysis"],
    summary="Detect GETS fields",
)
async def detect(request: DetectRequest) -> DetectResponse:
    """
    Match the columns of the first row against the GETS schema.
    """
    coverage = detect_fields(request.rows)
    return DetectResponse(coverage=coverage, coverage_score=calculate_coverage_score(coverage))


@app.get("/rules", tags=["System"])
async def list_rules():
    """
    List the rule checks applied by the service, in execution order.
    """
    return {
        "total_rules": len(VALIDATION_RULES),
        "rules": [
            {"code": rule.code.value, "description": rule.description}
            for rule in VALIDATION_RULES
        ],
    }


@app.get("/schema", tags=["System"])
async def get_schema():
    """
    Return the GETS canonical schema with weights and known column variants.
    """
    return {
        "version": GETS_SCHEMA.version,
        "total_weight": GETS_SCHEMA.total_weight,
        "fields": [
            {
                "path": field.path,
                "type": field.type,
                "required": field.required,
                "weight": field.weight,
                "variants": list(field.variants),
            }
            for field in GETS_SCHEMA
        ],
    }


# ============================================================================
# Error Handlers
# ============================================================================

@app.exception_handler(InputError)
@app.exception_handler(DataParseError)
async def bad_input_handler(request: Request, exc: Exception):
    """Malformed datasets are the caller's problem."""
    logger.warning(f"Rejected input: {exc}")
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception):
    """Handle unexpected exceptions."""
    logger.exception(f"Unexpected error: {exc}")
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"},
    )


# ============================================================================
# Main Entry Point
# ============================================================================

def run_server():
    """Run the API server using uvicorn."""
    import uvicorn
    logger.info(f"Invoice Readiness API starting on {API_HOST}:{API_PORT}")
    uvicorn.run(app, host=API_HOST, port=API_PORT)


if __name__ == "__main__":
    run_server()
