"""
FastAPI REST API for the value extraction service.

Provides /extract and /health endpoints. Pipeline errors are mapped to
JSON error bodies by the exception handlers below.

Usage:
    uvicorn valuescore.api:app --reload
    # or
    python -m valuescore.api
"""

import logging
import time

from dotenv import load_dotenv
from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from valuescore import errors
from valuescore.api_models import (
    ErrorResponse,
    ExtractRequest,
    ExtractResponse,
    HealthResponse,
    UpstreamErrorResponse,
)
from valuescore.config import ExtractorConfig
from valuescore.inference import InferenceClient
from valuescore.logging_config import setup_logging
from valuescore.pipeline import run_extraction
from valuescore.storage import ExtractionStore, create_store

load_dotenv()
setup_logging()
logger = logging.getLogger(__name__)

# --- App setup ---

app = FastAPI(
    title="Value Extraction API",
    description="Scores free-form text against ten personal values via a generation endpoint",
    version="0.1.0",
)

# --- Dependencies ---

_config: ExtractorConfig | None = None
_store: ExtractionStore | None = None


def get_config() -> ExtractorConfig:
    """Load configuration from the environment on first call."""
    global _config
    if _config is None:
        _config = ExtractorConfig.from_env()
    return _config


def get_store(config: ExtractorConfig = Depends(get_config)) -> ExtractionStore:
    """Get the extraction store, creating it on first call."""
    global _store
    if _store is None:
        logger.info("Initializing extraction store...")
        _store = create_store(config.database_url)
    return _store


def get_client(config: ExtractorConfig = Depends(get_config)) -> InferenceClient:
    return InferenceClient(config)


# --- Error mapping ---

@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    # Rejected input may hold user text: log location and error type only
    problems = [(".".join(str(part) for part in err["loc"]), err["type"]) for err in exc.errors()]
    logger.info("Rejected request body: %s", problems)
    return JSONResponse(
        status_code=400,
        content={"error": "Request body must include a 'text' string."},
    )


@app.exception_handler(errors.ValidationError)
async def validation_handler(request: Request, exc: errors.ValidationError):
    return JSONResponse(status_code=400, content={"error": str(exc)})


@app.exception_handler(errors.ConfigurationError)
async def configuration_handler(request: Request, exc: errors.ConfigurationError):
    logger.error("Configuration error: %s", exc)
    return JSONResponse(status_code=500, content={"error": str(exc)})


@app.exception_handler(errors.UpstreamTimeoutError)
async def timeout_handler(request: Request, exc: errors.UpstreamTimeoutError):
    return JSONResponse(status_code=504, content={"error": str(exc)})


@app.exception_handler(errors.UpstreamError)
async def upstream_handler(request: Request, exc: errors.UpstreamError):
    logger.warning("Upstream error status=%s: %s", exc.status, exc)
    return JSONResponse(
        status_code=502,
        content={"error": str(exc), "status": exc.status, "details": exc.details},
    )


# --- Request logging middleware ---

@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log every request with timing."""
    start = time.time()
    response = await call_next(request)
    elapsed = time.time() - start
    logger.info(
        f"{request.method} {request.url.path} "
        f"status={response.status_code} "
        f"time={elapsed:.3f}s"
    )
    return response


# --- Routes ---

@app.get("/health", response_model=HealthResponse)
def health(config: ExtractorConfig = Depends(get_config),
           store: ExtractionStore = Depends(get_store)):
    """System health check. Reports degraded when no credential is set."""
    return HealthResponse(
        status="healthy" if config.api_key else "degraded",
        model=config.model_label,
        endpoint_configured=bool(config.api_key),
        store=store.backend_name,
    )


@app.post(
    "/extract",
    response_model=ExtractResponse,
    responses={
        400: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
        502: {"model": UpstreamErrorResponse},
        504: {"model": ErrorResponse},
    },
)
async def extract(
    req: ExtractRequest,
    config: ExtractorConfig = Depends(get_config),
    client: InferenceClient = Depends(get_client),
    store: ExtractionStore = Depends(get_store),
):
    """
    Score a piece of text and record the result.

    Returns 200 whenever the model answered, even if its output held no
    valid JSON or the database write failed; check parseError and
    persistError for those cases.
    """
    return await run_extraction(req.text, config, client, store)


# --- Entrypoint for python -m ---

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("valuescore.api:app", host="0.0.0.0", port=8000, reload=True)
