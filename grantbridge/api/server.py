"""
GrantBridge API Server

Backend for the GrantBridge scholarship discovery frontend.

Endpoints:
    GET  /api/health                    - Health check
    GET  /api/featured-grants           - 3 random grants from the cache
    POST /api/grants                    - Live personalised search
    POST /api/sync-grants               - Rebuild the grants cache (admin)
    POST /api/sonar                     - Free-form application question
    POST /api/requirement-descriptions  - Short requirement descriptions
    POST /api/explain-grant             - Selection criteria for a grant
    POST /api/contact                   - Contact form
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, List

from fastapi import BackgroundTasks, Body, Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from grantbridge.api.deps import (
    close_instances,
    get_cache_store,
    get_description_cache,
    get_explanation_cache,
    get_llm_client,
    get_mailer,
    get_settings,
    get_sync_cooldown,
    get_sync_service,
    limit_api,
    limit_live_search,
    require_admin,
)
from grantbridge.api.schemas import (
    AnswerResponse,
    ContactRequest,
    ErrorResponse,
    ExplainGrantRequest,
    ExplainGrantResponse,
    HealthResponse,
    QuestionRequest,
    RequirementDescriptionsRequest,
    RequirementDescriptionsResponse,
    StatusResponse,
)
from grantbridge.core.domain_models import CachedGrant, LiveGrant
from grantbridge.core.errors import (
    ConfigurationError,
    GrantBridgeError,
    InvalidRequestError,
    ProfileValidationError,
    RateLimitedError,
    UpstreamError,
)
from grantbridge.core.profile import LegacyProfile
from grantbridge.llm.assistant import answer_question, describe_requirements, explain_grant
from grantbridge.pipeline.featured import is_cache_stale, sample_featured
from grantbridge.pipeline.fetcher import search_grants
from grantbridge.pipeline.transform import to_live_grants


settings = get_settings()

# Configure logging
logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)


# Initialize FastAPI app
app = FastAPI(
    title="GrantBridge API",
    version="1.0.0",
    description="Scholarship and grant discovery backed by Perplexity Sonar.",
    docs_url="/docs",
    redoc_url="/redoc",
    dependencies=[Depends(limit_api)],
)

if settings.cors_allow_all:
    logger.warning("CORS: allowing all origins")
    app.add_middleware(
        CORSMiddleware,
        allow_origin_regex=".*",
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
        max_age=86400,
    )
else:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.allowed_origins),
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
        max_age=86400,
    )


@app.middleware("http")
async def log_requests(request: Request, call_next):
    origin = request.headers.get("origin", "no-origin")
    logger.info(f"{request.method} {request.url.path} from {origin}")
    return await call_next(request)


# -----------------------------------------------------------------------------
# Error handling
# -----------------------------------------------------------------------------

@app.exception_handler(GrantBridgeError)
async def grantbridge_error_handler(request: Request, exc: GrantBridgeError):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


# Body validation messages per route, matching the handlers' own 400s
VALIDATION_ERRORS = {
    "/api/grants": ProfileValidationError().message,
    "/api/sonar": "Missing or invalid question.",
    "/api/requirement-descriptions": "Invalid or missing requirements array.",
    "/api/explain-grant": "Missing or invalid grant data.",
}


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    logger.warning(f"Invalid request body for {request.url.path}: {exc.errors()}")
    message = VALIDATION_ERRORS.get(request.url.path, "Invalid request body.")
    return JSONResponse(status_code=400, content={"error": message})


ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}


# -----------------------------------------------------------------------------
# Endpoints
# -----------------------------------------------------------------------------

@app.get("/api/health", response_model=HealthResponse)
def health(
    descriptions=Depends(get_description_cache),
    explanations=Depends(get_explanation_cache),
):
    return HealthResponse(
        status="ok",
        timestamp=datetime.now(timezone.utc).isoformat(),
        services={
            "grants_cache": "active",
            "live_search": "active",
            "cron_sync": "external",
        },
        caches={
            descriptions.name: descriptions.get_stats(),
            explanations.name: explanations.get_stats(),
        },
    )


@app.get("/api/featured-grants", response_model=List[CachedGrant])
def featured_grants(
    background_tasks: BackgroundTasks,
    store=Depends(get_cache_store),
    sync_service=Depends(get_sync_service),
    app_settings=Depends(get_settings),
):
    """
    Three random grants from the cache for the homepage.

    An empty cache is synced inline. A stale cache is served as-is while a
    sync runs in the background. Failures return an empty list.
    """
    logger.info("Fetching featured grants from grants_cache table...")
    try:
        grants = store.fetch_featured()
    except GrantBridgeError as e:
        logger.error(f"Grants cache read failed: {e.message}")
        return []

    if not grants:
        logger.info("No data available, waiting for sync to complete...")
        try:
            sync_service.run()
            grants = store.fetch_featured()
        except GrantBridgeError as e:
            logger.error(f"Sync failed: {e.message}")
            return []
        if not grants:
            logger.info("No grants available after sync")
            return []
        return sample_featured(grants)

    if is_cache_stale(grants, timedelta(days=app_settings.cache_max_age_days)):
        logger.info("Returning stale data while sync runs in background")
        background_tasks.add_task(sync_service.run_in_background)

    selected = sample_featured(grants)
    logger.info(f"Randomly selected {len(selected)} grants from {len(grants)} available")
    return selected


@app.post(
    "/api/grants",
    response_model=List[LiveGrant],
    dependencies=[Depends(limit_live_search)],
    responses={**ERROR_RESPONSES, 429: {"model": ErrorResponse}},
)
def live_search(payload: Any = Body(default=None), client=Depends(get_llm_client)):
    """
    Personalised grant search for a legacy profile.

    The profile is validated strictly. Nothing is cached or stored.
    """
    try:
        profile = LegacyProfile.model_validate(payload)
    except ValidationError as e:
        logger.warning(f"Invalid user profile data ({e.error_count()} errors)")
        raise ProfileValidationError()

    try:
        records = search_grants(client, profile)
    except (UpstreamError, ConfigurationError) as e:
        logger.error(f"✗ Live search failed: {e.message}")
        raise UpstreamError("Failed to fetch grants from Sonar") from e

    return to_live_grants(records)


@app.post(
    "/api/sync-grants",
    response_model=StatusResponse,
    dependencies=[Depends(require_admin)],
    responses={401: {"model": ErrorResponse}, 429: {"model": ErrorResponse}},
)
def sync_grants(
    sync_service=Depends(get_sync_service),
    cooldown=Depends(get_sync_cooldown),
):
    """Rebuild the grants cache now. One run per cooldown window."""
    if not cooldown.try_acquire():
        raise RateLimitedError("Sync already triggered recently. Please wait an hour.")

    logger.info("Manual grants sync triggered")
    try:
        sync_service.run()
    except GrantBridgeError as e:
        logger.error(f"✗ Manual sync failed: {e.message}")
        raise GrantBridgeError("Failed to sync grants") from e

    return StatusResponse(success=True, message="Grants synced successfully")


@app.post("/api/sonar", response_model=AnswerResponse, responses=ERROR_RESPONSES)
def ask_sonar(req: QuestionRequest, client=Depends(get_llm_client)):
    """Answer a free-form question for the application assistant."""
    if not req.question:
        raise InvalidRequestError("Missing or invalid question.")

    try:
        answer = answer_question(client, req.question)
    except GrantBridgeError as e:
        raise GrantBridgeError("Failed to generate draft from Sonar.") from e

    return AnswerResponse(answer=answer)


@app.post(
    "/api/requirement-descriptions",
    response_model=RequirementDescriptionsResponse,
    responses=ERROR_RESPONSES,
)
def requirement_descriptions(
    req: RequirementDescriptionsRequest,
    client=Depends(get_llm_client),
    cache=Depends(get_description_cache),
):
    if not req.requirements:
        raise InvalidRequestError("Invalid or missing requirements array.")

    try:
        descriptions = describe_requirements(client, req.requirements, cache, req.grant_title)
    except GrantBridgeError as e:
        raise GrantBridgeError("Failed to generate requirement descriptions.") from e

    return RequirementDescriptionsResponse(descriptions=descriptions)


@app.post("/api/explain-grant", response_model=ExplainGrantResponse, responses=ERROR_RESPONSES)
def explain(
    req: ExplainGrantRequest,
    client=Depends(get_llm_client),
    cache=Depends(get_explanation_cache),
):
    if not req.title or req.requirements is None:
        raise InvalidRequestError("Missing or invalid grant data.")

    try:
        explanation = explain_grant(client, req.title, req.requirements, cache)
    except GrantBridgeError as e:
        raise GrantBridgeError("Failed to generate explanation.") from e

    return ExplainGrantResponse(**explanation)


@app.post("/api/contact", response_model=StatusResponse, responses=ERROR_RESPONSES)
def contact(req: ContactRequest, mailer=Depends(get_mailer)):
    if not (req.name and req.email and req.message):
        raise InvalidRequestError("Missing required fields")

    mailer.send(
        req.name,
        req.email,
        req.message,
        contact_type=req.contact_type,
        subject=req.subject,
        rating=req.rating,
    )
    return StatusResponse(success=True, message="Email sent successfully")


@app.on_event("startup")
async def startup_event():
    logger.info("=" * 80)
    logger.info("GrantBridge API - Starting")
    logger.info("=" * 80)
    logger.info(f"Sonar: {settings.sonar_base_url} (key {'set' if settings.sonar_api_key else 'MISSING'})")
    logger.info(f"Grants cache: {'configured' if settings.database_url else 'DATABASE_URL MISSING'}")
    logger.info(f"Admin sync: {'protected' if settings.admin_secret else 'UNPROTECTED'}")
    logger.info(f"Docs: http://localhost:{settings.port}/docs")
    logger.info("=" * 80)


@app.on_event("shutdown")
async def shutdown_event():
    close_instances()
