import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.config import settings
from app.http import init_http, close_http
from app.routers import debug, profile, satellite
from app.utils.cache import cache, init_cache, close_cache
from app.utils.logging import setup_logging

logger = logging.getLogger(__name__)

# Single FastAPI instance
app = FastAPI(title="KisanMitr API", version="1.0.0")

# Single startup event
@app.on_event("startup")
async def startup_event():
    """Initialize logging, cache and HTTP client on startup."""
    setup_logging(settings.LOG_LEVEL)
    await init_cache()
    await init_http()
    logger.info("KisanMitr API started")

# Single shutdown event
@app.on_event("shutdown")
async def shutdown_event():
    """Close HTTP client and cache sweeper on shutdown."""
    await close_http()
    await close_cache()
    logger.info("KisanMitr API stopped")

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    logger.info("Rejected %s %s: %d validation error(s)", request.method, request.url.path, len(exc.errors()))
    return JSONResponse(
        status_code=400,
        content={"error": "Invalid request payload", "details": jsonable_encoder(exc.errors())},
    )


app.include_router(debug.router)
app.include_router(profile.router)
app.include_router(satellite.router)


@app.get("/")
async def root():
    return {"ok": True, "service": "KisanMitr API", "version": app.version}

@app.get("/health")
async def health():
    return {
        "ok": True,
        "agromonitoring": bool(settings.AGROMONITORING_API_KEY),
        "insights": bool(settings.OPENAI_API_KEY),
        "source_timeout_sec": settings.SOURCE_TIMEOUT_SEC,
        "max_history_days": settings.MAX_HISTORY_DAYS,
        "cache": cache.stats(),
    }
