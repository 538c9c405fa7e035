"""Main FastAPI application for Progress Service."""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
import structlog
from prometheus_fastapi_instrumentator import Instrumentator

from app.core.config import settings
from app.core.logging import setup_logging
from app.core.database import init_db, get_db
from app.core.dependencies import build_progression_service, close_http_client
from app.core.exceptions import ProgressionError
from app.routers import achievements, diagnostic, practice, progress

# Setup structured logging
setup_logging()
logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifecycle manager."""
    # Startup
    logger.info("Starting MathFlow Progress Service", version=settings.APP_VERSION)

    # Initialize database
    await init_db()

    # Store in app state
    app.state.progression_service = await build_progression_service()

    logger.info("Progress service initialized successfully")

    yield

    # Shutdown
    await close_http_client()
    logger.info("Shutting down MathFlow Progress Service")


# Create FastAPI app
app = FastAPI(
    title="MathFlow Progress Service",
    description="Ability estimation, adaptive difficulty, XP, streaks and achievements for MathFlow",
    version=settings.APP_VERSION,
    lifespan=lifespan,
    docs_url="/docs" if not settings.is_production() else None,
    redoc_url="/redoc" if not settings.is_production() else None,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Prometheus metrics
if settings.ENABLE_METRICS:
    Instrumentator().instrument(app).expose(app, endpoint="/metrics")


@app.exception_handler(ProgressionError)
async def progression_error_handler(request: Request, exc: ProgressionError):
    """Map typed progression errors to their HTTP status."""
    log = logger.error if exc.status_code >= 500 else logger.info
    log(
        "Request failed",
        path=request.url.path,
        error=exc.error_code,
        message=exc.message,
        details=exc.details
    )
    return JSONResponse(content=exc.to_dict(), status_code=exc.status_code)


# Include routers
app.include_router(diagnostic.router, prefix="/api/diagnostic", tags=["diagnostic"])
app.include_router(practice.router, prefix="/api/practice", tags=["practice"])
app.include_router(progress.router, prefix="/api/progress", tags=["progress"])
app.include_router(achievements.router, prefix="/api/achievements", tags=["achievements"])


@app.get("/", tags=["root"])
async def root():
    """Root endpoint."""
    return {
        "service": "MathFlow Progress Service",
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "status": "operational"
    }


@app.get("/health", tags=["health"])
async def health_check():
    """Health check endpoint."""
    health_status = {
        "status": "healthy",
        "service": settings.SERVICE_NAME,
        "version": settings.APP_VERSION,
        "checks": {}
    }

    # Check database
    try:
        async for db in get_db():
            await db.execute(text("SELECT 1"))
            health_status["checks"]["database"] = "healthy"
    except Exception as e:
        logger.warning("Database health check failed", error=str(e))
        health_status["checks"]["database"] = f"unhealthy: {str(e)}"
        health_status["status"] = "degraded"

    status_code = 200 if health_status["status"] == "healthy" else 503
    return JSONResponse(content=health_status, status_code=status_code)


@app.get("/config", tags=["debug"])
async def get_config():
    """Get current configuration (development only)."""
    if settings.is_production():
        return JSONResponse(
            content={"error": "Not available in production"},
            status_code=403
        )

    return {
        "environment": settings.ENVIRONMENT,
        "content_generator": {
            "url": settings.CONTENT_GENERATOR_URL,
            "timeout": settings.CONTENT_GENERATOR_TIMEOUT
        },
        "xp": {
            "problem": {
                "correct": settings.XP_PROBLEM_CORRECT,
                "first_try": settings.XP_PROBLEM_FIRST_TRY,
                "fast": settings.XP_PROBLEM_FAST,
                "fast_seconds": settings.XP_PROBLEM_FAST_SECONDS,
                "streak": settings.XP_PROBLEM_STREAK
            },
            "session": {
                "complete": settings.XP_SESSION_COMPLETE,
                "perfect": settings.XP_SESSION_PERFECT,
                "flow": settings.XP_SESSION_FLOW,
                "daily_first": settings.XP_DAILY_FIRST,
                "streak_per_day": settings.XP_STREAK_PER_DAY
            },
            "streak_milestones": settings.XP_STREAK_MILESTONES,
            "per_level": settings.XP_PER_LEVEL
        }
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=settings.SERVICE_PORT,
        reload=settings.ENVIRONMENT == "development",
        log_config=None  # Use structlog instead
    )
