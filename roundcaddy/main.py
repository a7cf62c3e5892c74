from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from roundcaddy.config import settings
from roundcaddy.routers import notifications, preferences, range_sessions, rounds, upload, watch
from roundcaddy.database import engine, Base
from roundcaddy.models import notification as notification_model, preferences as preferences_model  # noqa: F401
from roundcaddy.models import range_session as range_session_model, round as round_model, user as user_model  # noqa: F401
import structlog

# Configure structured logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    wrapper_class=structlog.stdlib.BoundLogger,
    cache_logger_on_first_use=True,
)

logger = structlog.get_logger()

# Create database tables
Base.metadata.create_all(bind=engine)

app = FastAPI(
    title="RoundCaddy Range API",
    description="Range practice sessions with camera and Watch swing fusion",
    version="1.0.0"
)

origins = [o.strip() for o in settings.cors_origins.split(",")] if settings.cors_origins else ["*"]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(range_sessions.router)
app.include_router(watch.router)
app.include_router(rounds.router)
app.include_router(preferences.router)
app.include_router(notifications.router)
app.include_router(upload.router)


@app.get("/")
async def root():
    """Health check endpoint."""
    return {"message": "RoundCaddy Range API is running"}


@app.get("/health")
async def health_check():
    """Detailed health check endpoint."""
    return {
        "status": "healthy",
        "service": "roundcaddy-range-api",
        "version": "1.0.0",
        "environment": settings.environment
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
