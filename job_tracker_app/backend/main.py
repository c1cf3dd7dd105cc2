from dotenv import load_dotenv

load_dotenv()

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from .api import ai, application, auth, health
from .models.db.database import engine, Base, check_connection
from .models.db import user as user_model
from .models.db import application as application_model
from .services.email_drafter import get_email_drafter
from .utils.api_helpers import register_exception_handlers
from .utils.logging_config import setup_logging, get_logger
from .config.settings import get_settings

# Initialize settings
settings = get_settings()

setup_logging(
    level=settings.log_level,
    log_file=settings.log_file,
    fmt=settings.log_format,
    datefmt=settings.log_date_format,
)
logger = get_logger(__name__)

# Validate configuration on startup
missing_settings = settings.validate_required_settings()
if missing_settings:
    for setting in missing_settings:
        logger.error("Configuration error: %s", setting)
    if settings.is_production():
        raise RuntimeError("Invalid configuration for production environment")

app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    docs_url="/docs" if settings.api_docs_enabled else None,
    redoc_url="/redoc" if settings.api_docs_enabled else None,
)

register_exception_handlers(app)

if settings.cors_enabled:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.get_allowed_origins(),
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )

if settings.is_development():
    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        logger.info("%s %s", request.method, request.url.path)
        return await call_next(request)

# Routers
app.include_router(health.router, prefix="/api", tags=["Health Check"])
app.include_router(auth.router, prefix="/api/auth", tags=["Authentication"])
app.include_router(application.router, prefix="/api/jobs", tags=["Job Applications"])
app.include_router(ai.router, prefix="/api/ai", tags=["AI Email Generation"])


@app.on_event("startup")
def on_startup():
    """Check the store, create tables and pick the email drafter."""
    logger.info("Starting %s v%s (%s)...", settings.app_name, settings.app_version, settings.environment)
    if not check_connection():
        logger.critical("Failed to connect to database. Refusing to start.")
        raise RuntimeError("Database connection failed")

    # Importing the model modules above registers their tables on Base
    Base.metadata.create_all(bind=engine)
    logger.info("Database tables initialized successfully")

    drafter = get_email_drafter()
    logger.info("Email drafting mode: %s", "ai" if drafter.available else "template")


@app.get("/")
def read_root():
    return {
        "success": True,
        "message": "Welcome to the Job Tracker API",
        "documentation": "/api/health",
        "version": settings.app_version,
    }
