"""
Health check and system status API endpoints.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from .. import schemas
from ..config.settings import get_settings
from ..models.db.database import check_connection, get_db
from ..services.email_drafter import EmailDrafter, get_email_drafter

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/health", response_model=schemas.HealthResponse, summary="Health Check")
def health_check():
    """
    Basic liveness check. Does not touch the database.
    """
    settings = get_settings()
    return schemas.HealthResponse(
        message=f"{settings.app_name} is running",
        timestamp=datetime.now(timezone.utc),
        version=settings.app_version,
    )


@router.get("/health/detailed", summary="Detailed Health Check")
def detailed_health_check(
    db: Session = Depends(get_db),
    drafter: EmailDrafter = Depends(get_email_drafter),
) -> Dict[str, Any]:
    """
    Health check with database reachability, email drafter mode and configuration issues.
    """
    settings = get_settings()
    database_ok = check_connection(db)

    health_status = {
        "success": True,
        "status": "healthy" if database_ok else "unhealthy",
        "app_info": {
            "name": settings.app_name,
            "version": settings.app_version,
            "environment": settings.environment,
        },
        "database": {"reachable": database_ok},
        "ai": drafter.status().model_dump(),
    }

    config_issues = settings.validate_required_settings()
    if config_issues:
        if database_ok:
            health_status["status"] = "degraded"
        health_status["configuration_issues"] = config_issues
        logger.warning("Configuration issues found: %s", config_issues)

    return health_status
