from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from .. import schemas
from ..models.db import user as user_model
from ..services import application_tracker as application_service
from ..utils.api_helpers import check_resource_exists
from .auth import get_current_user, get_user_db

router = APIRouter()

RESOURCE_NAME = "Job application"


def _serialize(application) -> schemas.JobApplication:
    return schemas.JobApplication.model_validate(application)


@router.get("", response_model=schemas.JobApplicationList)
def read_applications(
    status_filter: Optional[schemas.JobStatus] = Query(None, alias="status"),
    search: Optional[str] = Query(None, max_length=schemas.SEARCH_MAX_LENGTH),
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_user_db),
    current_user: user_model.User = Depends(get_current_user),
):
    """
    Retrieve the current user's job applications, newest applied date first.
    Optionally filter by status and by a company/role search term.
    """
    search = search.strip() if search else None
    applications, total = application_service.get_applications_for_user(
        db, user_id=current_user.id, status=status_filter, search=search, limit=limit, offset=offset
    )
    return schemas.JobApplicationList(
        data=[_serialize(a) for a in applications],
        pagination=schemas.Pagination(
            total=total,
            limit=limit,
            offset=offset,
            has_more=offset + len(applications) < total,
        ),
    )


@router.get("/stats", response_model=schemas.JobStatsResponse)
def read_application_stats(
    db: Session = Depends(get_user_db),
    current_user: user_model.User = Depends(get_current_user),
):
    """
    Dashboard statistics: counts per status plus the five most recent applications.
    """
    stats, recent = application_service.get_application_stats(db, user_id=current_user.id)
    return schemas.JobStatsResponse(
        data=schemas.JobStatsData(stats=stats, recent=[_serialize(a) for a in recent])
    )


@router.get("/{job_id}", response_model=schemas.JobApplicationResponse, response_model_exclude_none=True)
def read_application(
    job_id: UUID,
    db: Session = Depends(get_user_db),
    current_user: user_model.User = Depends(get_current_user),
):
    db_application = application_service.get_application_by_id(
        db, application_id=job_id, user_id=current_user.id
    )
    check_resource_exists(db_application, RESOURCE_NAME)
    return schemas.JobApplicationResponse(data=_serialize(db_application))


@router.post("", response_model=schemas.JobApplicationResponse, status_code=status.HTTP_201_CREATED)
def create_application(
    application: schemas.JobApplicationCreate,
    db: Session = Depends(get_user_db),
    current_user: user_model.User = Depends(get_current_user),
):
    """
    Create a new job application entry owned by the current user.
    """
    db_application = application_service.create_application_for_user(
        db=db, application=application, user_id=current_user.id
    )
    return schemas.JobApplicationResponse(
        message="Job application created successfully", data=_serialize(db_application)
    )


@router.put("/{job_id}", response_model=schemas.JobApplicationResponse)
def update_application(
    job_id: UUID,
    application: schemas.JobApplicationUpdate,
    db: Session = Depends(get_user_db),
    current_user: user_model.User = Depends(get_current_user),
):
    """
    Update any subset of a job application's fields. The owner cannot be changed.
    """
    db_application = application_service.update_application(
        db, application_id=job_id, application_update=application, user_id=current_user.id
    )
    check_resource_exists(db_application, RESOURCE_NAME)
    return schemas.JobApplicationResponse(
        message="Job application updated successfully", data=_serialize(db_application)
    )


@router.delete("/{job_id}", response_model=schemas.MessageResponse)
def delete_application(
    job_id: UUID,
    db: Session = Depends(get_user_db),
    current_user: user_model.User = Depends(get_current_user),
):
    db_application = application_service.delete_application(
        db, application_id=job_id, user_id=current_user.id
    )
    check_resource_exists(db_application, RESOURCE_NAME)
    return schemas.MessageResponse(message="Job application deleted successfully")
