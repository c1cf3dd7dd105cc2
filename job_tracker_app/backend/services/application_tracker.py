import logging
from collections import Counter
from datetime import date
from typing import List, Optional, Tuple

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .. import schemas
from ..models.db.application import JobApplication
from ..models.db.user import utcnow
from ..utils.api_helpers import handle_store_error

logger = logging.getLogger(__name__)

RECENT_APPLICATIONS_LIMIT = 5
MUTABLE_FIELDS = ("company_name", "role", "status", "applied_date", "notes")


def _owned_by(db: Session, user_id):
    # Every application query starts here: the owner predicate is never optional
    return db.query(JobApplication).filter(JobApplication.user_id == user_id)


def get_application_by_id(db: Session, application_id, user_id) -> Optional[JobApplication]:
    try:
        return _owned_by(db, user_id).filter(JobApplication.id == application_id).first()
    except SQLAlchemyError as e:
        raise handle_store_error(db, e, "Failed to fetch job application", "FETCH_ERROR")


def get_applications_for_user(
    db: Session,
    user_id,
    status: Optional[schemas.JobStatus] = None,
    search: Optional[str] = None,
    limit: int = 50,
    offset: int = 0,
) -> Tuple[List[JobApplication], int]:
    """
    Return one page of the user's applications plus the total number matching the filters.

    ``search`` is a case-insensitive substring match on company name or role.
    """
    query = _owned_by(db, user_id)
    if status is not None:
        query = query.filter(JobApplication.status == schemas.JobStatus(status).value)
    if search:
        query = query.filter(
            or_(
                JobApplication.company_name.icontains(search, autoescape=True),
                JobApplication.role.icontains(search, autoescape=True),
            )
        )

    try:
        total = query.count()
        applications = (
            query.order_by(JobApplication.applied_date.desc(), JobApplication.created_at.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )
    except SQLAlchemyError as e:
        raise handle_store_error(db, e, "Failed to fetch job applications", "FETCH_ERROR")
    return applications, total


def create_application_for_user(db: Session, application: schemas.JobApplicationCreate, user_id) -> JobApplication:
    db_application = JobApplication(
        user_id=user_id,
        company_name=application.company_name,
        role=application.role,
        status=application.status.value,
        applied_date=application.applied_date or date.today(),
        notes=application.notes or "",
    )
    try:
        db.add(db_application)
        db.commit()
        db.refresh(db_application)
    except SQLAlchemyError as e:
        raise handle_store_error(db, e, "Failed to create job application", "CREATE_ERROR")
    logger.info("Created application %s for user %s", db_application.id, user_id)
    return db_application


def update_application(
    db: Session, application_id, application_update: schemas.JobApplicationUpdate, user_id
) -> Optional[JobApplication]:
    db_application = get_application_by_id(db=db, application_id=application_id, user_id=user_id)
    if db_application is None:
        return None

    update_data = application_update.model_dump(exclude_unset=True)
    for key, value in update_data.items():
        if key not in MUTABLE_FIELDS:
            continue
        if isinstance(value, schemas.JobStatus):
            value = value.value
        setattr(db_application, key, value)
    db_application.updated_at = utcnow()

    try:
        db.commit()
        db.refresh(db_application)
    except SQLAlchemyError as e:
        raise handle_store_error(db, e, "Failed to update job application", "UPDATE_ERROR")
    return db_application


def delete_application(db: Session, application_id, user_id) -> Optional[JobApplication]:
    db_application = get_application_by_id(db=db, application_id=application_id, user_id=user_id)
    if db_application is None:
        return None
    try:
        db.delete(db_application)
        db.commit()
    except SQLAlchemyError as e:
        raise handle_store_error(db, e, "Failed to delete job application", "DELETE_ERROR")
    logger.info("Deleted application %s for user %s", application_id, user_id)
    return db_application


def delete_applications_for_user(db: Session, user_id) -> int:
    """Delete every application of the user. The caller commits."""
    try:
        return _owned_by(db, user_id).delete(synchronize_session=False)
    except SQLAlchemyError as e:
        raise handle_store_error(db, e, "Failed to delete user data", "DELETE_ERROR")


def get_application_stats(db: Session, user_id) -> Tuple[schemas.JobStats, List[JobApplication]]:
    """
    Count the user's applications in total and per status, and load the most
    recently created ones. Scans the user's full record set.
    """
    try:
        statuses = [
            row.status
            for row in db.query(JobApplication.status).filter(JobApplication.user_id == user_id).all()
        ]
    except SQLAlchemyError as e:
        raise handle_store_error(db, e, "Failed to fetch statistics", "STATS_ERROR")

    counts = Counter(statuses)
    stats = schemas.JobStats(
        total=len(statuses),
        applied=counts[schemas.JobStatus.APPLIED.value],
        interview=counts[schemas.JobStatus.INTERVIEW.value],
        rejected=counts[schemas.JobStatus.REJECTED.value],
        offer=counts[schemas.JobStatus.OFFER.value],
    )

    try:
        recent = (
            _owned_by(db, user_id)
            .order_by(JobApplication.created_at.desc())
            .limit(RECENT_APPLICATIONS_LIMIT)
            .all()
        )
    except SQLAlchemyError as e:
        # The counts are still useful without the recent list
        logger.error("Error fetching recent applications for user %s: %s", user_id, e)
        db.rollback()
        recent = []

    return stats, recent
