import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Header, Request, status
from jose import JWTError
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from .. import schemas
from ..models.db import crud
from ..models.db import user as user_model
from ..models.db.database import bind_owner, get_db, release_owner
from ..security import create_access_token, decode_access_token, get_password_hash, verify_password
from ..services import application_tracker as application_service
from ..utils.api_helpers import APIError, handle_store_error

logger = logging.getLogger(__name__)

router = APIRouter()

BEARER_CHALLENGE = {"WWW-Authenticate": "Bearer"}


def _unauthorized(message: str, code: str) -> APIError:
    return APIError(message, status.HTTP_401_UNAUTHORIZED, code, headers=BEARER_CHALLENGE)


def extract_bearer_token(authorization: Optional[str]) -> str:
    """Return the token from an ``Authorization: Bearer <token>`` header value."""
    if not authorization:
        raise _unauthorized("Access denied. No authorization header provided.", "NO_AUTH_HEADER")
    parts = authorization.split(" ")
    if len(parts) != 2 or parts[0] != "Bearer" or not parts[1]:
        raise _unauthorized("Invalid authorization format. Expected: Bearer <token>", "INVALID_AUTH_FORMAT")
    return parts[1]


def get_current_user(
    request: Request,
    authorization: Optional[str] = Header(None),
    db: Session = Depends(get_db),
) -> user_model.User:
    """
    Verify the bearer token and resolve the calling user.

    The user is also attached to ``request.state.user`` for downstream use.
    """
    token = extract_bearer_token(authorization)
    invalid_token = _unauthorized("Invalid or expired token. Please sign in again.", "INVALID_TOKEN")

    try:
        payload = decode_access_token(token)
        user_id = uuid.UUID(str(payload.get("sub")))
    except (JWTError, ValueError) as e:
        logger.warning("Auth verification failed: %s", e)
        raise invalid_token

    try:
        user = crud.get_user_by_id(db, user_id)
    except SQLAlchemyError as e:
        logger.error("Auth lookup error: %s", e)
        db.rollback()
        raise APIError("Authentication error. Please try again.", status.HTTP_500_INTERNAL_SERVER_ERROR, "AUTH_ERROR")

    if user is None or not user.is_active:
        logger.warning("Auth verification failed: no active user for token subject %s", user_id)
        raise invalid_token

    request.state.user = user
    return user


def get_user_db(
    db: Session = Depends(get_db),
    current_user: user_model.User = Depends(get_current_user),
):
    """The request's session, scoped to the caller for owned tables."""
    bind_owner(db, current_user.id)
    try:
        yield db
    finally:
        release_owner(db)


@router.post("/register", response_model=schemas.UserProfileResponse, status_code=status.HTTP_201_CREATED)
def register(credentials: schemas.UserCredentials, db: Session = Depends(get_db)):
    if crud.get_user_by_email(db, email=credentials.email):
        raise APIError("Email already registered", status.HTTP_400_BAD_REQUEST, "EMAIL_EXISTS")

    hashed_password = get_password_hash(credentials.password)
    try:
        new_user = crud.create_user(db=db, email=credentials.email, hashed_password=hashed_password)
    except IntegrityError:
        db.rollback()
        raise APIError("Email already registered", status.HTTP_400_BAD_REQUEST, "EMAIL_EXISTS")
    except SQLAlchemyError as e:
        raise handle_store_error(db, e, "Failed to create user account", "CREATE_ERROR")

    logger.info("Registered user %s", new_user.id)
    return schemas.UserProfileResponse(
        message="Account created successfully",
        data=schemas.UserProfile.model_validate(new_user),
    )


@router.post("/login", response_model=schemas.Token)
def login(credentials: schemas.LoginRequest, db: Session = Depends(get_db)):
    user = crud.get_user_by_email(db, email=credentials.email.strip())
    if not user or not user.is_active or not verify_password(credentials.password, user.hashed_password):
        raise _unauthorized("Incorrect email or password", "INVALID_CREDENTIALS")

    crud.record_sign_in(db, user)
    access_token = create_access_token(data={"sub": str(user.id), "email": user.email})
    return {"access_token": access_token, "token_type": "bearer"}


@router.get("/me", response_model=schemas.UserProfileResponse, response_model_exclude_none=True)
def get_me(current_user: user_model.User = Depends(get_current_user)):
    return schemas.UserProfileResponse(data=schemas.UserProfile.model_validate(current_user))


@router.get("/verify", response_model=schemas.TokenVerificationResponse)
def verify_token(current_user: user_model.User = Depends(get_current_user)):
    # Reaching this point means get_current_user accepted the token
    return schemas.TokenVerificationResponse(
        message="Token is valid",
        data=schemas.TokenVerification(user_id=current_user.id, email=current_user.email),
    )


@router.delete("/account", response_model=schemas.MessageResponse)
def delete_account(
    db: Session = Depends(get_user_db),
    current_user: user_model.User = Depends(get_current_user),
):
    """
    Permanently delete the caller's account and all of their job applications.
    """
    user_id = current_user.id
    deleted = application_service.delete_applications_for_user(db, user_id)
    try:
        crud.delete_user(db, current_user)
    except SQLAlchemyError as e:
        raise handle_store_error(db, e, "Failed to delete user account", "DELETE_ERROR")

    logger.info("Deleted account %s and %d applications", user_id, deleted)
    return schemas.MessageResponse(message="Account deleted successfully")
