from datetime import date, datetime
from enum import Enum
from typing import List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

COMPANY_NAME_MAX_LENGTH = 200
ROLE_MAX_LENGTH = 200
NOTES_MAX_LENGTH = 2000
SEARCH_MAX_LENGTH = 100
PASSWORD_MIN_LENGTH = 6


class JobStatus(str, Enum):
    APPLIED = "Applied"
    INTERVIEW = "Interview"
    REJECTED = "Rejected"
    OFFER = "Offer"


class EmailType(str, Enum):
    COLD = "cold"
    FOLLOWUP = "followup"
    REFERRAL = "referral"


STATUS_CHOICES_MESSAGE = "Status must be one of: " + ", ".join(s.value for s in JobStatus)
EMAIL_TYPE_CHOICES_MESSAGE = "Type must be one of: " + ", ".join(t.value for t in EmailType)
APPLIED_DATE_MESSAGE = "Applied date must be a valid date (YYYY-MM-DD)"


# Validation helpers shared by the request models below

def clean_text(value, label: str, max_length: int, empty_message: str) -> str:
    if value is None or not isinstance(value, str):
        raise ValueError(empty_message)
    value = value.strip()
    if not value:
        raise ValueError(empty_message)
    if len(value) > max_length:
        raise ValueError(f"{label} must be between 1 and {max_length} characters")
    return value


def clean_notes(value) -> str:
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValueError("Notes must be text")
    value = value.strip()
    if len(value) > NOTES_MAX_LENGTH:
        raise ValueError(f"Notes must be less than {NOTES_MAX_LENGTH} characters")
    return value


def parse_status(value):
    if isinstance(value, JobStatus):
        return value
    if value not in [s.value for s in JobStatus]:
        raise ValueError(STATUS_CHOICES_MESSAGE)
    return value


def parse_applied_date(value):
    """Accept a date or an ISO 8601 date/datetime string."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            return date.fromisoformat(text)
        except ValueError:
            pass
        try:
            return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
        except ValueError:
            pass
    raise ValueError(APPLIED_DATE_MESSAGE)


# Common Schemas
class ErrorDetail(BaseModel):
    field: str
    message: str


class ErrorResponse(BaseModel):
    success: bool = False
    message: str
    code: str
    errors: Optional[List[ErrorDetail]] = None
    stack: Optional[str] = None


class MessageResponse(BaseModel):
    success: bool = True
    message: str


class HealthResponse(BaseModel):
    success: bool = True
    message: str
    timestamp: datetime
    version: str


# Auth Schemas
class UserCredentials(BaseModel):
    email: str
    password: str

    @field_validator("email", mode="before")
    @classmethod
    def validate_email(cls, v):
        if not isinstance(v, str) or "@" not in v.strip() or len(v.strip()) > 320:
            raise ValueError("A valid email address is required")
        return v.strip().lower()

    @field_validator("password")
    @classmethod
    def validate_password(cls, v):
        if len(v) < PASSWORD_MIN_LENGTH:
            raise ValueError(f"Password must be at least {PASSWORD_MIN_LENGTH} characters")
        return v


class LoginRequest(BaseModel):
    email: str
    password: str


class Token(BaseModel):
    access_token: str
    token_type: str


class UserProfile(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    email: str
    created_at: datetime
    last_sign_in_at: Optional[datetime] = None
    email_confirmed_at: Optional[datetime] = None


class UserProfileResponse(BaseModel):
    success: bool = True
    message: Optional[str] = None
    data: UserProfile


class TokenVerification(BaseModel):
    user_id: UUID = Field(serialization_alias="userId")
    email: str


class TokenVerificationResponse(BaseModel):
    success: bool = True
    message: str
    data: TokenVerification


# Job Application Schemas
class JobApplicationCreate(BaseModel):
    company_name: str
    role: str
    status: JobStatus
    applied_date: Optional[date] = None
    notes: Optional[str] = None

    @field_validator("company_name", mode="before")
    @classmethod
    def validate_company_name(cls, v):
        return clean_text(v, "Company name", COMPANY_NAME_MAX_LENGTH, "Company name is required")

    @field_validator("role", mode="before")
    @classmethod
    def validate_role(cls, v):
        return clean_text(v, "Role", ROLE_MAX_LENGTH, "Role is required")

    @field_validator("status", mode="before")
    @classmethod
    def validate_status(cls, v):
        return parse_status(v)

    @field_validator("applied_date", mode="before")
    @classmethod
    def validate_applied_date(cls, v):
        if v is None:
            return None
        return parse_applied_date(v)

    @field_validator("notes", mode="before")
    @classmethod
    def validate_notes(cls, v):
        return clean_notes(v)


class JobApplicationUpdate(BaseModel):
    """Partial update. Fields not listed here (user_id, id, timestamps) are dropped."""

    company_name: Optional[str] = None
    role: Optional[str] = None
    status: Optional[JobStatus] = None
    applied_date: Optional[date] = None
    notes: Optional[str] = None

    @field_validator("company_name", mode="before")
    @classmethod
    def validate_company_name(cls, v):
        return clean_text(v, "Company name", COMPANY_NAME_MAX_LENGTH, "Company name cannot be empty")

    @field_validator("role", mode="before")
    @classmethod
    def validate_role(cls, v):
        return clean_text(v, "Role", ROLE_MAX_LENGTH, "Role cannot be empty")

    @field_validator("status", mode="before")
    @classmethod
    def validate_status(cls, v):
        return parse_status(v)

    @field_validator("applied_date", mode="before")
    @classmethod
    def validate_applied_date(cls, v):
        return parse_applied_date(v)

    @field_validator("notes", mode="before")
    @classmethod
    def validate_notes(cls, v):
        return clean_notes(v)


class JobApplication(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: UUID
    company_name: str
    role: str
    status: JobStatus
    applied_date: date
    notes: str
    created_at: datetime
    updated_at: datetime


class JobApplicationResponse(BaseModel):
    success: bool = True
    message: Optional[str] = None
    data: JobApplication


class Pagination(BaseModel):
    total: int
    limit: int
    offset: int
    has_more: bool = Field(serialization_alias="hasMore")


class JobApplicationList(BaseModel):
    success: bool = True
    data: List[JobApplication]
    pagination: Pagination


class JobStats(BaseModel):
    total: int = 0
    applied: int = 0
    interview: int = 0
    rejected: int = 0
    offer: int = 0


class JobStatsData(BaseModel):
    stats: JobStats
    recent: List[JobApplication]


class JobStatsResponse(BaseModel):
    success: bool = True
    data: JobStatsData


# AI Email Schemas
class EmailGenerationRequest(BaseModel):
    type: EmailType
    company_name: str
    role: str
    your_name: str
    recipient_name: Optional[str] = None

    @field_validator("type", mode="before")
    @classmethod
    def validate_type(cls, v):
        if isinstance(v, EmailType):
            return v
        if v not in [t.value for t in EmailType]:
            raise ValueError(EMAIL_TYPE_CHOICES_MESSAGE)
        return v

    @field_validator("company_name", mode="before")
    @classmethod
    def validate_company_name(cls, v):
        return clean_text(v, "Company name", COMPANY_NAME_MAX_LENGTH, "Company name is required")

    @field_validator("role", mode="before")
    @classmethod
    def validate_role(cls, v):
        return clean_text(v, "Role", ROLE_MAX_LENGTH, "Role is required")

    @field_validator("your_name", mode="before")
    @classmethod
    def validate_your_name(cls, v):
        return clean_text(v, "Your name", 200, "Your name is required")

    @field_validator("recipient_name", mode="before")
    @classmethod
    def validate_recipient_name(cls, v):
        if v is None:
            return None
        if not isinstance(v, str):
            raise ValueError("Recipient name must be text")
        return v.strip() or None


class GeneratedEmail(BaseModel):
    subject: str
    body: str
    generated_by: Literal["ai", "template"]
    note: Optional[str] = None


class GeneratedEmailResponse(BaseModel):
    success: bool = True
    data: GeneratedEmail


class AIStatus(BaseModel):
    available: bool
    message: str


class AIStatusResponse(BaseModel):
    success: bool = True
    data: AIStatus
