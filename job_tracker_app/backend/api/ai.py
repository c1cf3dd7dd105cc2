import logging

from fastapi import APIRouter, Depends

from .. import schemas
from ..models.db import user as user_model
from ..services.email_drafter import EmailDrafter, get_email_drafter
from .auth import get_current_user

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/status", response_model=schemas.AIStatusResponse, summary="AI Availability")
def get_ai_status(
    drafter: EmailDrafter = Depends(get_email_drafter),
    current_user: user_model.User = Depends(get_current_user),
):
    """
    Report whether emails will be written by the generative backend or from templates.
    """
    return schemas.AIStatusResponse(data=drafter.status())


@router.post(
    "/generate-email",
    response_model=schemas.GeneratedEmailResponse,
    response_model_exclude_none=True,
    summary="Generate an Outreach Email",
)
def generate_email(
    request: schemas.EmailGenerationRequest,
    drafter: EmailDrafter = Depends(get_email_drafter),
    current_user: user_model.User = Depends(get_current_user),
):
    """
    Draft a cold, follow-up or referral email for a role.

    Always succeeds: when the generative backend is missing or fails, the
    response is a template and ``generated_by`` is "template".
    """
    logger.info("Generating %s email for user %s", request.type.value, current_user.id)
    return schemas.GeneratedEmailResponse(data=drafter.draft(request))
