"""
Outreach email drafting.

Two drafters implement the same interface: ``TemplateEmailDrafter`` fills a
fixed template, ``GeminiEmailDrafter`` asks Gemini for a draft and falls back
to the template on any failure. ``get_email_drafter`` picks one once per
process from the configuration, so a deployment without a usable
``GOOGLE_API_KEY`` never makes an outbound call.
"""
import logging
import re
from abc import ABC, abstractmethod
from functools import lru_cache
from typing import Optional, Tuple

import google.generativeai as genai

from .. import schemas
from ..config.settings import get_settings

logger = logging.getLogger(__name__)

UNAVAILABLE_NOTE = "AI generation is currently unavailable. Using template instead."
ERROR_NOTE = "AI generation encountered an error. Using template instead."

SYSTEM_INSTRUCTION = (
    "You are a helpful assistant that writes professional job application emails. "
    "Be concise, professional, and persuasive."
)

# Gemini API keys are "AIza" followed by 35 URL-safe characters
API_KEY_PATTERN = re.compile(r"AIza[0-9A-Za-z_\-]{35}")
SUBJECT_PREFIX = re.compile(r"^subject:\s*", re.IGNORECASE)


# =============================================================================
# TEMPLATES
# =============================================================================

def _cold_template(company: str, role: str, your_name: str, recipient_name: Optional[str] = None) -> Tuple[str, str]:
    subject = f"Application for {role} at {company}"
    body = f"""Dear Hiring Manager,

I hope this email finds you well. My name is {your_name}, and I am writing to express my interest in the {role} position at {company}.

I have been following {company}'s work and am particularly impressed by your innovative approach to the industry. I believe my skills and experience make me a strong candidate for this role.

I would welcome the opportunity to discuss how I can contribute to your team. Thank you for considering my application.

Best regards,
{your_name}"""
    return subject, body


def _followup_template(company: str, role: str, your_name: str, recipient_name: Optional[str] = None) -> Tuple[str, str]:
    subject = f"Follow-up: {role} Application at {company}"
    body = f"""Dear Hiring Manager,

I hope you are doing well. I wanted to follow up on my application for the {role} position at {company} that I submitted recently.

I remain very interested in this opportunity and would appreciate any update you might have regarding my application status.

Thank you for your time and consideration.

Best regards,
{your_name}"""
    return subject, body


def _referral_template(company: str, role: str, your_name: str, recipient_name: Optional[str] = None) -> Tuple[str, str]:
    subject = f"Referral Request: {role} at {company}"
    body = f"""Hi {recipient_name or 'there'},

I hope you're having a great day! I noticed that {company} has an opening for a {role} position, and I was wondering if you might be open to referring me.

I believe my background would be a good fit for this role, and I would greatly appreciate your support in the application process.

Please let me know if you need any additional information from me.

Best regards,
{your_name}"""
    return subject, body


EMAIL_TEMPLATES = {
    schemas.EmailType.COLD: _cold_template,
    schemas.EmailType.FOLLOWUP: _followup_template,
    schemas.EmailType.REFERRAL: _referral_template,
}


def render_template(request: schemas.EmailGenerationRequest, note: Optional[str] = None) -> schemas.GeneratedEmail:
    subject, body = EMAIL_TEMPLATES[request.type](
        request.company_name, request.role, request.your_name, request.recipient_name
    )
    return schemas.GeneratedEmail(subject=subject, body=body, generated_by="template", note=note)


# =============================================================================
# PROMPTS AND PARSING
# =============================================================================

def build_prompt(request: schemas.EmailGenerationRequest) -> str:
    recipient = request.recipient_name or "Hiring Manager"
    response_format = "Format as:\nSubject: [subject line]\n\n[email body]"

    if request.type == schemas.EmailType.COLD:
        instructions = (
            f"Write a professional cold email from {request.your_name} applying for the "
            f"{request.role} position at {request.company_name}.\n"
            f'Address it to "{recipient}".\n'
            "Keep it concise (150-200 words), professional, and engaging.\n"
            "Include:\n- Brief introduction\n- Why they're interested in the company\n- Call to action"
        )
    elif request.type == schemas.EmailType.FOLLOWUP:
        instructions = (
            f"Write a professional follow-up email from {request.your_name} regarding their "
            f"application for the {request.role} position at {request.company_name}.\n"
            f'Address it to "{recipient}".\n'
            "Keep it polite, concise (100-150 words), and professional.\n"
            "Express continued interest and request an update."
        )
    else:
        instructions = (
            f"Write a professional email from {request.your_name} requesting a referral for the "
            f"{request.role} position at {request.company_name}.\n"
            f'Address it to "{recipient}" (they work at or know someone at the company).\n'
            "Keep it polite, concise (100-150 words), and make it easy for them to say yes."
        )
    return f"{instructions}\n\n{response_format}"


def parse_completion(text: str, company: str, role: str) -> Tuple[str, str]:
    """
    Split a completion into (subject, body).

    The first line starting with "Subject:" gives the subject and the body
    starts two lines below it. Without a subject line the whole text is the body.
    """
    lines = text.split("\n")
    subject = ""
    body_start = 0
    for index, line in enumerate(lines):
        if line.lower().startswith("subject:"):
            subject = SUBJECT_PREFIX.sub("", line).strip()
            body_start = index + 2
            break

    body = "\n".join(lines[body_start:]).strip()
    return subject or f"Application for {role} at {company}", body or text


# =============================================================================
# DRAFTERS
# =============================================================================

class EmailDrafter(ABC):
    """Interface for outreach email drafting. ``draft`` never raises."""

    available = False

    @abstractmethod
    def draft(self, request: schemas.EmailGenerationRequest) -> schemas.GeneratedEmail:
        """Return a draft for ``request``, falling back to a template on failure."""

    def status(self) -> schemas.AIStatus:
        if self.available:
            return schemas.AIStatus(available=True, message="AI email generation is available")
        return schemas.AIStatus(
            available=False, message="AI email generation is unavailable - templates will be used"
        )


class TemplateEmailDrafter(EmailDrafter):

    def draft(self, request: schemas.EmailGenerationRequest) -> schemas.GeneratedEmail:
        logger.info("AI not available, using %s template", request.type.value)
        return render_template(request, note=UNAVAILABLE_NOTE)


class GeminiEmailDrafter(EmailDrafter):
    available = True

    def __init__(
        self,
        api_key: str,
        model_name: str = "gemini-1.5-flash",
        temperature: float = 0.7,
        max_output_tokens: int = 400,
        timeout: int = 30,
    ):
        genai.configure(api_key=api_key)
        self.model = genai.GenerativeModel(model_name=model_name, system_instruction=SYSTEM_INSTRUCTION)
        self.generation_config = {"temperature": temperature, "max_output_tokens": max_output_tokens}
        self.timeout = timeout

    def _complete(self, prompt: str) -> str:
        response = self.model.generate_content(
            prompt,
            generation_config=self.generation_config,
            request_options={"timeout": self.timeout},
        )
        text = (response.text or "").strip()
        if not text:
            raise ValueError("Empty response from Gemini")
        return text

    def draft(self, request: schemas.EmailGenerationRequest) -> schemas.GeneratedEmail:
        try:
            completion = self._complete(build_prompt(request))
        except Exception as e:
            # Quota, network, blocked or empty responses all end up here
            logger.error("Gemini email generation failed, using template: %s", e)
            return render_template(request, note=ERROR_NOTE)

        subject, body = parse_completion(completion, request.company_name, request.role)
        return schemas.GeneratedEmail(subject=subject, body=body, generated_by="ai")


def is_valid_api_key(api_key: Optional[str]) -> bool:
    return bool(api_key) and API_KEY_PATTERN.fullmatch(api_key.strip()) is not None


@lru_cache()
def get_email_drafter() -> EmailDrafter:
    """Choose the drafter for this process from the configuration (cached)."""
    settings = get_settings()
    if not is_valid_api_key(settings.google_api_key):
        logger.warning("Gemini API not configured - AI features will use templates")
        return TemplateEmailDrafter()

    logger.info("Gemini API configured - AI email generation enabled")
    return GeminiEmailDrafter(
        api_key=settings.google_api_key.strip(),
        model_name=settings.gemini_model,
        temperature=settings.ai_temperature,
        max_output_tokens=settings.ai_max_output_tokens,
        timeout=settings.ai_request_timeout,
    )
