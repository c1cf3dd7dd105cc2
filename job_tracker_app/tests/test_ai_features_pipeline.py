"""
Test the AI email drafting pipeline.
"""
from unittest.mock import MagicMock, patch

import pytest
from fastapi import status

from conftest import VALID_GEMINI_KEY


@pytest.fixture
def email_request_data():
    return {
        "type": "cold",
        "company_name": "Google",
        "role": "Software Engineer",
        "your_name": "Alex Doe",
    }


@pytest.fixture
def mock_genai():
    """Patch the Gemini client so no test ever reaches the network."""
    with patch("job_tracker_app.backend.services.email_drafter.genai") as mock:
        yield mock


@pytest.fixture
def gemini_drafter(mock_genai):
    from job_tracker_app.backend.services.email_drafter import GeminiEmailDrafter

    return GeminiEmailDrafter(api_key=VALID_GEMINI_KEY)


@pytest.fixture
def use_drafter():
    """Serve the given drafter to the API for the rest of the test."""
    from job_tracker_app.backend.main import app
    from job_tracker_app.backend.services.email_drafter import get_email_drafter

    def _use(drafter):
        app.dependency_overrides[get_email_drafter] = lambda: drafter
    return _use


class TestTemplateDrafting:
    """Email generation without a configured generative backend."""

    def test_cold_email_from_template(self, test_client, auth_headers, email_request_data):
        response = test_client.post("/api/ai/generate-email", json=email_request_data, headers=auth_headers)

        assert response.status_code == status.HTTP_200_OK
        body = response.json()
        assert body["success"] is True
        data = body["data"]
        assert data["generated_by"] == "template"
        assert data["note"] == "AI generation is currently unavailable. Using template instead."
        assert data["subject"] == "Application for Software Engineer at Google"
        assert "Alex Doe" in data["body"]
        assert "Software Engineer position at Google" in data["body"]

    def test_followup_email_from_template(self, test_client, auth_headers, email_request_data):
        email_request_data["type"] = "followup"

        data = test_client.post(
            "/api/ai/generate-email", json=email_request_data, headers=auth_headers
        ).json()["data"]

        assert data["subject"] == "Follow-up: Software Engineer Application at Google"
        assert data["body"].endswith("Best regards,\nAlex Doe")

    def test_referral_email_greets_recipient(self, test_client, auth_headers, email_request_data):
        email_request_data.update(type="referral", recipient_name="Sam")

        data = test_client.post(
            "/api/ai/generate-email", json=email_request_data, headers=auth_headers
        ).json()["data"]

        assert data["subject"] == "Referral Request: Software Engineer at Google"
        assert data["body"].startswith("Hi Sam,")

    def test_referral_email_without_recipient(self, test_client, auth_headers, email_request_data):
        email_request_data["type"] = "referral"

        data = test_client.post(
            "/api/ai/generate-email", json=email_request_data, headers=auth_headers
        ).json()["data"]

        assert data["body"].startswith("Hi there,")

    def test_template_drafter_makes_no_outbound_call(self, mock_genai, email_request_data):
        from job_tracker_app.backend import schemas
        from job_tracker_app.backend.services.email_drafter import TemplateEmailDrafter

        email = TemplateEmailDrafter().draft(schemas.EmailGenerationRequest(**email_request_data))

        assert email.generated_by == "template"
        mock_genai.configure.assert_not_called()
        mock_genai.GenerativeModel.assert_not_called()

    def test_ai_status_when_unconfigured(self, test_client, auth_headers):
        response = test_client.get("/api/ai/status", headers=auth_headers)

        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {
            "success": True,
            "data": {
                "available": False,
                "message": "AI email generation is unavailable - templates will be used",
            },
        }


class TestGeminiDrafting:
    """Email generation through Gemini, with the client mocked."""

    def test_generated_email_is_parsed(
        self, test_client, auth_headers, email_request_data, gemini_drafter, mock_genai, use_drafter
    ):
        model = mock_genai.GenerativeModel.return_value
        model.generate_content.return_value = MagicMock(
            text="Subject: Excited to join Google\n\nDear Hiring Manager,\n\nI would love to help."
        )
        use_drafter(gemini_drafter)

        response = test_client.post("/api/ai/generate-email", json=email_request_data, headers=auth_headers)

        assert response.status_code == status.HTTP_200_OK
        data = response.json()["data"]
        assert data == {
            "subject": "Excited to join Google",
            "body": "Dear Hiring Manager,\n\nI would love to help.",
            "generated_by": "ai",
        }
        mock_genai.configure.assert_called_once_with(api_key=VALID_GEMINI_KEY)

        prompt = model.generate_content.call_args.args[0]
        assert "Alex Doe" in prompt
        assert "Software Engineer position at Google" in prompt
        assert 'Address it to "Hiring Manager"' in prompt
        assert model.generate_content.call_args.kwargs["generation_config"] == {
            "temperature": 0.7,
            "max_output_tokens": 400,
        }

    def test_quota_failure_falls_back_to_template(
        self, test_client, auth_headers, email_request_data, gemini_drafter, mock_genai, use_drafter
    ):
        mock_genai.GenerativeModel.return_value.generate_content.side_effect = Exception(
            "429 Resource has been exhausted (e.g. check quota)."
        )
        use_drafter(gemini_drafter)

        response = test_client.post("/api/ai/generate-email", json=email_request_data, headers=auth_headers)

        assert response.status_code == status.HTTP_200_OK
        data = response.json()["data"]
        assert data["generated_by"] == "template"
        assert data["note"] == "AI generation encountered an error. Using template instead."
        assert data["subject"] == "Application for Software Engineer at Google"

    def test_empty_completion_falls_back_to_template(self, email_request_data, gemini_drafter, mock_genai):
        from job_tracker_app.backend import schemas

        mock_genai.GenerativeModel.return_value.generate_content.return_value = MagicMock(text="   ")

        email = gemini_drafter.draft(schemas.EmailGenerationRequest(**email_request_data))

        assert email.generated_by == "template"
        assert email.note == "AI generation encountered an error. Using template instead."

    def test_ai_status_when_configured(self, test_client, auth_headers, gemini_drafter, use_drafter):
        use_drafter(gemini_drafter)

        response = test_client.get("/api/ai/status", headers=auth_headers)

        assert response.json()["data"] == {"available": True, "message": "AI email generation is available"}


class TestDrafterSelection:
    """The drafter is chosen from configuration once per process."""

    @pytest.fixture(autouse=True)
    def clear_drafter_cache(self):
        from job_tracker_app.backend.services.email_drafter import get_email_drafter

        get_email_drafter.cache_clear()
        yield
        get_email_drafter.cache_clear()

    def _settings(self, api_key):
        from job_tracker_app.backend.config.settings import Settings

        return Settings(_env_file=None, google_api_key=api_key)

    @pytest.mark.parametrize("api_key", [None, "", "   ", "your-api-key-here", "AIza-too-short"])
    def test_missing_or_malformed_key_selects_templates(self, mock_genai, api_key):
        from job_tracker_app.backend.services import email_drafter

        with patch.object(email_drafter, "get_settings", return_value=self._settings(api_key)):
            drafter = email_drafter.get_email_drafter()

        assert isinstance(drafter, email_drafter.TemplateEmailDrafter)
        assert drafter.available is False
        mock_genai.configure.assert_not_called()

    def test_valid_key_selects_gemini(self, mock_genai):
        from job_tracker_app.backend.services import email_drafter

        with patch.object(email_drafter, "get_settings", return_value=self._settings(f"  {VALID_GEMINI_KEY} ")):
            drafter = email_drafter.get_email_drafter()
            assert email_drafter.get_email_drafter() is drafter

        assert isinstance(drafter, email_drafter.GeminiEmailDrafter)
        assert drafter.available is True
        mock_genai.configure.assert_called_once_with(api_key=VALID_GEMINI_KEY)


class TestCompletionParsing:
    """Test splitting a completion into subject and body."""

    def test_subject_line_and_body(self):
        from job_tracker_app.backend.services.email_drafter import parse_completion

        subject, body = parse_completion("Subject: Hello there\n\nLine one\nLine two", "Acme", "Engineer")

        assert subject == "Hello there"
        assert body == "Line one\nLine two"

    def test_subject_prefix_is_case_insensitive(self):
        from job_tracker_app.backend.services.email_drafter import parse_completion

        subject, body = parse_completion("Intro text\nSUBJECT:   Quick question\n\nBody", "Acme", "Engineer")

        assert subject == "Quick question"
        assert body == "Body"

    def test_missing_subject_uses_default(self):
        from job_tracker_app.backend.services.email_drafter import parse_completion

        text = "Dear Hiring Manager,\n\nPlease consider me."
        subject, body = parse_completion(text, "Acme", "Engineer")

        assert subject == "Application for Engineer at Acme"
        assert body == text

    def test_subject_only_keeps_full_text_as_body(self):
        from job_tracker_app.backend.services.email_drafter import parse_completion

        subject, body = parse_completion("Subject: Just a subject", "Acme", "Engineer")

        assert subject == "Just a subject"
        assert body == "Subject: Just a subject"


class TestEmailRequestValidation:
    """Test validation of the generate-email request."""

    def test_invalid_type(self, test_client, auth_headers, email_request_data):
        email_request_data["type"] = "thank-you"

        response = test_client.post("/api/ai/generate-email", json=email_request_data, headers=auth_headers)

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["errors"] == [
            {"field": "type", "message": "Type must be one of: cold, followup, referral"}
        ]

    def test_missing_fields(self, test_client, auth_headers):
        response = test_client.post("/api/ai/generate-email", json={"type": "cold"}, headers=auth_headers)

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        errors = response.json()["errors"]
        assert {"field": "company_name", "message": "Company name is required"} in errors
        assert {"field": "role", "message": "Role is required"} in errors
        assert {"field": "your_name", "message": "Your name is required"} in errors

    def test_requires_authentication(self, test_client, email_request_data):
        response = test_client.post("/api/ai/generate-email", json=email_request_data)

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.json()["code"] == "NO_AUTH_HEADER"

        response = test_client.get("/api/ai/status")
        assert response.status_code == status.HTTP_401_UNAUTHORIZED


class TestDrafterInterface:
    """Test the drafter base class."""

    def test_drafter_without_draft_cannot_be_created(self):
        from job_tracker_app.backend.services.email_drafter import EmailDrafter

        class IncompleteDrafter(EmailDrafter):
            pass

        with pytest.raises(TypeError):
            IncompleteDrafter()
        with pytest.raises(TypeError):
            EmailDrafter()
