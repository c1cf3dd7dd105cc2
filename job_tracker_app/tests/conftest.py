"""
Pytest configuration and shared fixtures for the Job Tracker API tests.
"""
import os
import sys
from datetime import timedelta

# Must be set before the application (and its settings) are imported
os.environ.update({
    "TESTING": "true",
    "ENVIRONMENT": "testing",
    "SECRET_KEY": "test-secret-key-for-jwt-tokens-12345678901234567890",
    "GOOGLE_API_KEY": "",
    "LOG_LEVEL": "DEBUG",
})

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))))

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from job_tracker_app.backend.main import app
from job_tracker_app.backend.models.db.database import Base, build_engine, get_db
from job_tracker_app.backend.security import create_access_token
from job_tracker_app.backend.services.email_drafter import TemplateEmailDrafter, get_email_drafter

VALID_GEMINI_KEY = "AIza" + "A" * 35


# Test Database Setup
@pytest.fixture
def test_db_engine():
    """A fresh in-memory SQLite database per test."""
    engine = build_engine("sqlite:///:memory:")
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def test_db_session(test_db_engine):
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_db_engine)
    session = TestingSessionLocal()
    yield session
    session.close()


@pytest.fixture
def email_drafter():
    """The drafter injected into the app. Tests may replace it through dependency overrides."""
    return TemplateEmailDrafter()


@pytest.fixture
def test_client(test_db_session, email_drafter):
    """Create a test client with overridden database and drafter dependencies."""
    def override_get_db():
        try:
            yield test_db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_email_drafter] = lambda: email_drafter
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()


# User Fixtures
@pytest.fixture
def test_user_data():
    return {"email": "test@example.com", "password": "testpassword123"}


@pytest.fixture
def other_user_data():
    return {"email": "other@example.com", "password": "otherpassword456"}


def register_and_login(client, user_data):
    """Register ``user_data`` and return bearer headers for it."""
    response = client.post("/api/auth/register", json=user_data)
    assert response.status_code == 201
    response = client.post("/api/auth/login", json=user_data)
    assert response.status_code == 200
    token = response.json()["access_token"]
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth_headers(test_client, test_user_data):
    return register_and_login(test_client, test_user_data)


@pytest.fixture
def other_auth_headers(test_client, other_user_data):
    return register_and_login(test_client, other_user_data)


@pytest.fixture
def expired_token(test_client, auth_headers):
    user_id = test_client.get("/api/auth/verify", headers=auth_headers).json()["data"]["userId"]
    return create_access_token({"sub": user_id}, expires_delta=timedelta(minutes=-5))


# Job Application Test Data
@pytest.fixture
def application_data():
    return {
        "company_name": "Google",
        "role": "Software Engineering Intern",
        "status": "Applied",
        "applied_date": "2024-01-15",
        "notes": "Applied through university portal",
    }


@pytest.fixture
def create_application(test_client):
    """Factory: create an application for the given headers and return its data."""
    def _create(headers, **overrides):
        payload = {"company_name": "Acme", "role": "Engineer", "status": "Applied"}
        payload.update(overrides)
        response = test_client.post("/api/jobs", json=payload, headers=headers)
        assert response.status_code == 201, response.text
        return response.json()["data"]
    return _create
