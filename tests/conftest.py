"""Pytest fixtures for meeting scheduler tests."""

import logging
from unittest.mock import MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from meet_scheduler.config import (
    CalendarConfig,
    ServerConfig,
    WebAuthConfig,
    WebConfig,
    WebOIDCConfig,
)
from meet_scheduler.web import create_app
from meet_scheduler.web.auth import (
    CSRF_HEADER,
    SESSION_COOKIE,
    OIDCIdentity,
    get_auth_manager,
)

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

MEET_LINK = "https://meet.google.com/abc-defg-hij"


@pytest.fixture
def mock_server_config():
    """Create a Server configuration with test credentials."""
    return ServerConfig(
        timezone="America/New_York",
        calendar=CalendarConfig(),
        web=WebConfig(
            auth=WebAuthConfig(
                session_secret="test-secret",
                oidc=WebOIDCConfig(
                    client_id="mock_client_id", client_secret="mock_client_secret"
                ),
            )
        ),
    )


@pytest.fixture
def mock_calendar_service():
    """Create a mock Calendar API service with common responses."""
    with patch("meet_scheduler.calendar_client.build") as mock_build:
        service = MagicMock()
        mock_build.return_value = service

        events = service.events()
        settings = service.settings()

        # Default insert
        events.insert().execute.return_value = {
            "id": "new_evt_123",
            "htmlLink": "https://calendar.google.com/event?id=new_evt_123",
            "conferenceData": {
                "entryPoints": [
                    {"entryPointType": "video", "uri": MEET_LINK},
                    {"entryPointType": "phone", "uri": "tel:+1-555-0100"},
                ]
            },
        }

        # Default calendar timezone
        settings.get().execute.return_value = {"value": "Europe/Berlin"}

        yield service


@pytest.fixture
def app(mock_server_config):
    return create_app(mock_server_config)


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def identity():
    return OIDCIdentity(
        user_id="user-1",
        email="ada@example.com",
        name="Ada Lovelace",
        image="https://example.com/ada.png",
        access_token="mock_access_token",
        expires_in=3600,
    )


@pytest.fixture
def signed_in_client(client, identity):
    """Test client carrying a valid session cookie and CSRF header."""
    token = get_auth_manager().create_session(identity, csrf_token="csrf-123")
    client.cookies.set(SESSION_COOKIE, token)
    client.headers[CSRF_HEADER] = "csrf-123"
    return client
