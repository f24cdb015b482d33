"""Configuration handling for the meeting scheduler."""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional
from zoneinfo import ZoneInfo

import yaml  # type: ignore
from dotenv import load_dotenv

logger = logging.getLogger(__name__)


# Load environment variables from .env file if it exists
load_dotenv()

CALENDAR_EVENTS_SCOPE = "https://www.googleapis.com/auth/calendar.events"
DEFAULT_SCOPES = ["openid", "email", "profile", CALENDAR_EVENTS_SCOPE]


@dataclass
class CalendarConfig:
    """Calendar event settings used by the scheduling routes."""

    calendar_id: str = "primary"
    instant_duration_minutes: int = 30
    instant_summary: str = "Instant Meeting"
    scheduled_summary: str = "Scheduled Meeting"
    conference_type: str = "hangoutsMeet"

    def __post_init__(self):
        if self.instant_duration_minutes <= 0:
            raise ValueError(
                f"instant_duration_minutes must be positive, got {self.instant_duration_minutes}"
            )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CalendarConfig":
        """Create Calendar configuration from dictionary."""
        return cls(
            calendar_id=data.get("calendar_id", "primary"),
            instant_duration_minutes=int(data.get("instant_duration_minutes", 30)),
            instant_summary=data.get("instant_summary", "Instant Meeting"),
            scheduled_summary=data.get("scheduled_summary", "Scheduled Meeting"),
            conference_type=data.get("conference_type", "hangoutsMeet"),
        )


@dataclass
class WebOIDCConfig:
    client_id: str = ""
    client_secret: str = ""
    scopes: List[str] = field(default_factory=lambda: list(DEFAULT_SCOPES))

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WebOIDCConfig":
        return cls(
            client_id=data.get("client_id") or os.environ.get("GOOGLE_CLIENT_ID", ""),
            client_secret=data.get("client_secret")
            or os.environ.get("GOOGLE_CLIENT_SECRET", ""),
            scopes=data.get("scopes", list(DEFAULT_SCOPES)),
        )


@dataclass
class WebAuthConfig:
    session_secret: str = ""
    session_expiry_hours: int = 24
    oidc: WebOIDCConfig = field(default_factory=WebOIDCConfig)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WebAuthConfig":
        session_secret = data.get("session_secret") or os.environ.get(
            "WEB_SESSION_SECRET", ""
        )
        return cls(
            session_secret=session_secret,
            session_expiry_hours=data.get("session_expiry_hours", 24),
            oidc=WebOIDCConfig.from_dict(data.get("oidc", {})),
        )


@dataclass
class WebConfig:
    host: str = "0.0.0.0"
    port: int = 8080
    public_url: Optional[str] = None
    post_login_redirect: str = "/auth/session"
    auth: WebAuthConfig = field(default_factory=WebAuthConfig)

    def __post_init__(self):
        if not self.auth.session_secret:
            logger.warning(
                "WEB_SESSION_SECRET not configured - sessions are signed with an insecure development key"
            )
        if not self.auth.oidc.client_id or not self.auth.oidc.client_secret:
            logger.warning(
                "Google OAuth client not configured - sign-in will fail until "
                "GOOGLE_CLIENT_ID and GOOGLE_CLIENT_SECRET are set"
            )
        if CALENDAR_EVENTS_SCOPE not in self.auth.oidc.scopes and not any(
            scope.endswith("/auth/calendar") for scope in self.auth.oidc.scopes
        ):
            raise ValueError(
                f"OIDC scopes must include '{CALENDAR_EVENTS_SCOPE}' to create meetings"
            )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WebConfig":
        return cls(
            host=data.get("host") or os.environ.get("WEB_HOST", "0.0.0.0"),
            port=int(data.get("port") or os.environ.get("WEB_PORT", "8080")),
            public_url=data.get("public_url") or os.environ.get("WEB_PUBLIC_URL"),
            post_login_redirect=data.get("post_login_redirect", "/auth/session"),
            auth=WebAuthConfig.from_dict(data.get("auth", {})),
        )


@dataclass
class ServerConfig:
    """Top-level scheduler configuration."""

    timezone: str = "UTC"
    calendar: CalendarConfig = field(default_factory=CalendarConfig)
    web: WebConfig = field(default_factory=WebConfig)

    def __post_init__(self):
        """Validate server configuration."""
        try:
            ZoneInfo(self.timezone)
        except Exception as e:
            raise ValueError(
                f"Invalid timezone '{self.timezone}': {e}. "
                "Must be a valid IANA timezone (e.g., 'America/Los_Angeles')"
            )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ServerConfig":
        """Create configuration from dictionary."""
        return cls(
            timezone=data.get("timezone") or os.environ.get("MEET_TIMEZONE", "UTC"),
            calendar=CalendarConfig.from_dict(data.get("calendar", {})),
            web=WebConfig.from_dict(data.get("web", {})),
        )


def load_config(config_path: Optional[str] = None) -> ServerConfig:
    """Load configuration from file or environment variables.

    Args:
        config_path: Path to configuration file

    Returns:
        Server configuration

    Raises:
        ValueError: If configuration is invalid
    """
    default_locations = [
        Path("config/config.yaml"),
        Path("config/config.yml"),
        Path("config.yaml"),
        Path("config.yml"),
        Path("~/.config/meet-scheduler/config.yaml"),
        Path("/etc/meet-scheduler/config.yaml"),
    ]

    config_data: Dict[str, Any] = {}

    if config_path:
        try:
            with open(config_path, "r") as f:
                config_data = yaml.safe_load(f) or {}
            logger.info(f"Loaded configuration from {config_path}")
        except FileNotFoundError:
            logger.warning(f"Configuration file not found: {config_path}")
    else:
        for path in default_locations:
            expanded_path = path.expanduser()
            if expanded_path.exists():
                with open(expanded_path, "r") as f:
                    config_data = yaml.safe_load(f) or {}
                logger.info(f"Loaded configuration from {expanded_path}")
                break

    if not config_data:
        logger.info("No configuration file found, using environment variables")

    try:
        return ServerConfig.from_dict(config_data)
    except KeyError as e:
        raise ValueError(f"Missing required configuration: {e}")
