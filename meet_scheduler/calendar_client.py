"""Google Calendar client used to create Meet links."""

import logging
import uuid
from typing import Any, Dict, Optional

from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build

from meet_scheduler.config import CalendarConfig
from meet_scheduler.timeutils import EventTimes

logger = logging.getLogger(__name__)


class CalendarError(Exception):
    """Raised when the calendar provider fails to create a meeting."""


def extract_join_uri(event: Dict[str, Any]) -> Optional[str]:
    """Return the first conferencing entry point URI of an event."""
    entry_points = (event.get("conferenceData") or {}).get("entryPoints") or []
    if not entry_points:
        return None
    return entry_points[0].get("uri")


class CalendarClient:
    """Client for creating Meet-enabled events on behalf of a signed-in user."""

    def __init__(self, access_token: str, config: Optional[CalendarConfig] = None):
        self.config: CalendarConfig = config or CalendarConfig()
        self.service: Any = None
        self._access_token = access_token

    def connect(self):
        """Initialize the Calendar service from the user's bearer token."""
        try:
            creds = Credentials(token=self._access_token)
            self.service = build(
                "calendar", "v3", credentials=creds, cache_discovery=False
            )
            logger.debug("Connected to Google Calendar API")
        except Exception as e:
            logger.error(f"Failed to connect to Google Calendar: {e}")
            raise CalendarError("Could not connect to Google Calendar") from e

    def _ensure_connected(self) -> Any:
        """Ensure service is connected and return it."""
        if not self.service:
            self.connect()
        return self.service

    def create_meeting(self, summary: str, times: EventTimes) -> Dict[str, Any]:
        """Insert an event with a conferencing create request.

        Returns the created event. A new request id is generated per call.
        """
        service = self._ensure_connected()

        event_data: Dict[str, Any] = {
            "summary": summary,
            **times.to_event_fields(),
            "conferenceData": {
                "createRequest": {
                    "requestId": str(uuid.uuid4()),
                    "conferenceSolutionKey": {"type": self.config.conference_type},
                }
            },
        }

        try:
            event = (
                service.events()
                .insert(
                    calendarId=self.config.calendar_id,
                    body=event_data,
                    conferenceDataVersion=1,
                )
                .execute()
            )
        except Exception as e:
            logger.exception("Calendar event insert failed")
            raise CalendarError("Failed to create calendar event") from e

        logger.info(f"Created event: {event.get('htmlLink')}")
        return event

    def create_meet_link(self, summary: str, times: EventTimes) -> str:
        """Create a meeting and return its join URL."""
        event = self.create_meeting(summary, times)
        meet_link = extract_join_uri(event)
        if not meet_link:
            logger.error(f"Event {event.get('id')} was created without a join link")
            raise CalendarError("No conferencing link returned")
        return meet_link

    def get_calendar_timezone(self) -> Optional[str]:
        """Read the user's calendar timezone setting, or None if unavailable."""
        try:
            service = self._ensure_connected()
            setting = service.settings().get(setting="timezone").execute()
            return setting.get("value")
        except Exception as e:
            logger.warning(f"Could not read calendar timezone: {e}")
            return None
