"""Async actions that call the scheduler API and record the outcome in the store."""

import logging
from datetime import datetime
from typing import Optional

import httpx

from meet_scheduler.client.api_client import MeetingApiClient, MeetingApiError
from meet_scheduler.client.store import (
    CREATE_INSTANT_MEETING,
    SCHEDULE_MEETING,
    Action,
    Meeting,
    Store,
    User,
    clear_user,
    fulfilled,
    pending,
    rejected,
    set_user,
)
from meet_scheduler.meeting_utils import extract_meeting_id, format_date

logger = logging.getLogger(__name__)

CREATE_FAILED = "Failed to create meeting"
SCHEDULE_FAILED = "Failed to schedule meeting. Please try again."
NO_LINK = "No meeting link returned from the API"
UNKNOWN_ERROR = "An unknown error occurred"


def _transport_error_message(error: httpx.HTTPError) -> str:
    return str(error) or UNKNOWN_ERROR


async def create_instant_meeting(
    store: Store, api: MeetingApiClient, now: Optional[datetime] = None
) -> Action:
    store.dispatch(pending(CREATE_INSTANT_MEETING))
    try:
        data = await api.create_instant_meeting()
    except MeetingApiError:
        return store.dispatch(rejected(CREATE_INSTANT_MEETING, CREATE_FAILED))
    except httpx.HTTPError as e:
        logger.error(f"Instant meeting request failed: {e}")
        return store.dispatch(
            rejected(CREATE_INSTANT_MEETING, _transport_error_message(e))
        )
    except Exception as e:
        logger.exception("Instant meeting request failed unexpectedly")
        return store.dispatch(
            rejected(CREATE_INSTANT_MEETING, str(e) or UNKNOWN_ERROR)
        )

    meet_link = data.get("meetLink")
    if not meet_link:
        return store.dispatch(rejected(CREATE_INSTANT_MEETING, NO_LINK))

    meeting = Meeting(
        id=extract_meeting_id(meet_link),
        link=meet_link,
        created_at=format_date(now or datetime.now()),
    )
    return store.dispatch(fulfilled(CREATE_INSTANT_MEETING, meeting))


async def schedule_meeting(
    store: Store,
    api: MeetingApiClient,
    date: str,
    time: str,
    duration: int,
    name: Optional[str] = None,
    timezone: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Action:
    store.dispatch(pending(SCHEDULE_MEETING))
    try:
        data = await api.schedule_meeting(
            date=date, time=time, duration=duration, name=name, timezone=timezone
        )
    except MeetingApiError as e:
        return store.dispatch(rejected(SCHEDULE_MEETING, e.message or SCHEDULE_FAILED))
    except httpx.HTTPError as e:
        logger.error(f"Schedule meeting request failed: {e}")
        return store.dispatch(rejected(SCHEDULE_MEETING, SCHEDULE_FAILED))
    except Exception as e:
        logger.exception("Schedule meeting request failed unexpectedly")
        return store.dispatch(rejected(SCHEDULE_MEETING, str(e) or UNKNOWN_ERROR))

    meet_link = data.get("meetLink")
    if not meet_link:
        return store.dispatch(rejected(SCHEDULE_MEETING, data.get("error") or NO_LINK))

    details = data.get("meetingDetails")
    if not isinstance(details, dict):
        details = {}
    meeting = Meeting(
        id=extract_meeting_id(meet_link),
        link=meet_link,
        created_at=format_date(now or datetime.now()),
        date=details.get("date", date),
        time=details.get("time", time),
        duration=details.get("duration", duration),
        name=details.get("name", name),
        timezone=details.get("displayTimezone", timezone),
    )
    return store.dispatch(fulfilled(SCHEDULE_MEETING, meeting))


async def load_session(store: Store, api: MeetingApiClient) -> Action:
    """Mirror the server session into the auth state."""
    try:
        data = await api.get_session()
    except (MeetingApiError, httpx.HTTPError) as e:
        logger.warning(f"Could not load session: {e}")
        return store.dispatch(clear_user())

    user = data.get("user")
    if not user:
        return store.dispatch(clear_user())
    return store.dispatch(
        set_user(User(name=user.get("name"), email=user.get("email"), image=user.get("image")))
    )
