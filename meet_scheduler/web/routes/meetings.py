import asyncio
import logging
from datetime import date as date_cls
from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field, field_validator

from meet_scheduler.calendar_client import CalendarClient, CalendarError
from meet_scheduler.config import ServerConfig
from meet_scheduler.timeutils import (
    DATE_PATTERN,
    MAX_DURATION_MINUTES,
    TIME_PATTERN,
    EventTimes,
    format_event_times,
    instant_window,
)
from meet_scheduler.web import get_server_config
from meet_scheduler.web.auth import Session, require_calendar_session

router = APIRouter(prefix="/api", tags=["meetings"])
logger = logging.getLogger(__name__)

CREATE_FAILED = "Failed to create meeting"
SCHEDULE_FAILED = "Failed to schedule meeting"


class ScheduleMeetingRequest(BaseModel):
    name: Optional[str] = Field(None, max_length=1024)
    date: str = Field(..., pattern=DATE_PATTERN.pattern)
    time: str = Field(..., pattern=TIME_PATTERN.pattern)
    duration: int = Field(..., gt=0, le=MAX_DURATION_MINUTES)
    timezone: Optional[str] = None

    @field_validator("date")
    @classmethod
    def _real_calendar_date(cls, value: str) -> str:
        date_cls.fromisoformat(value)
        return value

    @field_validator("name", "timezone")
    @classmethod
    def _blank_to_none(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not value.strip():
            return None
        return value


class MeetingDetails(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: Optional[str] = None
    date: str
    time: str
    duration: int
    display_timezone: str = Field(..., alias="displayTimezone")
    calendar_timezone: Optional[str] = Field(None, alias="calendarTimezone")


class MeetingResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    meet_link: str = Field(..., alias="meetLink")
    meeting_details: Optional[MeetingDetails] = Field(None, alias="meetingDetails")


def _create_link(
    session: Session, config: ServerConfig, summary: str, times: EventTimes
) -> str:
    client = CalendarClient(session.access_token or "", config.calendar)
    return client.create_meet_link(summary, times)


def _create_link_with_timezone(
    session: Session, config: ServerConfig, summary: str, times: EventTimes
) -> tuple[str, Optional[str]]:
    client = CalendarClient(session.access_token or "", config.calendar)
    meet_link = client.create_meet_link(summary, times)
    return meet_link, client.get_calendar_timezone()


@router.post("/instant-meeting")
async def create_instant_meeting(
    session: Session = Depends(require_calendar_session),
    config: ServerConfig = Depends(get_server_config),
):
    """Start a meeting now for the configured instant duration."""
    times = instant_window(config.timezone, config.calendar.instant_duration_minutes)

    try:
        meet_link = await asyncio.to_thread(
            _create_link, session, config, config.calendar.instant_summary, times
        )
    except CalendarError:
        logger.exception(f"Error creating meeting for {session.user_id}")
        return JSONResponse({"error": CREATE_FAILED}, status_code=500)

    response = MeetingResponse(meet_link=meet_link)
    return JSONResponse(response.model_dump(by_alias=True, exclude_none=True))


@router.post("/schedule-meeting")
async def schedule_meeting(
    req: ScheduleMeetingRequest,
    session: Session = Depends(require_calendar_session),
    config: ServerConfig = Depends(get_server_config),
):
    """Create a meeting at an explicit date, time and duration."""
    try:
        times = format_event_times(
            req.date, req.time, req.duration, req.timezone, config.timezone
        )
    except ValueError as e:
        logger.info(f"Rejected schedule request: {e}")
        return JSONResponse({"error": str(e)}, status_code=422)
    summary = req.name or config.calendar.scheduled_summary

    try:
        meet_link, calendar_timezone = await asyncio.to_thread(
            _create_link_with_timezone, session, config, summary, times
        )
    except CalendarError:
        logger.exception(f"Error scheduling meeting for {session.user_id}")
        return JSONResponse({"error": SCHEDULE_FAILED}, status_code=500)

    response = MeetingResponse(
        meet_link=meet_link,
        meeting_details=MeetingDetails(
            name=req.name,
            date=req.date,
            time=req.time,
            duration=req.duration,
            display_timezone=times.timezone,
            calendar_timezone=calendar_timezone or times.timezone,
        ),
    )
    return JSONResponse(response.model_dump(by_alias=True, exclude_none=True))
