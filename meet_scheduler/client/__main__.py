"""
Command-line front end for the scheduler API.

Usage:
    MEET_SESSION_TOKEN=... python -m meet_scheduler.client instant
    MEET_SESSION_TOKEN=... python -m meet_scheduler.client schedule --date 2025-03-20 --time 14:00
"""

import argparse
import asyncio
import logging
import os
import sys

from meet_scheduler.client import actions
from meet_scheduler.client.api_client import MeetingApiClient, get_api_url
from meet_scheduler.client.store import AppState, Meeting, Store, create_meeting
from meet_scheduler.meeting_utils import (
    create_google_meet_link,
    format_display_date,
    format_display_time,
    format_duration,
)

logger = logging.getLogger(__name__)


def render_meeting(meeting: Meeting, default_duration: int = 30) -> str:
    title = meeting.name or ("Scheduled Meeting" if meeting.date else "Instant Meeting")
    lines = [f"{title}  ({meeting.created_at})"]
    if meeting.date and meeting.time:
        lines.append(f"  Date:     {format_display_date(meeting.date)}")
        lines.append(f"  Time:     {format_display_time(meeting.time)}")
        if meeting.timezone:
            lines.append(f"  Timezone: {meeting.timezone}")
    lines.append(f"  Duration: {format_duration(meeting.duration or default_duration)}")
    lines.append(f"  Link:     {meeting.link}")
    return "\n".join(lines)


def render_state(state: AppState) -> str:
    if state.meeting.error:
        return (
            f"Error: {state.meeting.error}. "
            "Please make sure you have granted calendar permissions."
        )
    if state.meeting.current_meeting:
        return render_meeting(state.meeting.current_meeting)
    if state.auth.is_authenticated and state.auth.user:
        return f"Signed in as {state.auth.user.name or state.auth.user.email}"
    return "Not signed in. Visit /auth/signin to sign in with Google."


async def _run(args: argparse.Namespace) -> AppState:
    store = Store()
    logger.debug(f"Running {args.command} against {args.api_url}")
    if args.command == "local":
        store.dispatch(create_meeting(Meeting(**create_google_meet_link())))
        return store.get_state()

    async with MeetingApiClient(args.api_url, args.session_token) as api:
        await actions.load_session(store, api)
        if args.command == "instant":
            await actions.create_instant_meeting(store, api)
        elif args.command == "schedule":
            await actions.schedule_meeting(
                store,
                api,
                date=args.date,
                time=args.time,
                duration=args.duration,
                name=args.name,
                timezone=args.timezone,
            )
    return store.get_state()


def main() -> None:
    """Run the scheduler command-line client."""
    logging.basicConfig(
        level=getattr(logging, os.environ.get("LOG_LEVEL", "WARNING")),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    parser = argparse.ArgumentParser(description="Create Google Meet links")
    parser.add_argument("--api-url", default=get_api_url(), help="Scheduler API base URL")
    parser.add_argument(
        "--session-token",
        default=os.environ.get("MEET_SESSION_TOKEN"),
        help="Value of the session cookie issued after Google sign-in",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("session", help="Show the signed-in user")
    subparsers.add_parser("instant", help="Start a 30 minute meeting now")
    subparsers.add_parser(
        "local", help="Generate a placeholder Meet link without calling the calendar"
    )
    schedule = subparsers.add_parser("schedule", help="Schedule a meeting")
    schedule.add_argument("--date", required=True, help="YYYY-MM-DD")
    schedule.add_argument("--time", required=True, help="HH:MM")
    schedule.add_argument(
        "--duration",
        type=int,
        default=30,
        choices=[15, 30, 45, 60, 90, 120],
        help="Duration in minutes",
    )
    schedule.add_argument("--name", default=None, help="Meeting title")
    schedule.add_argument("--timezone", default=None, help="IANA timezone name")

    args = parser.parse_args()
    state = asyncio.run(_run(args))
    print(render_state(state))
    if state.meeting.error:
        sys.exit(1)


if __name__ == "__main__":
    main()
