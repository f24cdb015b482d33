"""Tests for the client API wrapper and the async store actions."""

import json
from datetime import datetime

import httpx
import pytest

from meet_scheduler.client import actions
from meet_scheduler.client.api_client import MeetingApiClient, MeetingApiError
from meet_scheduler.client.store import Meeting, Store
from meet_scheduler.web.auth import get_auth_manager

MEET_LINK = "https://meet.google.com/abc-defg-hij"
NOW = datetime(2025, 3, 20, 14, 2)


class FakeScheduler:
    """Stand-in for the scheduler API that records every request."""

    def __init__(self, routes):
        self.routes = routes
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.path == "/auth/csrf":
            return httpx.Response(200, json={"csrfToken": "csrf-abc"})
        handler = self.routes[request.url.path]
        if isinstance(handler, Exception):
            raise handler
        return httpx.Response(
            handler.status_code, headers=handler.headers, content=handler.content
        )

    def posts(self):
        return [r for r in self.requests if r.method == "POST"]


def _api(fake):
    return MeetingApiClient(
        base_url="http://scheduler.test",
        session_token="session-tok",
        transport=httpx.MockTransport(fake),
    )


class TestApiClient:
    @pytest.mark.asyncio
    async def test_post_carries_session_and_csrf(self):
        fake = FakeScheduler(
            {"/api/instant-meeting": httpx.Response(200, json={"meetLink": MEET_LINK})}
        )

        async with _api(fake) as api:
            await api.create_instant_meeting()
            await api.create_instant_meeting()

        assert [r.url.path for r in fake.requests].count("/auth/csrf") == 1
        for request in fake.posts():
            assert request.headers["X-CSRF-Token"] == "csrf-abc"
            assert "meet_session=session-tok" in request.headers["cookie"]

    @pytest.mark.asyncio
    async def test_schedule_omits_empty_optional_fields(self):
        fake = FakeScheduler(
            {"/api/schedule-meeting": httpx.Response(200, json={"meetLink": MEET_LINK})}
        )

        async with _api(fake) as api:
            await api.schedule_meeting("2025-03-20", "14:00", 30)

        assert json.loads(fake.posts()[0].content) == {
            "date": "2025-03-20",
            "time": "14:00",
            "duration": 30,
        }

    @pytest.mark.asyncio
    async def test_error_response_raises(self):
        fake = FakeScheduler(
            {"/api/instant-meeting": httpx.Response(500, json={"error": "nope"})}
        )

        async with _api(fake) as api:
            with pytest.raises(MeetingApiError) as exc_info:
                await api.create_instant_meeting()

        assert exc_info.value.message == "nope"
        assert exc_info.value.status_code == 500


class TestCreateInstantMeeting:
    @pytest.mark.asyncio
    async def test_success(self):
        store = Store()
        fake = FakeScheduler(
            {"/api/instant-meeting": httpx.Response(200, json={"meetLink": MEET_LINK})}
        )

        async with _api(fake) as api:
            await actions.create_instant_meeting(store, api, now=NOW)

        state = store.get_state().meeting
        assert not state.loading
        assert state.error is None
        assert state.current_meeting == Meeting(
            id="abc-defg-hij", link=MEET_LINK, created_at="Mar 20, 02:02 PM"
        )
        assert state.meetings == (state.current_meeting,)

    @pytest.mark.asyncio
    async def test_server_error_uses_generic_message(self):
        store = Store()
        fake = FakeScheduler(
            {
                "/api/instant-meeting": httpx.Response(
                    500, json={"error": "Failed to create meeting"}
                )
            }
        )

        async with _api(fake) as api:
            await actions.create_instant_meeting(store, api)

        state = store.get_state().meeting
        assert state.error == "Failed to create meeting"
        assert state.current_meeting is None
        assert not state.loading

    @pytest.mark.asyncio
    async def test_missing_link(self):
        store = Store()
        fake = FakeScheduler({"/api/instant-meeting": httpx.Response(200, json={})})

        async with _api(fake) as api:
            await actions.create_instant_meeting(store, api)

        assert store.get_state().meeting.error == actions.NO_LINK

    @pytest.mark.asyncio
    async def test_transport_error(self):
        store = Store()
        fake = FakeScheduler(
            {"/api/instant-meeting": httpx.ConnectError("connection refused")}
        )

        async with _api(fake) as api:
            await actions.create_instant_meeting(store, api)

        assert store.get_state().meeting.error == "connection refused"

    @pytest.mark.asyncio
    async def test_failure_keeps_previous_meeting(self):
        store = Store()
        fake = FakeScheduler(
            {"/api/instant-meeting": httpx.Response(200, json={"meetLink": MEET_LINK})}
        )
        async with _api(fake) as api:
            await actions.create_instant_meeting(store, api, now=NOW)
            first = store.get_state().meeting.current_meeting
            fake.routes["/api/instant-meeting"] = httpx.Response(500, json={})
            await actions.create_instant_meeting(store, api)

        state = store.get_state().meeting
        assert state.current_meeting == first
        assert state.error == "Failed to create meeting"


class TestScheduleMeeting:
    @pytest.mark.asyncio
    async def test_success(self):
        store = Store()
        fake = FakeScheduler(
            {
                "/api/schedule-meeting": httpx.Response(
                    200,
                    json={
                        "meetLink": MEET_LINK,
                        "meetingDetails": {
                            "name": "Design review",
                            "date": "2025-03-20",
                            "time": "14:00",
                            "duration": 45,
                            "displayTimezone": "Asia/Kolkata",
                            "calendarTimezone": "Europe/Berlin",
                        },
                    },
                )
            }
        )

        async with _api(fake) as api:
            await actions.schedule_meeting(
                store,
                api,
                "2025-03-20",
                "14:00",
                45,
                name="Design review",
                timezone="Asia/Kolkata",
                now=NOW,
            )

        meeting = store.get_state().meeting.current_meeting
        assert meeting == Meeting(
            id="abc-defg-hij",
            link=MEET_LINK,
            created_at="Mar 20, 02:02 PM",
            date="2025-03-20",
            time="14:00",
            duration=45,
            name="Design review",
            timezone="Asia/Kolkata",
        )

    @pytest.mark.asyncio
    async def test_server_message_is_surfaced(self):
        store = Store()
        fake = FakeScheduler(
            {
                "/api/schedule-meeting": httpx.Response(
                    422, json={"error": "time: String should match pattern"}
                )
            }
        )

        async with _api(fake) as api:
            await actions.schedule_meeting(store, api, "2025-03-20", "2pm", 30)

        assert store.get_state().meeting.error == "time: String should match pattern"

    @pytest.mark.asyncio
    async def test_transport_error_uses_retry_message(self):
        store = Store()
        fake = FakeScheduler({"/api/schedule-meeting": httpx.ReadTimeout("slow")})

        async with _api(fake) as api:
            await actions.schedule_meeting(store, api, "2025-03-20", "14:00", 30)

        assert store.get_state().meeting.error == actions.SCHEDULE_FAILED


class TestLoadSession:
    @pytest.mark.asyncio
    async def test_signed_in(self):
        store = Store()
        fake = FakeScheduler(
            {
                "/auth/session": httpx.Response(
                    200,
                    json={
                        "user": {"name": "Ada", "email": "ada@example.com", "image": None},
                        "expires": "2025-03-21T14:00:00+00:00",
                    },
                )
            }
        )

        async with _api(fake) as api:
            await actions.load_session(store, api)

        auth = store.get_state().auth
        assert auth.is_authenticated
        assert auth.user.email == "ada@example.com"

    @pytest.mark.asyncio
    async def test_signed_out(self):
        store = Store()
        fake = FakeScheduler({"/auth/session": httpx.Response(200, json={})})

        async with _api(fake) as api:
            await actions.load_session(store, api)

        assert not store.get_state().auth.is_authenticated

    @pytest.mark.asyncio
    async def test_unreachable_server(self):
        store = Store()
        fake = FakeScheduler({"/auth/session": httpx.ConnectError("down")})

        async with _api(fake) as api:
            await actions.load_session(store, api)

        assert not store.get_state().auth.is_authenticated


@pytest.mark.asyncio
async def test_against_running_app(app, identity, mock_calendar_service):
    """The client talks to the real routes with a session issued by sign-in."""
    token = get_auth_manager().create_session(identity, csrf_token="csrf-live")
    store = Store()

    async with MeetingApiClient(
        base_url="http://testserver",
        session_token=token,
        transport=httpx.ASGITransport(app=app),
    ) as api:
        await actions.load_session(store, api)
        await actions.schedule_meeting(store, api, "2025-03-20", "14:00", 30, now=NOW)

    state = store.get_state()
    assert state.auth.user.name == "Ada Lovelace"
    assert state.meeting.current_meeting.link == MEET_LINK
    assert state.meeting.current_meeting.timezone == "America/New_York"


class TestMalformedResponses:
    @pytest.mark.asyncio
    async def test_html_page_rejects_instant_meeting(self):
        store = Store()
        fake = FakeScheduler(
            {
                "/api/instant-meeting": httpx.Response(
                    200, text="<html>proxy page</html>"
                )
            }
        )

        async with _api(fake) as api:
            await actions.create_instant_meeting(store, api)

        state = store.get_state().meeting
        assert not state.loading
        assert state.error == "Failed to create meeting"

    @pytest.mark.asyncio
    async def test_non_object_json_rejects_schedule(self):
        store = Store()
        fake = FakeScheduler({"/api/schedule-meeting": httpx.Response(200, json=[1])})

        async with _api(fake) as api:
            await actions.schedule_meeting(store, api, "2025-03-20", "14:00", 30)

        state = store.get_state().meeting
        assert not state.loading
        assert state.error == "Invalid response from the scheduler API"

    @pytest.mark.asyncio
    async def test_unexpected_error_is_recorded(self):
        class BrokenApi:
            async def schedule_meeting(self, **kwargs):
                raise RuntimeError("boom")

        store = Store()
        await actions.schedule_meeting(store, BrokenApi(), "2025-03-20", "14:00", 30)

        state = store.get_state().meeting
        assert not state.loading
        assert state.error == "boom"
