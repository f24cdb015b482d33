"""
HTTP client for the scheduler API.

Authenticates with the session cookie issued by Google sign-in and sends the
matching CSRF token on every POST.
"""

import logging
import os
from typing import Any, Optional

import httpx

from meet_scheduler.web.auth import CSRF_HEADER, SESSION_COOKIE

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "http://localhost:8080"


def get_api_url() -> str:
    return os.environ.get("MEET_API_URL", DEFAULT_API_URL)


class MeetingApiError(Exception):
    """A scheduler API call failed."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def _error_message(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    if isinstance(payload, dict):
        return str(
            payload.get("error") or payload.get("detail") or f"HTTP {response.status_code}"
        )
    return f"HTTP {response.status_code}"


class MeetingApiClient:
    def __init__(
        self,
        base_url: Optional[str] = None,
        session_token: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        cookies = {SESSION_COOKIE: session_token} if session_token else None
        self._client = httpx.AsyncClient(
            base_url=base_url or get_api_url(),
            cookies=cookies,
            transport=transport,
            timeout=30,
        )
        self._csrf_token: Optional[str] = None

    async def __aenter__(self) -> "MeetingApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(
        self, method: str, path: str, json: Optional[dict] = None
    ) -> dict[str, Any]:
        headers = {}
        if method.upper() != "GET":
            csrf = await self._get_csrf_token()
            if csrf:
                headers[CSRF_HEADER] = csrf

        response = await self._client.request(method, path, json=json, headers=headers)
        if response.is_error:
            message = _error_message(response)
            logger.error(f"Scheduler API error: {response.status_code} {message}")
            raise MeetingApiError(message, status_code=response.status_code)

        try:
            payload = response.json()
        except ValueError as e:
            logger.error(f"Scheduler API returned a non-JSON body for {path}: {e}")
            raise MeetingApiError(
                "Invalid response from the scheduler API",
                status_code=response.status_code,
            ) from e
        if not isinstance(payload, dict):
            raise MeetingApiError(
                "Invalid response from the scheduler API",
                status_code=response.status_code,
            )
        return payload

    async def _get_csrf_token(self) -> Optional[str]:
        if self._csrf_token is None:
            response = await self._client.get("/auth/csrf")
            if response.status_code == 200:
                try:
                    self._csrf_token = response.json().get("csrfToken")
                except (ValueError, AttributeError) as e:
                    raise MeetingApiError(
                        "Invalid CSRF response from the scheduler API", status_code=200
                    ) from e
        return self._csrf_token

    async def get_session(self) -> dict[str, Any]:
        return await self._request("GET", "/auth/session")

    async def create_instant_meeting(self) -> dict[str, Any]:
        return await self._request("POST", "/api/instant-meeting")

    async def schedule_meeting(
        self,
        date: str,
        time: str,
        duration: int,
        name: Optional[str] = None,
        timezone: Optional[str] = None,
    ) -> dict[str, Any]:
        body: dict[str, Any] = {"date": date, "time": time, "duration": duration}
        if name:
            body["name"] = name
        if timezone:
            body["timezone"] = timezone
        return await self._request("POST", "/api/schedule-meeting", body)
