"""
Authentication for the meeting scheduler.

Sign-in uses the Google OIDC authorization-code flow. The resulting access
token travels in an HMAC-signed session cookie and is what the scheduling
routes use to call Google Calendar on the user's behalf.
"""

import hashlib
import hmac
import json
import logging
import secrets
import time
from base64 import b64decode, b64encode
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Optional
from urllib.parse import urlencode

import httpx
from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse, RedirectResponse
from fastapi.routing import APIRouter
from starlette.middleware.base import BaseHTTPMiddleware

from meet_scheduler.config import WebConfig

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

SESSION_COOKIE = "meet_session"
CSRF_COOKIE = "meet_csrf"
CSRF_HEADER = "X-CSRF-Token"
SESSION_MAX_AGE = 86400  # 24 hours default
OIDC_STATE_TTL = 600

GOOGLE_AUTHORIZE_ENDPOINT = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_ENDPOINT = "https://oauth2.googleapis.com/token"
GOOGLE_USERINFO_ENDPOINT = "https://openidconnect.googleapis.com/v1/userinfo"


@dataclass
class Session:
    """User session data."""

    user_id: str
    email: Optional[str] = None
    name: Optional[str] = None
    image: Optional[str] = None
    access_token: Optional[str] = None
    token_expires_at: float = 0.0
    created_at: float = 0.0
    expires_at: float = 0.0
    csrf_token: Optional[str] = None

    def is_valid(self) -> bool:
        return time.time() < self.expires_at

    def has_credential(self) -> bool:
        if not self.access_token:
            return False
        return not self.token_expires_at or time.time() < self.token_expires_at

    @property
    def user(self) -> dict:
        return {"name": self.name, "email": self.email, "image": self.image}

    def to_json(self) -> str:
        return json.dumps(asdict(self))

    @classmethod
    def from_json(cls, data: str) -> "Session":
        d = json.loads(data)
        return cls(
            user_id=d["user_id"],
            email=d.get("email"),
            name=d.get("name"),
            image=d.get("image"),
            access_token=d.get("access_token"),
            token_expires_at=d.get("token_expires_at", 0.0),
            created_at=d.get("created_at", 0.0),
            expires_at=d.get("expires_at", 0.0),
            csrf_token=d.get("csrf_token"),
        )


@dataclass
class OIDCIdentity:
    """What the provider tells us about the user after sign-in."""

    user_id: str
    email: Optional[str]
    name: Optional[str]
    image: Optional[str]
    access_token: str
    expires_in: Optional[int] = None


class AuthManager:
    """Manages sessions and the Google sign-in flow."""

    def __init__(self, config: Optional[WebConfig] = None):
        self.config = config or WebConfig()

    @property
    def auth_config(self):
        return self.config.auth

    @property
    def session_secret(self) -> bytes:
        if not self.auth_config.session_secret:
            # Fallback for development - NOT SECURE
            return b"insecure-dev-secret-do-not-use-in-production"
        return self.auth_config.session_secret.encode()

    @property
    def session_expiry(self) -> int:
        return self.auth_config.session_expiry_hours * 3600

    def create_session(self, identity: OIDCIdentity, csrf_token: Optional[str] = None) -> str:
        """Create a signed session token."""
        now = time.time()
        session = Session(
            user_id=identity.user_id,
            email=identity.email,
            name=identity.name,
            image=identity.image,
            access_token=identity.access_token,
            token_expires_at=now + identity.expires_in if identity.expires_in else 0.0,
            created_at=now,
            expires_at=now + self.session_expiry,
            csrf_token=csrf_token,
        )
        payload = session.to_json()
        signature = hmac.new(
            self.session_secret, payload.encode(), hashlib.sha256
        ).hexdigest()
        return b64encode(f"{payload}|{signature}".encode()).decode()

    def verify_session(self, token: str) -> Optional[Session]:
        """Verify and decode a session token."""
        try:
            decoded = b64decode(token.encode()).decode()
            payload, signature = decoded.rsplit("|", 1)
        except (ValueError, UnicodeDecodeError) as e:
            logger.debug(f"Malformed session token: {e}")
            return None

        expected = hmac.new(
            self.session_secret, payload.encode(), hashlib.sha256
        ).hexdigest()
        if not hmac.compare_digest(signature.encode(), expected.encode()):
            logger.warning("Invalid session signature")
            return None

        try:
            session = Session.from_json(payload)
        except (ValueError, KeyError) as e:
            logger.debug(f"Session payload could not be decoded: {e}")
            return None
        if not session.is_valid():
            logger.debug("Session expired")
            return None
        return session

    def get_authorize_url(self, redirect_uri: str, state: str) -> str:
        """Build the Google authorization URL."""
        oidc = self.auth_config.oidc
        params = {
            "client_id": oidc.client_id,
            "redirect_uri": redirect_uri,
            "response_type": "code",
            "scope": " ".join(oidc.scopes),
            "state": state,
            "access_type": "offline",
            "prompt": "consent",
        }
        return f"{GOOGLE_AUTHORIZE_ENDPOINT}?{urlencode(params)}"

    async def exchange_code(self, code: str, redirect_uri: str) -> OIDCIdentity:
        """Exchange an authorization code for tokens and user info."""
        oidc = self.auth_config.oidc

        async with httpx.AsyncClient() as client:
            token_resp = await client.post(
                GOOGLE_TOKEN_ENDPOINT,
                data={
                    "client_id": oidc.client_id,
                    "client_secret": oidc.client_secret,
                    "code": code,
                    "redirect_uri": redirect_uri,
                    "grant_type": "authorization_code",
                },
                timeout=10.0,
            )
            token_resp.raise_for_status()
            tokens = token_resp.json()

            userinfo_resp = await client.get(
                GOOGLE_USERINFO_ENDPOINT,
                headers={"Authorization": f"Bearer {tokens['access_token']}"},
                timeout=10.0,
            )
            userinfo_resp.raise_for_status()
            userinfo = userinfo_resp.json()

        return OIDCIdentity(
            user_id=userinfo.get("sub", userinfo.get("id", "unknown")),
            email=userinfo.get("email"),
            name=userinfo.get("name"),
            image=userinfo.get("picture"),
            access_token=tokens["access_token"],
            expires_in=tokens.get("expires_in"),
        )


# Global auth manager instance
_auth_manager: Optional[AuthManager] = None


def get_auth_manager() -> AuthManager:
    """Get or create the auth manager."""
    global _auth_manager
    if _auth_manager is None:
        _auth_manager = AuthManager()
    return _auth_manager


def init_auth(config: Optional[WebConfig]):
    """Initialize auth with configuration."""
    global _auth_manager
    _auth_manager = AuthManager(config)
    logger.info("Auth initialized with Google sign-in")


def get_session(request: Request) -> Optional[Session]:
    """Extract and verify session from request."""
    token = request.cookies.get(SESSION_COOKIE)
    if not token:
        return None
    return get_auth_manager().verify_session(token)


class CSRFMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        method = request.method.upper()
        if method in {"POST", "PUT", "PATCH", "DELETE"}:
            session = get_session(request)
            if session:
                expected = session.csrf_token or ""
                provided = request.headers.get(CSRF_HEADER) or ""
                if (
                    not expected
                    or not provided
                    or not hmac.compare_digest(provided.encode(), expected.encode())
                ):
                    return JSONResponse(
                        {"error": "CSRF token missing or invalid"}, status_code=403
                    )

        return await call_next(request)


async def require_calendar_session(request: Request) -> Session:
    """Dependency that requires a signed-in user with a calendar credential."""
    session = get_session(request)
    if not session or not session.has_credential():
        raise HTTPException(status_code=401, detail="Unauthorized")
    return session


# In-memory state storage for the sign-in flow
_oidc_states: dict[str, tuple[float, str]] = {}


def _generate_state(next_url: str = "/") -> str:
    """Generate and store an OIDC state parameter."""
    state = secrets.token_urlsafe(32)
    now = time.time()
    _oidc_states[state] = (now + OIDC_STATE_TTL, next_url)
    expired = [s for s, (exp, _) in _oidc_states.items() if exp < now]
    for s in expired:
        del _oidc_states[s]
    return state


def _consume_state(state: str) -> Optional[str]:
    """Verify an OIDC state parameter and return the stored redirect target."""
    entry = _oidc_states.pop(state, None)
    if entry is None:
        return None
    expires_at, next_url = entry
    if time.time() > expires_at:
        return None
    return next_url


def _safe_next(next_url: Optional[str], default: str) -> str:
    if next_url and next_url.startswith("/") and not next_url.startswith("//"):
        return next_url
    return default


def _callback_url(request: Request) -> str:
    config = get_auth_manager().config
    if config.public_url:
        return f"{config.public_url.rstrip('/')}/auth/callback"
    return str(request.url_for("oidc_callback"))


def _set_session_cookies(
    response: RedirectResponse, request: Request, token: str, csrf_token: str
) -> None:
    auth_mgr = get_auth_manager()
    secure = request.url.scheme == "https"
    response.set_cookie(
        SESSION_COOKIE,
        token,
        max_age=auth_mgr.session_expiry,
        httponly=True,
        samesite="lax",
        secure=secure,
    )
    response.set_cookie(
        CSRF_COOKIE,
        csrf_token,
        max_age=auth_mgr.session_expiry,
        httponly=False,
        samesite="lax",
        secure=secure,
    )


# =============================================================================
# Auth Routes
# =============================================================================


@router.get("/signin")
async def signin(request: Request, next: str = "/"):
    """Redirect to Google, or straight back if already signed in."""
    auth_mgr = get_auth_manager()
    default_next = auth_mgr.config.post_login_redirect
    next_url = _safe_next(next, default_next)

    session = get_session(request)
    if session and session.has_credential():
        return RedirectResponse(url=next_url)

    state = _generate_state(next_url)
    return RedirectResponse(url=auth_mgr.get_authorize_url(_callback_url(request), state))


@router.get("/callback", name="oidc_callback")
async def oidc_callback(
    request: Request, code: str = "", state: str = "", error: str = ""
):
    """Handle the Google redirect after consent."""
    auth_mgr = get_auth_manager()

    if error:
        logger.error(f"OIDC error: {error}")
        return RedirectResponse(url="/auth/signin?error=oidc_error")

    next_url = _consume_state(state)
    if next_url is None:
        logger.error("Invalid OIDC state")
        return RedirectResponse(url="/auth/signin?error=invalid_state")

    try:
        identity = await auth_mgr.exchange_code(code, _callback_url(request))
    except (httpx.HTTPError, KeyError) as e:
        logger.exception(f"OIDC callback failed: {e}")
        return RedirectResponse(url="/auth/signin?error=callback_failed")

    csrf_token = secrets.token_urlsafe(32)
    token = auth_mgr.create_session(identity, csrf_token=csrf_token)
    response = RedirectResponse(
        url=_safe_next(next_url, auth_mgr.config.post_login_redirect), status_code=303
    )
    _set_session_cookies(response, request, token, csrf_token)
    logger.info(f"Signed in {identity.email or identity.user_id}")
    return response


@router.api_route("/signout", methods=["GET", "POST"])
async def signout(request: Request, next: str = "/auth/session"):
    """Sign out and clear the session."""
    response = RedirectResponse(url=_safe_next(next, "/auth/session"), status_code=303)
    response.delete_cookie(SESSION_COOKIE)
    response.delete_cookie(CSRF_COOKIE)
    return response


@router.get("/session")
async def current_session(request: Request):
    """Describe the signed-in user, or an empty object."""
    session = get_session(request)
    if not session:
        return {}
    return {
        "user": session.user,
        "expires": datetime.fromtimestamp(session.expires_at, tz=timezone.utc).isoformat(),
    }


@router.get("/csrf")
async def csrf_token(request: Request):
    session = get_session(request)
    if not session or not session.csrf_token:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return {"csrfToken": session.csrf_token}
