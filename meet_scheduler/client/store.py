"""
Client-side application state.

State is immutable; each reducer takes the previous state and an action and
returns the next state. The store owns the current state and notifies
subscribers after every dispatch.
"""

from dataclasses import dataclass, field, replace
from typing import Any, Callable, List, Optional

# Action types
SET_USER = "auth/setUser"
CLEAR_USER = "auth/clearUser"
CREATE_MEETING = "meeting/createMeeting"
CLEAR_CURRENT_MEETING = "meeting/clearCurrentMeeting"
CREATE_INSTANT_MEETING = "meeting/createInstantMeeting"
SCHEDULE_MEETING = "meeting/scheduleMeeting"

PENDING = "pending"
FULFILLED = "fulfilled"
REJECTED = "rejected"


@dataclass(frozen=True)
class Action:
    type: str
    payload: Any = None


@dataclass(frozen=True)
class User:
    name: Optional[str] = None
    email: Optional[str] = None
    image: Optional[str] = None


@dataclass(frozen=True)
class Meeting:
    id: str
    link: str
    created_at: str
    date: Optional[str] = None
    time: Optional[str] = None
    duration: Optional[int] = None
    name: Optional[str] = None
    timezone: Optional[str] = None


@dataclass(frozen=True)
class AuthState:
    is_authenticated: bool = False
    user: Optional[User] = None


@dataclass(frozen=True)
class MeetingState:
    current_meeting: Optional[Meeting] = None
    meetings: tuple = ()
    loading: bool = False
    error: Optional[str] = None


@dataclass(frozen=True)
class AppState:
    auth: AuthState = field(default_factory=AuthState)
    meeting: MeetingState = field(default_factory=MeetingState)


# Action creators


def set_user(user: User) -> Action:
    return Action(SET_USER, user)


def clear_user() -> Action:
    return Action(CLEAR_USER)


def create_meeting(meeting: Meeting) -> Action:
    return Action(CREATE_MEETING, meeting)


def clear_current_meeting() -> Action:
    return Action(CLEAR_CURRENT_MEETING)


def pending(base_type: str) -> Action:
    return Action(f"{base_type}/{PENDING}")


def fulfilled(base_type: str, meeting: Meeting) -> Action:
    return Action(f"{base_type}/{FULFILLED}", meeting)


def rejected(base_type: str, message: str) -> Action:
    return Action(f"{base_type}/{REJECTED}", message)


# Reducers


def auth_reducer(state: AuthState, action: Action) -> AuthState:
    if action.type == SET_USER:
        return AuthState(is_authenticated=True, user=action.payload)
    if action.type == CLEAR_USER:
        return AuthState()
    return state


def _with_new_meeting(state: MeetingState, meeting: Meeting) -> MeetingState:
    return replace(
        state, current_meeting=meeting, meetings=(meeting,) + state.meetings
    )


ASYNC_MEETING_ACTIONS = (CREATE_INSTANT_MEETING, SCHEDULE_MEETING)


def meeting_reducer(state: MeetingState, action: Action) -> MeetingState:
    if action.type == CREATE_MEETING:
        return _with_new_meeting(state, action.payload)
    if action.type == CLEAR_CURRENT_MEETING:
        return replace(state, current_meeting=None)

    base_type, _, phase = action.type.rpartition("/")
    if base_type not in ASYNC_MEETING_ACTIONS:
        return state
    if phase == PENDING:
        return replace(state, loading=True, error=None)
    if phase == FULFILLED:
        return replace(_with_new_meeting(state, action.payload), loading=False)
    if phase == REJECTED:
        return replace(state, loading=False, error=action.payload)
    return state


def root_reducer(state: AppState, action: Action) -> AppState:
    return AppState(
        auth=auth_reducer(state.auth, action),
        meeting=meeting_reducer(state.meeting, action),
    )


class Store:
    """Holds the application state and applies actions to it."""

    def __init__(
        self,
        reducer: Callable[[AppState, Action], AppState] = root_reducer,
        initial_state: Optional[AppState] = None,
    ):
        self._reducer = reducer
        self._state = initial_state or AppState()
        self._listeners: List[Callable[[AppState], None]] = []

    def get_state(self) -> AppState:
        return self._state

    def dispatch(self, action: Action) -> Action:
        self._state = self._reducer(self._state, action)
        for listener in list(self._listeners):
            listener(self._state)
        return action

    def subscribe(self, listener: Callable[[AppState], None]) -> Callable[[], None]:
        """Register a listener; returns a function that removes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe
