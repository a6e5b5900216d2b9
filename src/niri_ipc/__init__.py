"""niri IPC - client for the niri compositor's IPC socket.

Provides:
- Protocol: requests, replies and events as pydantic models
- State: mirror compositor state from the event stream
- Transport: asyncio connection over $NIRI_SOCKET

Example:
    state = EventStreamState()
    async with await NiriSocket.connect() as sock:
        async for _event in sock.follow(state):
            print(state.windows.focused())
"""

from .errors import (
    CannotSendRequestError,
    NiriError,
    NiriSocketError,
    ProtocolError,
    ReplyError,
    SocketEnvironmentNotFound,
    StateInvariantError,
)
from .models import (
    KeyboardLayouts,
    LayerSurface,
    Output,
    Overview,
    PickedColor,
    Window,
    WindowLayout,
    Workspace,
)
from .protocol import Action, Event, Reply, Request, Response, event_from_json
from .state import (
    ConfigState,
    EventStreamState,
    EventStreamStatePart,
    KeyboardLayoutsState,
    OverviewState,
    WindowsState,
    WorkspacesState,
)
from .transport import NiriSocket, SocketConfig

__all__ = [
    # State
    "EventStreamState",
    "EventStreamStatePart",
    "WorkspacesState",
    "WindowsState",
    "KeyboardLayoutsState",
    "OverviewState",
    "ConfigState",
    # Transport
    "NiriSocket",
    "SocketConfig",
    # Protocol
    "Event",
    "event_from_json",
    "Request",
    "Action",
    "Reply",
    "Response",
    # Models
    "Workspace",
    "Window",
    "WindowLayout",
    "Output",
    "KeyboardLayouts",
    "LayerSurface",
    "Overview",
    "PickedColor",
    # Errors
    "NiriError",
    "StateInvariantError",
    "SocketEnvironmentNotFound",
    "NiriSocketError",
    "CannotSendRequestError",
    "ReplyError",
    "ProtocolError",
]
