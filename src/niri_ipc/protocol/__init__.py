"""Wire protocol for the niri IPC socket.

Defines the request/reply/event shapes exchanged with the compositor, one
JSON value per line.

Key concepts:
- Requests: Client → compositor, answered by exactly one Reply, in order
- Replies: Ok(Response) or Err(message)
- Events: Compositor → client, continuously, once a socket has sent the
  EventStream request (that socket then accepts no further requests)
"""

from .events import (
    EVENT_TYPES,
    ConfigLoaded,
    Event,
    KeyboardLayoutsChanged,
    KeyboardLayoutSwitched,
    NiriEvent,
    OverviewOpenedOrClosed,
    ScreenshotCaptured,
    UnknownEventError,
    WindowClosed,
    WindowFocusChanged,
    WindowLayoutsChanged,
    WindowOpenedOrChanged,
    WindowsChanged,
    WindowUrgencyChanged,
    WorkspaceActivated,
    WorkspaceActiveWindowChanged,
    WorkspacesChanged,
    WorkspaceUrgencyChanged,
    event_from_json,
)
from .replies import Reply, Response, ResponseType
from .requests import Action, Request, RequestType, layout_switch_target, workspace_reference

__all__ = [
    # Events
    "Event",
    "NiriEvent",
    "EVENT_TYPES",
    "UnknownEventError",
    "event_from_json",
    "WorkspacesChanged",
    "WorkspaceUrgencyChanged",
    "WorkspaceActivated",
    "WorkspaceActiveWindowChanged",
    "WindowsChanged",
    "WindowOpenedOrChanged",
    "WindowClosed",
    "WindowFocusChanged",
    "WindowUrgencyChanged",
    "WindowLayoutsChanged",
    "KeyboardLayoutsChanged",
    "KeyboardLayoutSwitched",
    "OverviewOpenedOrClosed",
    "ConfigLoaded",
    "ScreenshotCaptured",
    # Requests
    "Request",
    "RequestType",
    "Action",
    "workspace_reference",
    "layout_switch_target",
    # Replies
    "Reply",
    "Response",
    "ResponseType",
]
