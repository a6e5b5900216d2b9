"""Event definitions for the niri event stream.

After a client sends the EventStream request, the compositor stops reading
requests on that socket and writes one event per line instead. Every event
is externally tagged on the wire:

    {"WorkspaceActivated": {"id": 3, "focused": true}}
    {"WindowClosed": {"id": 17}}

Each variant is a pydantic model whose class name is the wire tag. `Event` is
the closed union of all variants; consumers match on it exhaustively (see
`niri_ipc.state`).

Related events are not atomic. A window may carry a `workspace_id` for a
workspace already removed, or a workspace may name an active window whose
WindowOpenedOrChanged has not arrived yet.
"""

from __future__ import annotations

from typing import Any, Union

from pydantic import BaseModel, ValidationError

from ..errors import ProtocolError
from ..models import KeyboardLayouts, Window, WindowLayout, Workspace


class NiriEvent(BaseModel):
    """Common base for all event variants."""

    @property
    def tag(self) -> str:
        """Wire tag of this variant (the class name)."""
        return type(self).__name__

    def to_json(self) -> dict[str, Any]:
        """Encode to the externally tagged wire form."""
        return {self.tag: self.model_dump(mode="json")}


# =============================================================================
# Workspaces
# =============================================================================


class WorkspacesChanged(NiriEvent):
    """The workspace configuration changed.

    Completely replaces the previous configuration: workspaces missing from
    the list were removed.
    """

    workspaces: list[Workspace]


class WorkspaceUrgencyChanged(NiriEvent):
    """The urgency of a workspace changed."""

    id: int
    urgent: bool


class WorkspaceActivated(NiriEvent):
    """A workspace became the active one on its output.

    With `focused` set it also became the single focused workspace; the
    other workspaces lose focus but stay active on their own outputs.
    """

    id: int
    focused: bool


class WorkspaceActiveWindowChanged(NiriEvent):
    """The active window of a workspace changed."""

    workspace_id: int
    active_window_id: int | None = None


# =============================================================================
# Windows
# =============================================================================


class WindowsChanged(NiriEvent):
    """The window configuration changed.

    Completely replaces the previous configuration: windows missing from the
    list were closed.
    """

    windows: list[Window]


class WindowOpenedOrChanged(NiriEvent):
    """A toplevel window was opened, or an existing one changed.

    If the window is focused, all other windows are no longer focused.
    """

    window: Window


class WindowClosed(NiriEvent):
    """A toplevel window was closed."""

    id: int


class WindowFocusChanged(NiriEvent):
    """Window focus changed; `id` is None when no window has focus."""

    id: int | None = None


class WindowUrgencyChanged(NiriEvent):
    """The urgency of a window changed."""

    id: int
    urgent: bool


class WindowLayoutsChanged(NiriEvent):
    """The layout of one or more windows changed.

    On the wire `changes` is a list of `[window_id, layout]` pairs.
    """

    changes: list[tuple[int, WindowLayout]]


# =============================================================================
# Keyboard, overview, config, screenshots
# =============================================================================


class KeyboardLayoutsChanged(NiriEvent):
    """The configured keyboard layouts changed."""

    keyboard_layouts: KeyboardLayouts


class KeyboardLayoutSwitched(NiriEvent):
    """The active keyboard layout switched."""

    idx: int


class OverviewOpenedOrClosed(NiriEvent):
    """The overview was opened or closed."""

    is_open: bool


class ConfigLoaded(NiriEvent):
    """The configuration was (re)loaded.

    Always sent right after subscribing, describing the last load attempt.
    """

    failed: bool


class ScreenshotCaptured(NiriEvent):
    """A screenshot was captured; `path` is None if it was not written to disk."""

    path: str | None = None


Event = Union[
    WorkspacesChanged,
    WorkspaceUrgencyChanged,
    WorkspaceActivated,
    WorkspaceActiveWindowChanged,
    WindowsChanged,
    WindowOpenedOrChanged,
    WindowClosed,
    WindowFocusChanged,
    WindowUrgencyChanged,
    WindowLayoutsChanged,
    KeyboardLayoutsChanged,
    KeyboardLayoutSwitched,
    OverviewOpenedOrClosed,
    ConfigLoaded,
    ScreenshotCaptured,
]

EVENT_TYPES: dict[str, type[NiriEvent]] = {
    cls.__name__: cls
    for cls in (
        WorkspacesChanged,
        WorkspaceUrgencyChanged,
        WorkspaceActivated,
        WorkspaceActiveWindowChanged,
        WindowsChanged,
        WindowOpenedOrChanged,
        WindowClosed,
        WindowFocusChanged,
        WindowUrgencyChanged,
        WindowLayoutsChanged,
        KeyboardLayoutsChanged,
        KeyboardLayoutSwitched,
        OverviewOpenedOrClosed,
        ConfigLoaded,
        ScreenshotCaptured,
    )
}


class UnknownEventError(ProtocolError):
    """The event tag is not one this library knows about."""

    def __init__(self, tag: str) -> None:
        super().__init__(f"Unknown event: {tag}")
        self.tag = tag


def event_from_json(data: Any) -> Event:
    """Decode one event from its parsed JSON form.

    Raises:
        UnknownEventError: If the tag names a variant this library lacks
        ProtocolError: If the payload is not a single-key object or does not
            match the variant's shape
    """
    if not isinstance(data, dict) or len(data) != 1:
        raise ProtocolError(f"Invalid event: {data!r}")

    tag, payload = next(iter(data.items()))
    cls = EVENT_TYPES.get(tag)
    if cls is None:
        raise UnknownEventError(tag)

    try:
        return cls.model_validate(payload)  # type: ignore[return-value]
    except ValidationError as e:
        raise ProtocolError(f"Invalid {tag} payload: {e}") from e
