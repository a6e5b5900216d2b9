"""Helpers for keeping track of the event stream state.

1. Create an EventStreamState, or any single state part if you only care
   about part of the state.
2. Connect to the niri socket and request an event stream.
3. Pass every event to `apply` on your state, one at a time, in order.
4. Read the fields of the state as needed.

    state = EventStreamState()
    async with await NiriSocket.connect() as sock:
        async for event in sock.event_stream():
            state.apply(event)

Parts copy the entities they receive, so an applied event (or a replica)
never shares mutable objects with the state it came from or went into.

State parts are not thread-safe. Exactly one delivery loop should call
`apply`; listeners may be added or removed from anywhere on that thread,
including from inside a listener.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable

from .errors import StateInvariantError
from .models import KeyboardLayouts, Window, Workspace
from .protocol.events import (
    ConfigLoaded,
    Event,
    KeyboardLayoutsChanged,
    KeyboardLayoutSwitched,
    OverviewOpenedOrClosed,
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
)

logger = logging.getLogger(__name__)

# Change listeners take no arguments; read the state part to see what changed.
Listener = Callable[[], None]


class EventStreamStatePart(ABC):
    """Part of the state communicated via the event stream.

    Subclasses implement `_apply` (claim and handle an event, or hand it
    back) and `replicate`. Listeners fire once per claimed event.
    """

    def __init__(self) -> None:
        # dict keeps insertion order and ignores duplicate registrations
        self._listeners: dict[Listener, None] = {}

    @abstractmethod
    def replicate(self) -> list[Event]:
        """Return events that rebuild this state from default initialization.

        Feeding the result, in order, into a freshly constructed part of the
        same kind yields an equal state. Entities are deep-copied, so the
        replica shares nothing mutable with this part.
        """

    def apply(self, event: Event) -> Event | None:
        """Apply the event to this state.

        Returns:
            None if this part claimed the event, or the event itself if this
            part ignores it.

        Raises:
            StateInvariantError: If the event references an entity this part
                must already hold. The state is left unchanged.

        Exceptions raised by listeners never reach the caller: they are
        logged and the remaining listeners still run.
        """
        remaining = self._apply(event)
        if remaining is None:
            self._notify()
        return remaining

    @abstractmethod
    def _apply(self, event: Event) -> Event | None: ...

    def _notify(self) -> None:
        # Snapshot so listeners can add/remove listeners while being notified
        for callback in list(self._listeners):
            try:
                callback()
            except Exception:
                logger.exception(f"Error in {type(self).__name__} listener")

    def add_listener(self, callback: Listener) -> None:
        """Listen to changes in the internal state."""
        self._listeners[callback] = None

    def remove_listener(self, callback: Listener) -> None:
        """Stop listening to changes in the internal state."""
        self._listeners.pop(callback, None)


class WorkspacesState(EventStreamStatePart):
    """The workspaces state communicated over the event stream."""

    def __init__(self) -> None:
        super().__init__()
        # Map from a workspace id to the workspace
        self.workspaces: dict[int, Workspace] = {}

    def replicate(self) -> list[Event]:
        return [
            WorkspacesChanged(
                workspaces=[ws.model_copy(deep=True) for ws in self.workspaces.values()]
            )
        ]

    def _apply(self, event: Event) -> Event | None:
        match event:
            case WorkspacesChanged(workspaces=workspaces):
                self.workspaces.clear()
                for ws in workspaces:
                    self.workspaces[ws.id] = ws.model_copy(deep=True)

            case WorkspaceUrgencyChanged(id=ws_id, urgent=urgent):
                ws = self.workspaces.get(ws_id)
                if ws is not None:
                    ws.is_urgent = urgent

            case WorkspaceActivated(id=ws_id, focused=focused):
                activated = self.workspaces.get(ws_id)
                if activated is None:
                    raise StateInvariantError(
                        f"Activated workspace {ws_id} was missing from the map"
                    )
                output = activated.output

                for ws in self.workspaces.values():
                    got_activated = ws.id == ws_id
                    if ws.output == output:
                        ws.is_active = got_activated
                    if focused:
                        ws.is_focused = got_activated

            case WorkspaceActiveWindowChanged(
                workspace_id=ws_id, active_window_id=active_window_id
            ):
                ws = self.workspaces.get(ws_id)
                if ws is None:
                    raise StateInvariantError(
                        f"Changed workspace {ws_id} was missing from the map"
                    )
                ws.active_window_id = active_window_id

            case _:
                return event
        return None

    def focused(self) -> Workspace | None:
        """The focused workspace, if any."""
        return next((ws for ws in self.workspaces.values() if ws.is_focused), None)

    def active_on(self, output: str | None) -> Workspace | None:
        """The active workspace on an output, if any."""
        return next(
            (ws for ws in self.workspaces.values() if ws.output == output and ws.is_active),
            None,
        )


class WindowsState(EventStreamStatePart):
    """The windows state communicated over the event stream."""

    def __init__(self) -> None:
        super().__init__()
        # Map from a window id to the window
        self.windows: dict[int, Window] = {}

    def replicate(self) -> list[Event]:
        return [WindowsChanged(windows=[win.model_copy(deep=True) for win in self.windows.values()])]

    def _apply(self, event: Event) -> Event | None:
        match event:
            case WindowsChanged(windows=windows):
                self.windows.clear()
                for win in windows:
                    self.windows[win.id] = win.model_copy(deep=True)

            case WindowOpenedOrChanged(window=window):
                window = window.model_copy(deep=True)
                self.windows[window.id] = window
                if window.is_focused:
                    for win in self.windows.values():
                        if win.id != window.id:
                            win.is_focused = False

            case WindowClosed(id=win_id):
                if self.windows.pop(win_id, None) is None:
                    raise StateInvariantError(f"Closed window {win_id} was missing from the map")

            case WindowFocusChanged(id=win_id):
                for win in self.windows.values():
                    win.is_focused = win.id == win_id

            case WindowUrgencyChanged(id=win_id, urgent=urgent):
                # Urgency can race with the window's own lifecycle events
                win = self.windows.get(win_id)
                if win is not None:
                    win.is_urgent = urgent

            case WindowLayoutsChanged(changes=changes):
                missing = [win_id for win_id, _ in changes if win_id not in self.windows]
                if missing:
                    raise StateInvariantError(
                        f"Changed windows {missing} were missing from the map"
                    )
                for win_id, layout in changes:
                    self.windows[win_id].layout = layout.model_copy(deep=True)

            case _:
                return event
        return None

    def focused(self) -> Window | None:
        """The focused window, if any."""
        return next((win for win in self.windows.values() if win.is_focused), None)

    def on_workspace(self, workspace_id: int) -> list[Window]:
        """Windows on a workspace, ordered by id."""
        return sorted(
            (win for win in self.windows.values() if win.workspace_id == workspace_id),
            key=lambda win: win.id,
        )


class KeyboardLayoutsState(EventStreamStatePart):
    """The keyboard layout state communicated over the event stream."""

    def __init__(self) -> None:
        super().__init__()
        # Configured keyboard layouts, None until the first announcement
        self.keyboard_layouts: KeyboardLayouts | None = None

    @property
    def current_name(self) -> str | None:
        """Name of the active layout, if known."""
        if self.keyboard_layouts is None:
            return None
        return self.keyboard_layouts.current_name

    def replicate(self) -> list[Event]:
        if self.keyboard_layouts is None:
            return []
        return [KeyboardLayoutsChanged(keyboard_layouts=self.keyboard_layouts.model_copy(deep=True))]

    def _apply(self, event: Event) -> Event | None:
        match event:
            case KeyboardLayoutsChanged(keyboard_layouts=keyboard_layouts):
                self.keyboard_layouts = keyboard_layouts.model_copy(deep=True)

            case KeyboardLayoutSwitched(idx=idx):
                if self.keyboard_layouts is None:
                    raise StateInvariantError(
                        "Keyboard layouts must be set before a layout can be switched"
                    )
                self.keyboard_layouts.current_idx = idx

            case _:
                return event
        return None


class OverviewState(EventStreamStatePart):
    """The overview state communicated over the event stream."""

    def __init__(self) -> None:
        super().__init__()
        self.is_open = False

    def replicate(self) -> list[Event]:
        # Always announced, even when closed
        return [OverviewOpenedOrClosed(is_open=self.is_open)]

    def _apply(self, event: Event) -> Event | None:
        match event:
            case OverviewOpenedOrClosed(is_open=is_open):
                self.is_open = is_open
            case _:
                return event
        return None


class ConfigState(EventStreamStatePart):
    """The config state communicated over the event stream."""

    def __init__(self) -> None:
        super().__init__()
        # Whether the last config load attempt failed
        self.failed = False

    def replicate(self) -> list[Event]:
        return [ConfigLoaded(failed=self.failed)]

    def _apply(self, event: Event) -> Event | None:
        match event:
            case ConfigLoaded(failed=failed):
                self.failed = failed
            case _:
                return event
        return None


class EventStreamState(EventStreamStatePart):
    """The full state communicated over the event stream.

    Events are offered to the parts in a fixed order: workspaces, windows,
    keyboard layouts, overview, config. The first part that claims an event
    handles it; events no part claims (e.g. ScreenshotCaptured) are dropped.
    `replicate` concatenates the parts' replicas in the same order.

    Different parts of the state are not guaranteed to be consistent across
    every single event. For example, the first WindowOpenedOrChanged for a
    just-opened window may arrive *after* a WorkspaceActiveWindowChanged
    naming it. Between the two, the workspace's active window id refers to a
    window the windows part does not hold yet.
    """

    def __init__(self) -> None:
        super().__init__()
        self.workspaces = WorkspacesState()
        self.windows = WindowsState()
        self.keyboard_layouts = KeyboardLayoutsState()
        self.overview = OverviewState()
        self.config = ConfigState()

    @property
    def parts(self) -> tuple[EventStreamStatePart, ...]:
        """State parts in routing order."""
        return (self.workspaces, self.windows, self.keyboard_layouts, self.overview, self.config)

    def replicate(self) -> list[Event]:
        events: list[Event] = []
        for part in self.parts:
            events.extend(part.replicate())
        return events

    def _apply(self, event: Event) -> Event | None:
        for part in self.parts:
            if part.apply(event) is None:
                return None

        logger.debug(f"Unclaimed event: {type(event).__name__}")
        return event
