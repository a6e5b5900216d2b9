"""Request definitions for the protocol layer.

Requests go from client to compositor, one JSON value per line. The
compositor answers each with exactly one Reply, in order.

Wire forms:
    "Version"                                   # unit request
    {"Action": {"FocusWindow": {"id": 12}}}     # action request
    {"Output": {"output": "DP-1", "action": "On"}}

Actions are carried generically (name + params). Factories exist for the
commonly scripted ones; anything else goes through `Action.create`.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class RequestType(str, Enum):
    """All supported request types."""

    VERSION = "Version"
    OUTPUTS = "Outputs"
    WORKSPACES = "Workspaces"
    WINDOWS = "Windows"
    LAYERS = "Layers"
    KEYBOARD_LAYOUTS = "KeyboardLayouts"
    FOCUSED_OUTPUT = "FocusedOutput"
    FOCUSED_WINDOW = "FocusedWindow"
    PICK_WINDOW = "PickWindow"
    PICK_COLOR = "PickColor"
    EVENT_STREAM = "EventStream"
    RETURN_ERROR = "ReturnError"  # compositor always answers Err
    OVERVIEW_STATE = "OverviewState"

    # Requests with a payload
    ACTION = "Action"
    OUTPUT = "Output"


def workspace_reference(
    id: int | None = None,
    index: int | None = None,
    name: str | None = None,
) -> dict[str, Any]:
    """Build a workspace reference argument (exactly one of id/index/name)."""
    given = [(k, v) for k, v in (("Id", id), ("Index", index), ("Name", name)) if v is not None]
    if len(given) != 1:
        raise ValueError("Exactly one of id, index or name is required")
    key, value = given[0]
    return {key: value}


def layout_switch_target(target: str | int) -> str | dict[str, int]:
    """Build a keyboard layout switch target: "next", "prev" or an index."""
    if isinstance(target, int):
        return {"Index": target}
    if target.lower() == "next":
        return "Next"
    if target.lower() == "prev":
        return "Prev"
    raise ValueError(f"Invalid layout switch target: {target}")


class Action(BaseModel):
    """A compositor action.

    Example:
        Action.focus_window(12).to_json()  ->  {"FocusWindow": {"id": 12}}
    """

    name: str
    params: dict[str, Any] = Field(default_factory=dict)

    def to_json(self) -> dict[str, Any]:
        """Encode to the externally tagged wire form."""
        return {self.name: self.params}

    @classmethod
    def create(cls, name: str, **params: Any) -> Action:
        """Factory method for arbitrary actions."""
        return cls(name=name, params=params)

    # Convenience factories for common actions
    @classmethod
    def quit(cls, skip_confirmation: bool = False) -> Action:
        return cls.create("Quit", skip_confirmation=skip_confirmation)

    @classmethod
    def spawn(cls, command: list[str]) -> Action:
        return cls.create("Spawn", command=command)

    @classmethod
    def spawn_sh(cls, command: str) -> Action:
        return cls.create("SpawnSh", command=command)

    @classmethod
    def do_screen_transition(cls, delay_ms: int | None = None) -> Action:
        return cls.create("DoScreenTransition", delay_ms=delay_ms)

    @classmethod
    def close_window(cls, id: int | None = None) -> Action:
        """Close a window; None targets the focused window."""
        return cls.create("CloseWindow", id=id)

    @classmethod
    def focus_window(cls, id: int) -> Action:
        return cls.create("FocusWindow", id=id)

    @classmethod
    def fullscreen_window(cls, id: int | None = None) -> Action:
        return cls.create("FullscreenWindow", id=id)

    @classmethod
    def toggle_window_floating(cls, id: int | None = None) -> Action:
        return cls.create("ToggleWindowFloating", id=id)

    @classmethod
    def focus_workspace(cls, reference: dict[str, Any]) -> Action:
        """Focus a workspace; see `workspace_reference`."""
        return cls.create("FocusWorkspace", reference=reference)

    @classmethod
    def move_window_to_workspace(
        cls,
        reference: dict[str, Any],
        window_id: int | None = None,
        focus: bool = True,
    ) -> Action:
        return cls.create(
            "MoveWindowToWorkspace",
            window_id=window_id,
            reference=reference,
            focus=focus,
        )

    @classmethod
    def set_workspace_name(cls, name: str, workspace: dict[str, Any] | None = None) -> Action:
        return cls.create("SetWorkspaceName", name=name, workspace=workspace)

    @classmethod
    def switch_layout(cls, target: str | int) -> Action:
        return cls.create("SwitchLayout", layout=layout_switch_target(target))

    @classmethod
    def toggle_overview(cls) -> Action:
        return cls.create("ToggleOverview")

    @classmethod
    def open_overview(cls) -> Action:
        return cls.create("OpenOverview")

    @classmethod
    def close_overview(cls) -> Action:
        return cls.create("CloseOverview")

    @classmethod
    def set_window_urgent(cls, id: int) -> Action:
        return cls.create("SetWindowUrgent", id=id)

    @classmethod
    def unset_window_urgent(cls, id: int) -> Action:
        return cls.create("UnsetWindowUrgent", id=id)

    @classmethod
    def load_config_file(cls) -> Action:
        return cls.create("LoadConfigFile")


class Request(BaseModel):
    """A request from client to compositor.

    Unit requests only carry `type`. Action requests carry `action`; output
    requests carry `output` (the output name) and `output_action` (passed
    through verbatim, e.g. "On" or {"Scale": {"Specific": 1.5}}).
    """

    type: RequestType
    action: Action | None = None
    output: str | None = None
    output_action: Any = None

    def to_json(self) -> Any:
        """Encode to the wire form (a string or a single-key object)."""
        if self.type == RequestType.ACTION:
            if self.action is None:
                raise ValueError("Action request without an action")
            return {RequestType.ACTION.value: self.action.to_json()}
        if self.type == RequestType.OUTPUT:
            if self.output is None:
                raise ValueError("Output request without an output name")
            return {
                RequestType.OUTPUT.value: {"output": self.output, "action": self.output_action}
            }
        return self.type.value

    @classmethod
    def create(cls, request_type: str | RequestType) -> Request:
        """Factory method for unit requests."""
        return cls(type=RequestType(request_type))

    # Convenience factories
    @classmethod
    def version(cls) -> Request:
        return cls.create(RequestType.VERSION)

    @classmethod
    def outputs(cls) -> Request:
        return cls.create(RequestType.OUTPUTS)

    @classmethod
    def workspaces(cls) -> Request:
        return cls.create(RequestType.WORKSPACES)

    @classmethod
    def windows(cls) -> Request:
        return cls.create(RequestType.WINDOWS)

    @classmethod
    def layers(cls) -> Request:
        return cls.create(RequestType.LAYERS)

    @classmethod
    def keyboard_layouts(cls) -> Request:
        return cls.create(RequestType.KEYBOARD_LAYOUTS)

    @classmethod
    def focused_output(cls) -> Request:
        return cls.create(RequestType.FOCUSED_OUTPUT)

    @classmethod
    def focused_window(cls) -> Request:
        return cls.create(RequestType.FOCUSED_WINDOW)

    @classmethod
    def pick_window(cls) -> Request:
        return cls.create(RequestType.PICK_WINDOW)

    @classmethod
    def pick_color(cls) -> Request:
        return cls.create(RequestType.PICK_COLOR)

    @classmethod
    def event_stream(cls) -> Request:
        return cls.create(RequestType.EVENT_STREAM)

    @classmethod
    def return_error(cls) -> Request:
        return cls.create(RequestType.RETURN_ERROR)

    @classmethod
    def overview_state(cls) -> Request:
        return cls.create(RequestType.OVERVIEW_STATE)

    @classmethod
    def from_action(cls, action: Action) -> Request:
        """Wrap an action in a request."""
        return cls(type=RequestType.ACTION, action=action)

    @classmethod
    def output_config(cls, output: str, action: Any) -> Request:
        """Configure an output by name."""
        return cls(type=RequestType.OUTPUT, output=output, output_action=action)
