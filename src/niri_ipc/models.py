"""Compositor entity shapes.

Field names match the compositor's JSON exactly, so every model decodes with
`Model.model_validate(data)` and encodes with `model.model_dump(mode="json")`.

Models are mutable on purpose: the state parts in `niri_ipc.state` update
workspaces and windows in place as events arrive.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field


class Transform(str, Enum):
    """Output transform, counter-clockwise."""

    NORMAL = "Normal"
    BY_90 = "90"
    BY_180 = "180"
    BY_270 = "270"
    FLIPPED = "Flipped"
    FLIPPED_90 = "Flipped90"
    FLIPPED_180 = "Flipped180"
    FLIPPED_270 = "Flipped270"


class Layer(str, Enum):
    """A layer-shell layer."""

    BACKGROUND = "Background"
    BOTTOM = "Bottom"
    TOP = "Top"
    OVERLAY = "Overlay"


class LayerSurfaceKeyboardInteractivity(str, Enum):
    """Keyboard interactivity modes for a layer-shell surface."""

    NONE = "None"
    EXCLUSIVE = "Exclusive"
    ON_DEMAND = "OnDemand"


# =============================================================================
# Outputs
# =============================================================================


class Mode(BaseModel):
    """Output mode."""

    width: int
    height: int
    refresh_rate: int  # millihertz
    is_preferred: bool


class LogicalOutput(BaseModel):
    """Logical output in the compositor's coordinate space."""

    x: int
    y: int
    width: int
    height: int
    scale: float
    transform: Transform


class Output(BaseModel):
    """A connected output (monitor)."""

    name: str
    make: str
    model: str
    serial: str | None = None
    physical_size: tuple[int, int] | None = None  # millimeters
    modes: list[Mode] = Field(default_factory=list)
    current_mode: int | None = None  # index into modes, None if disabled
    is_custom_mode: bool = False
    vrr_supported: bool = False
    vrr_enabled: bool = False
    logical: LogicalOutput | None = None


# =============================================================================
# Workspaces & windows
# =============================================================================


class Workspace(BaseModel):
    """A workspace.

    `id` is stable for the lifetime of the workspace. `idx` is only the
    current position on its output and changes as workspaces move; two
    workspaces on different outputs can share an `idx`.

    `is_active` is relative to the workspace's own output (one active
    workspace per output). `is_focused` is global (one focused workspace
    across all outputs).
    """

    id: int
    idx: int
    name: str | None = None
    output: str | None = None
    is_urgent: bool = False
    is_active: bool = False
    is_focused: bool = False
    active_window_id: int | None = None


class WindowLayout(BaseModel):
    """Position- and size-related properties of a window, in logical pixels.

    `pos_in_scrolling_layout` is 1-based (column, tile-in-column) and unset for
    floating windows. Tile properties describe what the user sees as "the
    window"; the window properties describe the underlying surface geometry.
    """

    pos_in_scrolling_layout: tuple[int, int] | None = None
    tile_size: tuple[float, float]
    window_size: tuple[int, int]
    tile_pos_in_workspace_view: tuple[float, float] | None = None
    window_offset_in_tile: tuple[float, float]


class Window(BaseModel):
    """A toplevel window.

    There is either one focused window or none (for example when a
    layer-shell surface holds keyboard focus).
    """

    id: int
    title: str | None = None
    app_id: str | None = None
    pid: int | None = None
    workspace_id: int | None = None
    is_focused: bool = False
    is_floating: bool = False
    is_urgent: bool = False
    layout: WindowLayout


class KeyboardLayouts(BaseModel):
    """Configured keyboard layouts and the index of the active one."""

    names: list[str]
    current_idx: int

    @property
    def current_name(self) -> str | None:
        """XKB name of the active layout, None if the index is out of range."""
        if 0 <= self.current_idx < len(self.names):
            return self.names[self.current_idx]
        return None


# =============================================================================
# Misc reply payloads
# =============================================================================


class LayerSurface(BaseModel):
    """A layer-shell surface."""

    namespace: str
    output: str
    layer: Layer
    keyboard_interactivity: LayerSurfaceKeyboardInteractivity


class Overview(BaseModel):
    """Overview information."""

    is_open: bool


class PickedColor(BaseModel):
    """Color picked from the screen, each channel in [0.0, 1.0]."""

    rgb: tuple[float, float, float]
