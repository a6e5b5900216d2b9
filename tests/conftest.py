"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import pytest
from factories import make_window, make_workspace

from niri_ipc.models import Window, Workspace


@pytest.fixture
def workspaces() -> list[Workspace]:
    """Two outputs: workspaces 1-2 on DP-1, 3 on HDMI-A-1."""
    return [
        make_workspace(1, is_active=True, is_focused=True, active_window_id=10),
        make_workspace(2),
        make_workspace(3, idx=1, output="HDMI-A-1", is_active=True),
    ]


@pytest.fixture
def windows() -> list[Window]:
    return [
        make_window(10, is_focused=True),
        make_window(11),
        make_window(12, workspace_id=3, is_floating=True),
    ]
