"""Unit tests for Reply and Response decoding."""

import pytest

from niri_ipc.errors import ProtocolError, ReplyError
from niri_ipc.models import KeyboardLayouts, Output, Workspace
from niri_ipc.protocol.replies import Reply, Response, ResponseType

OUTPUT_JSON = {
    "name": "DP-1",
    "make": "Dell Inc.",
    "model": "U2720Q",
    "serial": None,
    "physical_size": [600, 340],
    "modes": [
        {"width": 3840, "height": 2160, "refresh_rate": 59997, "is_preferred": True},
    ],
    "current_mode": 0,
    "is_custom_mode": False,
    "vrr_supported": False,
    "vrr_enabled": False,
    "logical": {
        "x": 0,
        "y": 0,
        "width": 2560,
        "height": 1440,
        "scale": 1.5,
        "transform": "Normal",
    },
}


class TestReplyDecoding:
    """Test decoding replies from their wire form."""

    def test_handled(self):
        reply = Reply.from_json({"Ok": "Handled"})

        assert reply.is_ok()
        assert reply.unwrap().is_handled()

    def test_version(self):
        response = Reply.from_json({"Ok": {"Version": "25.08"}}).unwrap()

        assert response.type == ResponseType.VERSION
        assert response.data == "25.08"

    def test_workspaces(self):
        reply = Reply.from_json(
            {"Ok": {"Workspaces": [{"id": 1, "idx": 1, "output": "DP-1", "is_active": True}]}}
        )

        data = reply.unwrap().data
        assert isinstance(data[0], Workspace)
        assert data[0].is_active

    def test_outputs(self):
        data = Reply.from_json({"Ok": {"Outputs": {"DP-1": OUTPUT_JSON}}}).unwrap().data

        output = data["DP-1"]
        assert isinstance(output, Output)
        assert output.logical.scale == 1.5
        assert output.modes[0].refresh_rate == 59997

    def test_focused_window_none(self):
        response = Reply.from_json({"Ok": {"FocusedWindow": None}}).unwrap()

        assert response.type == ResponseType.FOCUSED_WINDOW
        assert response.data is None

    def test_keyboard_layouts(self):
        data = (
            Reply.from_json({"Ok": {"KeyboardLayouts": {"names": ["us", "de"], "current_idx": 1}}})
            .unwrap()
            .data
        )

        assert data == KeyboardLayouts(names=["us", "de"], current_idx=1)
        assert data.current_name == "de"

    def test_error_reply(self):
        reply = Reply.from_json({"Err": "error getting output info"})

        assert reply.is_error()
        with pytest.raises(ReplyError, match="error getting output info"):
            reply.unwrap()

    @pytest.mark.parametrize(
        "data",
        [
            "Handled",
            {"Maybe": "Handled"},
            {"Ok": {"Teleported": 1}},
            {"Ok": {"Version": 25}},
            {"Ok": {"Workspaces": [{"idx": 1}]}},
            {"Ok": "Nope"},
        ],
    )
    def test_malformed(self, data):
        with pytest.raises(ProtocolError):
            Reply.from_json(data)


class TestReplyEncoding:
    def test_handled(self):
        assert Reply.ok(Response(type=ResponseType.HANDLED)).to_json() == {"Ok": "Handled"}

    def test_error(self):
        assert Reply.err("nope").to_json() == {"Err": "nope"}

    def test_payload(self):
        reply = Reply.from_json({"Ok": {"OverviewState": {"is_open": True}}})

        assert reply.to_json() == {"Ok": {"OverviewState": {"is_open": True}}}
        assert reply.unwrap().payload_json() == {"is_open": True}
