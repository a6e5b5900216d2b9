"""Integration tests for NiriSocket against a fake compositor.

The fake listens on a real unix socket and speaks the line protocol:
- Request lines are answered from a canned reply table
- EventStream is acknowledged, followed by the canned event lines, then EOF
"""

import asyncio
import json
import logging

import pytest
from factories import make_window, make_workspace

from niri_ipc.errors import (
    CannotSendRequestError,
    NiriSocketError,
    ProtocolError,
    ReplyError,
    SocketEnvironmentNotFound,
)
from niri_ipc.protocol.events import ConfigLoaded, WindowsChanged, WorkspacesChanged
from niri_ipc.protocol.requests import Action, Request
from niri_ipc.state import EventStreamState
from niri_ipc.transport import NiriSocket, SocketConfig

# =============================================================================
# Helpers
# =============================================================================


class FakeNiri:
    """Minimal unix-socket server imitating the compositor."""

    def __init__(self, path, replies=None, event_lines=None, ack=None):
        self.path = str(path)
        self.replies = replies or {}
        self.event_lines = event_lines or []
        self.ack = ack if ack is not None else {"Ok": "Handled"}
        self.received = []
        self.delays = {}
        self._server = None

    def reply_to(self, request, reply, delay=0.0):
        """Register the reply for a request (None means never answer)."""
        key = json.dumps(request.to_json(), sort_keys=True)
        self.replies[key] = reply
        self.delays[key] = delay

    async def __aenter__(self):
        self._server = await asyncio.start_unix_server(self._handle, path=self.path)
        return self

    async def __aexit__(self, *args):
        self._server.close()
        await self._server.wait_closed()

    async def _handle(self, reader, writer):
        try:
            while line := await reader.readline():
                request = json.loads(line)
                self.received.append(request)

                if request == "EventStream":
                    writer.write(json.dumps(self.ack).encode() + b"\n")
                    for event_line in self.event_lines:
                        writer.write(event_line.encode() + b"\n")
                    await writer.drain()
                    break

                key = json.dumps(request, sort_keys=True)
                reply = self.replies.get(key, {"Err": "unknown request"})
                if reply is None:
                    continue
                if self.delays.get(key):
                    await asyncio.sleep(self.delays[key])
                writer.write(json.dumps(reply).encode() + b"\n")
                await writer.drain()
        except ConnectionError:
            pass
        finally:
            writer.close()


def config_for(niri, timeout=2.0):
    return SocketConfig(path=niri.path, timeout=timeout)


def snapshot_lines():
    return [
        json.dumps(WorkspacesChanged(workspaces=[make_workspace(1, is_active=True)]).to_json()),
        json.dumps(WindowsChanged(windows=[make_window(10, is_focused=True)]).to_json()),
        json.dumps({"SomeFutureEvent": {"x": 1}}),
        json.dumps({"KeyboardLayoutsChanged": {"keyboard_layouts": {"names": ["us"], "current_idx": 0}}}),
        json.dumps({"OverviewOpenedOrClosed": {"is_open": False}}),
        json.dumps(ConfigLoaded(failed=False).to_json()),
        json.dumps({"WindowFocusChanged": {"id": None}}),
    ]


# =============================================================================
# Tests: Request / reply
# =============================================================================


class TestRequests:
    """Test request/reply exchanges."""

    @pytest.mark.asyncio
    async def test_version(self, tmp_path):
        async with FakeNiri(tmp_path / "niri.sock") as niri:
            niri.reply_to(Request.version(), {"Ok": {"Version": "25.08"}})

            async with await NiriSocket.connect(config_for(niri)) as sock:
                response = await sock.request(Request.version())

        assert response.data == "25.08"
        assert niri.received == ["Version"]

    @pytest.mark.asyncio
    async def test_replies_in_order(self, tmp_path):
        async with FakeNiri(tmp_path / "niri.sock") as niri:
            niri.reply_to(Request.version(), {"Ok": {"Version": "25.08"}})
            niri.reply_to(Request.overview_state(), {"Ok": {"OverviewState": {"is_open": True}}})
            niri.reply_to(Request.from_action(Action.toggle_overview()), {"Ok": "Handled"})

            async with await NiriSocket.connect(config_for(niri)) as sock:
                version, overview, handled = await asyncio.gather(
                    sock.request(Request.version()),
                    sock.request(Request.overview_state()),
                    sock.request(Request.from_action(Action.toggle_overview())),
                )

        assert version.data == "25.08"
        assert overview.data.is_open
        assert handled.is_handled()
        assert niri.received[2] == {"Action": {"ToggleOverview": {}}}

    @pytest.mark.asyncio
    async def test_error_reply(self, tmp_path):
        async with FakeNiri(tmp_path / "niri.sock") as niri:
            niri.reply_to(Request.return_error(), {"Err": "example compositor error"})

            async with await NiriSocket.connect(config_for(niri)) as sock:
                reply = await sock.send(Request.return_error())
                with pytest.raises(ReplyError, match="example compositor error"):
                    await sock.request(Request.return_error())

        assert reply.is_error()

    @pytest.mark.asyncio
    async def test_reply_timeout(self, tmp_path):
        async with FakeNiri(tmp_path / "niri.sock") as niri:
            niri.reply_to(Request.pick_window(), None)

            async with await NiriSocket.connect(config_for(niri, timeout=0.1)) as sock:
                with pytest.raises(TimeoutError):
                    await sock.send(Request.pick_window())

                assert sock.is_broken

    @pytest.mark.asyncio
    async def test_late_reply_is_not_returned_to_next_request(self, tmp_path):
        """After a timeout the socket refuses requests instead of mixing up replies."""
        async with FakeNiri(tmp_path / "niri.sock") as niri:
            niri.reply_to(Request.version(), {"Ok": {"Version": "late-first"}}, delay=0.3)
            niri.reply_to(Request.overview_state(), {"Ok": {"OverviewState": {"is_open": True}}})

            async with await NiriSocket.connect(config_for(niri, timeout=0.1)) as sock:
                with pytest.raises(TimeoutError):
                    await sock.request(Request.version())

                with pytest.raises(NiriSocketError):
                    await sock.request(Request.overview_state())
                with pytest.raises(NiriSocketError):
                    await anext(sock.event_stream())

        assert niri.received == ["Version"]

    @pytest.mark.asyncio
    async def test_cancelled_send_breaks_socket(self, tmp_path):
        async with FakeNiri(tmp_path / "niri.sock") as niri:
            niri.reply_to(Request.version(), {"Ok": {"Version": "25.08"}}, delay=0.3)

            async with await NiriSocket.connect(config_for(niri)) as sock:
                task = asyncio.create_task(sock.send(Request.version()))
                await asyncio.sleep(0.05)
                task.cancel()
                with pytest.raises(asyncio.CancelledError):
                    await task

                assert sock.is_broken
                with pytest.raises(NiriSocketError):
                    await sock.send(Request.version())

    @pytest.mark.asyncio
    async def test_event_stream_request_refused(self, tmp_path):
        async with FakeNiri(tmp_path / "niri.sock") as niri:
            async with await NiriSocket.connect(config_for(niri)) as sock:
                with pytest.raises(CannotSendRequestError):
                    await sock.send(Request.event_stream())

        assert niri.received == []


# =============================================================================
# Tests: Event stream
# =============================================================================


class TestEventStream:
    """Test the event stream and its acknowledgment."""

    @pytest.mark.asyncio
    async def test_yields_events_until_eof(self, tmp_path, caplog):
        async with FakeNiri(tmp_path / "niri.sock", event_lines=snapshot_lines()) as niri:
            async with await NiriSocket.connect(config_for(niri)) as sock:
                with caplog.at_level(logging.WARNING, logger="niri_ipc.transport.socket"):
                    events = [event async for event in sock.event_stream()]

        assert [event.tag for event in events] == [
            "WorkspacesChanged",
            "WindowsChanged",
            "KeyboardLayoutsChanged",
            "OverviewOpenedOrClosed",
            "ConfigLoaded",
            "WindowFocusChanged",
        ]
        assert "SomeFutureEvent" in caplog.text
        assert niri.received == ["EventStream"]

    @pytest.mark.asyncio
    async def test_follow_mirrors_state(self, tmp_path):
        state = EventStreamState()

        async with FakeNiri(tmp_path / "niri.sock", event_lines=snapshot_lines()) as niri:
            async with await NiriSocket.connect(config_for(niri)) as sock:
                async for _event in sock.follow(state):
                    pass

        assert list(state.workspaces.workspaces) == [1]
        assert list(state.windows.windows) == [10]
        assert state.windows.focused() is None
        assert state.keyboard_layouts.current_name == "us"
        assert not state.config.failed

    @pytest.mark.asyncio
    async def test_no_requests_while_streaming(self, tmp_path):
        async with FakeNiri(tmp_path / "niri.sock", event_lines=snapshot_lines()) as niri:
            async with await NiriSocket.connect(config_for(niri)) as sock:
                stream = sock.event_stream()
                first = await anext(stream)

                assert sock.is_streaming
                with pytest.raises(CannotSendRequestError):
                    await sock.send(Request.version())
                with pytest.raises(CannotSendRequestError):
                    await anext(sock.event_stream())

                await stream.aclose()

        assert isinstance(first, WorkspacesChanged)

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "ack",
        [
            {"Err": "event stream unavailable"},
            {"Ok": {"Version": "25.08"}},
        ],
    )
    async def test_bad_acknowledgment(self, tmp_path, ack):
        async with FakeNiri(tmp_path / "niri.sock", ack=ack) as niri:
            async with await NiriSocket.connect(config_for(niri)) as sock:
                with pytest.raises(ProtocolError):
                    await anext(sock.event_stream())

    @pytest.mark.asyncio
    async def test_malformed_event_line(self, tmp_path):
        async with FakeNiri(tmp_path / "niri.sock", event_lines=["{not json"]) as niri:
            async with await NiriSocket.connect(config_for(niri)) as sock:
                with pytest.raises(ProtocolError):
                    await anext(sock.event_stream())


# =============================================================================
# Tests: Connection setup
# =============================================================================


class TestConnect:
    """Test locating and opening the socket."""

    @pytest.mark.asyncio
    async def test_missing_environment(self, monkeypatch):
        monkeypatch.delenv("NIRI_SOCKET", raising=False)

        with pytest.raises(SocketEnvironmentNotFound) as exc_info:
            await NiriSocket.connect()

        assert exc_info.value.help == "Is niri running?"

    @pytest.mark.asyncio
    async def test_connect_from_environment(self, tmp_path, monkeypatch):
        async with FakeNiri(tmp_path / "niri.sock") as niri:
            niri.reply_to(Request.version(), {"Ok": {"Version": "25.08"}})
            monkeypatch.setenv("NIRI_SOCKET", niri.path)

            async with await NiriSocket.connect() as sock:
                response = await sock.request(Request.version())

        assert response.data == "25.08"

    @pytest.mark.asyncio
    async def test_socket_does_not_exist(self, tmp_path):
        path = str(tmp_path / "missing.sock")

        with pytest.raises(NiriSocketError) as exc_info:
            await NiriSocket.connect(SocketConfig(path=path))

        assert exc_info.value.path == path

    def test_config_from_env(self, monkeypatch):
        monkeypatch.setenv("NIRI_SOCKET", "/run/user/1000/niri.sock")
        monkeypatch.setenv("NIRI_IPC_TIMEOUT", "0.5")

        config = SocketConfig.from_env()

        assert config.path == "/run/user/1000/niri.sock"
        assert config.timeout == 0.5

    def test_config_ignores_invalid_timeout(self, monkeypatch):
        monkeypatch.delenv("NIRI_SOCKET", raising=False)
        monkeypatch.setenv("NIRI_IPC_TIMEOUT", "soon")

        config = SocketConfig.from_env()

        assert config.path is None
        assert config.timeout == SocketConfig().timeout
