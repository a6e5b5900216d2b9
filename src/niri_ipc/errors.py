"""Exceptions raised by the niri IPC client.

Everything derives from NiriError so callers can catch the whole family.
Transport problems (socket, wire format) and state-engine invariant
violations are kept apart: the former may be worth a reconnect, the latter
means the event stream and the mirrored state disagree.
"""

from __future__ import annotations


class NiriError(Exception):
    """Base class for all niri IPC errors."""

    help: str | None = None

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class StateInvariantError(NiriError):
    """An event referenced an entity the state must already hold.

    Raised by state parts when, for example, a workspace is activated that
    was never announced. This points at a dropped or reordered event, not at
    something a caller should retry.
    """


class SocketEnvironmentNotFound(NiriError):
    """No socket path was given and $NIRI_SOCKET is not set."""

    help = "Is niri running?"

    def __init__(self, env_var: str = "NIRI_SOCKET") -> None:
        super().__init__(f"{env_var} environment variable not found")
        self.env_var = env_var


class NiriSocketError(NiriError):
    """The unix socket could not be opened, read or written."""

    def __init__(self, message: str, path: str | None = None) -> None:
        super().__init__(message)
        self.path = path


class CannotSendRequestError(NiriError):
    """A request was sent on a socket that already switched to streaming events."""

    help = "Open a second socket for requests while reading the event stream."


class ReplyError(NiriError):
    """The compositor answered a request with an error reply."""


class ProtocolError(NiriError):
    """Malformed or unexpected data on the wire."""
