"""Transport layer for talking to the niri compositor."""

from .socket import SOCKET_ENV_VAR, TIMEOUT_ENV_VAR, NiriSocket, SocketConfig

__all__ = [
    "NiriSocket",
    "SocketConfig",
    "SOCKET_ENV_VAR",
    "TIMEOUT_ENV_VAR",
]
