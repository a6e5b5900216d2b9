"""Reply definitions for the protocol layer.

Every request gets exactly one reply line:

    {"Ok": "Handled"}                       # request needed no data back
    {"Ok": {"Version": "25.08"}}            # typed response
    {"Err": "error message"}

Response payloads are decoded into the models from `niri_ipc.models`.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, TypeAdapter, ValidationError

from ..errors import ProtocolError, ReplyError
from ..models import KeyboardLayouts, LayerSurface, Output, Overview, PickedColor, Window, Workspace


class ResponseType(str, Enum):
    """All response types."""

    HANDLED = "Handled"
    VERSION = "Version"
    OUTPUTS = "Outputs"
    WORKSPACES = "Workspaces"
    WINDOWS = "Windows"
    LAYERS = "Layers"
    KEYBOARD_LAYOUTS = "KeyboardLayouts"
    FOCUSED_OUTPUT = "FocusedOutput"
    FOCUSED_WINDOW = "FocusedWindow"
    PICKED_WINDOW = "PickedWindow"
    PICKED_COLOR = "PickedColor"
    OUTPUT_CONFIG_CHANGED = "OutputConfigChanged"
    OVERVIEW_STATE = "OverviewState"


# Payload shape per response type. OutputConfigChanged is "Applied" or
# "OutputWasMissing" and stays a plain string.
_PAYLOAD_ADAPTERS: dict[ResponseType, TypeAdapter[Any]] = {
    ResponseType.VERSION: TypeAdapter(str),
    ResponseType.OUTPUTS: TypeAdapter(dict[str, Output]),
    ResponseType.WORKSPACES: TypeAdapter(list[Workspace]),
    ResponseType.WINDOWS: TypeAdapter(list[Window]),
    ResponseType.LAYERS: TypeAdapter(list[LayerSurface]),
    ResponseType.KEYBOARD_LAYOUTS: TypeAdapter(KeyboardLayouts),
    ResponseType.FOCUSED_OUTPUT: TypeAdapter(Output | None),
    ResponseType.FOCUSED_WINDOW: TypeAdapter(Window | None),
    ResponseType.PICKED_WINDOW: TypeAdapter(Window | None),
    ResponseType.PICKED_COLOR: TypeAdapter(PickedColor | None),
    ResponseType.OUTPUT_CONFIG_CHANGED: TypeAdapter(str),
    ResponseType.OVERVIEW_STATE: TypeAdapter(Overview),
}


class Response(BaseModel):
    """A successful response.

    `data` holds the decoded payload: a str for Version, a list of Workspace
    for Workspaces, a dict of Output for Outputs, None for Handled, etc.
    """

    type: ResponseType
    data: Any = None

    def is_handled(self) -> bool:
        """Check if this is the payload-less Handled response."""
        return self.type == ResponseType.HANDLED

    def payload_json(self) -> Any:
        """The payload in JSON-compatible form (None for Handled)."""
        adapter = _PAYLOAD_ADAPTERS.get(self.type)
        if adapter is None:
            return None
        return adapter.dump_python(self.data, mode="json")

    def to_json(self) -> Any:
        """Encode to the wire form."""
        if self.type == ResponseType.HANDLED:
            return self.type.value
        return {self.type.value: self.payload_json()}

    @classmethod
    def from_json(cls, data: Any) -> Response:
        """Decode a response from its parsed JSON form."""
        if data == ResponseType.HANDLED.value:
            return cls(type=ResponseType.HANDLED)

        if not isinstance(data, dict) or len(data) != 1:
            raise ProtocolError(f"Invalid response: {data!r}")

        tag, payload = next(iter(data.items()))
        try:
            response_type = ResponseType(tag)
        except ValueError as e:
            raise ProtocolError(f"Unknown response: {tag}") from e

        adapter = _PAYLOAD_ADAPTERS.get(response_type)
        if adapter is None:
            raise ProtocolError(f"Unexpected payload for {tag}")
        try:
            return cls(type=response_type, data=adapter.validate_python(payload))
        except ValidationError as e:
            raise ProtocolError(f"Invalid {tag} payload: {e}") from e


class Reply(BaseModel):
    """Reply from compositor to client: either a Response or an error string."""

    response: Response | None = None
    error: str | None = None

    def is_ok(self) -> bool:
        return self.error is None

    def is_error(self) -> bool:
        return self.error is not None

    def unwrap(self) -> Response:
        """Return the response, raising ReplyError on an Err reply."""
        if self.error is not None:
            raise ReplyError(self.error)
        if self.response is None:
            raise ProtocolError("Ok reply without a response")
        return self.response

    def to_json(self) -> dict[str, Any]:
        """Encode to the wire form."""
        if self.error is not None:
            return {"Err": self.error}
        return {"Ok": self.response.to_json() if self.response else None}

    @classmethod
    def ok(cls, response: Response) -> Reply:
        return cls(response=response)

    @classmethod
    def err(cls, error: str) -> Reply:
        return cls(error=error)

    @classmethod
    def from_json(cls, data: Any) -> Reply:
        """Decode a reply from its parsed JSON form."""
        if not isinstance(data, dict) or len(data) != 1:
            raise ProtocolError(f"Invalid reply: {data!r}")

        if "Ok" in data:
            return cls.ok(Response.from_json(data["Ok"]))
        if "Err" in data:
            return cls.err(str(data["Err"]))
        raise ProtocolError(f"Invalid reply: {data!r}")
