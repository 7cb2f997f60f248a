"""WebSocket message models.

Inbound commands are plain JSON objects with a ``type`` field and
command-specific fields. Every inbound message gets exactly one ServerMessage
back.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class CommandType(str, Enum):
    """Inbound command types."""

    NAVIGATE = "navigate"
    SCREENSHOT = "screenshot"
    STATUS = "status"
    INIT = "init"
    CLICK = "click"
    TYPE = "type"
    KEY = "key"


class MessageType(str, Enum):
    """Outbound message types."""

    STATUS = "status"
    NAVIGATION_SUCCESS = "navigation_success"
    NAVIGATION_ERROR = "navigation_error"
    SCREENSHOT_SAVED = "screenshot_saved"
    SCREENSHOT_ERROR = "screenshot_error"
    INIT_SUCCESS = "init_success"
    INIT_ERROR = "init_error"
    CLICK_SUCCESS = "click_success"
    CLICK_ERROR = "click_error"
    TYPE_SUCCESS = "type_success"
    TYPE_ERROR = "type_error"
    KEY_SUCCESS = "key_success"
    KEY_ERROR = "key_error"
    ERROR = "error"


class Coordinates(BaseModel):
    """Click coordinates, echoed exactly as received."""

    x: Any = Field(description="Horizontal viewport coordinate")
    y: Any = Field(description="Vertical viewport coordinate")


class ServerMessage(BaseModel):
    """Reply sent to the client for every inbound message.

    Optional fields are omitted from the wire format when unset.
    """

    type: MessageType = Field(description="Reply type")
    message: str = Field(description="Human-readable description")
    browser_ready: bool | None = Field(
        default=None, alias="browserReady", description="Session readiness (status and init replies)"
    )
    url: str | None = Field(default=None, description="Target or final URL")
    status: int | None = Field(default=None, description="HTTP status of a navigation")
    coordinates: Coordinates | None = Field(default=None, description="Click coordinates")
    text: Any = Field(default=None, description="Typed text")
    key: Any = Field(default=None, description="Pressed key")
    error_kind: str | None = Field(
        default=None, alias="errorKind", description="Failure classification"
    )

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "type": "navigation_success",
                "message": "Navigated to: https://example.com",
                "url": "https://example.com/",
                "status": 200,
            }
        },
    )

    def to_wire(self) -> dict[str, Any]:
        """Serialize for sending over the WebSocket."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
