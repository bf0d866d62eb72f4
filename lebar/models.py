"""Core data models for i3bar protocol status items and click events."""

from dataclasses import dataclass, asdict, field
from typing import Any, Optional, Union
from enum import Enum

from .errors import EventParseError


@dataclass
class RenderedItem:
    """A single status item in the i3bar protocol format.

    See: https://i3wm.org/docs/i3bar-protocol.html
    """

    # Required fields
    name: str               # Owning block name, never templated
    full_text: str          # Full text to display

    # Optional fields
    short_text: Optional[str] = None      # Abbreviated text for small displays
    color: Optional[str] = None           # Hex color code (#RRGGBB)
    background: Optional[str] = None      # Background color
    border: Optional[str] = None          # Border color
    border_top: Optional[int] = None      # Border width (pixels)
    border_right: Optional[int] = None
    border_bottom: Optional[int] = None
    border_left: Optional[int] = None
    min_width: Optional[Union[int, str]] = None  # Minimum width (pixels or sample string)
    align: Optional[str] = None           # Text alignment (left, center, right)
    urgent: Optional[bool] = None         # Urgent flag (highlights item)
    separator: Optional[bool] = True      # Show separator after item
    separator_block_width: Optional[int] = 9
    markup: Optional[str] = None          # Markup type (none, pango)
    instance: Optional[str] = None        # Item instance identifier

    def to_json(self) -> dict:
        """Convert to i3bar protocol JSON format.

        Omits None values to minimize JSON output.
        """
        return {k: v for k, v in asdict(self).items() if v is not None}


class MouseButton(Enum):
    """Mouse button codes from i3bar protocol."""
    OTHER = 0
    LEFT = 1
    MIDDLE = 2
    RIGHT = 3
    SCROLL_UP = 4
    SCROLL_DOWN = 5

    @classmethod
    def from_code(cls, code: int) -> "MouseButton":
        """Map a protocol button code to a button, unknown codes to OTHER."""
        try:
            return cls(code)
        except ValueError:
            return cls.OTHER

    @classmethod
    def from_display_name(cls, name: str) -> Optional["MouseButton"]:
        """Look up a button by its configuration name (Left, ScrollUp, ...)."""
        for button in cls:
            if button is not cls.OTHER and button.display_name == name:
                return button
        return None

    @property
    def display_name(self) -> str:
        """Name used in configuration keys and the BUTTON variable."""
        return _DISPLAY_NAMES[self]


_DISPLAY_NAMES = {
    MouseButton.OTHER: "",
    MouseButton.LEFT: "Left",
    MouseButton.MIDDLE: "Middle",
    MouseButton.RIGHT: "Right",
    MouseButton.SCROLL_UP: "ScrollUp",
    MouseButton.SCROLL_DOWN: "ScrollDown",
}


@dataclass
class ClickEvent:
    """A click event from the bar host (i3bar protocol).

    Sent from i3bar/swaybar to the status generator via stdin when the user
    clicks a status item.
    """

    name: str                     # Block name
    button: MouseButton           # Mouse button
    button_code: int = 0          # Raw button code as sent by the host
    instance: Optional[str] = None
    x: int = 0                    # Click X coordinate (absolute)
    y: int = 0                    # Click Y coordinate (absolute)
    relative_x: int = 0           # Click coordinates relative to the item
    relative_y: int = 0
    width: int = 0                # Item size
    height: int = 0
    scale: float = 1.0
    modifiers: list = field(default_factory=list)

    @classmethod
    def from_json(cls, data: Any) -> "ClickEvent":
        """Parse from i3bar protocol JSON.

        Args:
            data: Click event JSON dict from the host's stdin

        Returns:
            ClickEvent instance

        Raises:
            EventParseError: If the record is not an object or lacks name/button
        """
        if not isinstance(data, dict):
            raise EventParseError(f"click event must be an object, got {type(data).__name__}")
        if "name" not in data or "button" not in data:
            raise EventParseError("click event missing 'name' or 'button'", context={"record": data})
        if not isinstance(data["name"], str):
            raise EventParseError("click event name must be a string", context={"record": data})

        try:
            button_code = int(data["button"])
            return cls(
                name=data["name"],
                button=MouseButton.from_code(button_code),
                button_code=button_code,
                instance=data.get("instance"),
                x=int(data.get("x", 0)),
                y=int(data.get("y", 0)),
                relative_x=int(data.get("relative_x", 0)),
                relative_y=int(data.get("relative_y", 0)),
                width=int(data.get("width", 0)),
                height=int(data.get("height", 0)),
                scale=float(data.get("scale") or 1.0),
                modifiers=list(data.get("modifiers") or []),
            )
        except (TypeError, ValueError) as e:
            raise EventParseError(f"invalid click event field: {e}", context={"record": data}) from e
