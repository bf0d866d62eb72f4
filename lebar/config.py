"""
Configuration models and loader for the lebar status generator.

The configuration is a YAML document with three top-level sections:
- separator / stop_signal / cont_signal: bar-wide settings
- symbol_lists: named glyph ramps used by the Symbol template function
- blocks: the status items, in display order

Models are frozen once loaded; the scheduler and the click listener share
one Config instance without locking.
"""

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from .errors import ConfigError
from .models import MouseButton

logger = logging.getLogger(__name__)

DEFAULT_SEPARATOR = "|"

# Output fields rendered through the template engine, in rendering order
TEMPLATED_FIELDS: Tuple[str, ...] = (
    "full_text",
    "short_text",
    "color",
    "background",
    "border",
    "min_width",
    "align",
    "markup",
    "instance",
)

# Output fields copied verbatim into every rendered item
PASSTHROUGH_FIELDS: Tuple[str, ...] = (
    "border_top",
    "border_right",
    "border_bottom",
    "border_left",
    "urgent",
    "separator",
    "separator_block_width",
)


class SymbolList(BaseModel):
    """Named, ordered list of glyphs."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    name: str = Field(..., min_length=1, description="List name referenced from templates")
    symbols: Tuple[str, ...] = Field(default=(), description="Glyphs from lowest to highest reading")


class OutputTemplate(BaseModel):
    """Per-field templates for a block's rendered item."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    full_text: str = Field("{{ Text }}", description="Main text template")
    short_text: Optional[str] = None
    color: Optional[str] = None
    background: Optional[str] = None
    border: Optional[str] = None
    min_width: Optional[Union[int, str]] = None
    align: Optional[str] = None
    markup: Optional[str] = None
    instance: Optional[str] = None

    border_top: Optional[int] = None
    border_right: Optional[int] = None
    border_bottom: Optional[int] = None
    border_left: Optional[int] = None
    urgent: Optional[bool] = None
    separator: bool = True
    separator_block_width: int = 9

    @model_validator(mode="before")
    @classmethod
    def reject_name(cls, data: Any) -> Any:
        """The item name always comes from the block."""
        if isinstance(data, dict) and "name" in data:
            raise ValueError("'name' is assigned from the block name and cannot be set in output")
        return data

    def templates(self) -> List[Tuple[str, str]]:
        """Return (field, template) pairs for every set templated field, in rendering order."""
        result = []
        for field_name in TEMPLATED_FIELDS:
            value = getattr(self, field_name)
            if isinstance(value, str):
                result.append((field_name, value))
        return result

    def literals(self) -> Dict[str, Any]:
        """Return the set pass-through fields, plus a numeric min_width."""
        values = {name: getattr(self, name) for name in PASSTHROUGH_FIELDS}
        if isinstance(self.min_width, int):
            values["min_width"] = self.min_width
        return {k: v for k, v in values.items() if v is not None}


class Handler(BaseModel):
    """Command or script bound to a mouse button on a block."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    interpreter: Optional[str] = Field(None, description="Launcher; defaults to the block's interpreter")
    script: Optional[str] = None
    command: Optional[str] = None

    @model_validator(mode="after")
    def validate_payload(self):
        """Exactly one of script or command must be given."""
        if (self.script is None) == (self.command is None):
            raise ValueError("handler needs exactly one of 'script' or 'command'")
        return self


class Block(BaseModel):
    """One status item backed by an external script or command."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    name: str = Field(..., min_length=1, description="Block identifier, used for click routing")
    interval: int = Field(1, ge=0, description="Advisory refresh interval in seconds")
    interpreter: str = Field("", description="Launcher plus fixed arguments, e.g. 'awk -e'")
    script: Optional[str] = None
    command: Optional[str] = None
    output: OutputTemplate = Field(default_factory=OutputTemplate)
    mouse_events: Dict[str, Handler] = Field(default_factory=dict)
    on_click: Optional[Handler] = Field(None, description="Handler for buttons without a specific entry")

    @model_validator(mode="before")
    @classmethod
    def accept_format_shorthand(cls, data: Any) -> Any:
        """Treat a top-level 'format' template as output.full_text."""
        if not isinstance(data, dict) or "format" not in data:
            return data
        data = dict(data)
        template = data.pop("format")
        output = dict(data.get("output") or {})
        if "full_text" in output:
            raise ValueError("use either 'format' or 'output.full_text', not both")
        output["full_text"] = template
        data["output"] = output
        return data

    @field_validator("mouse_events")
    @classmethod
    def validate_buttons(cls, v: Dict[str, Handler]) -> Dict[str, Handler]:
        """Mouse event keys must be known button names."""
        for key in v:
            if MouseButton.from_display_name(key) is None:
                valid = ", ".join(b.display_name for b in MouseButton if b is not MouseButton.OTHER)
                raise ValueError(f"unknown mouse button '{key}' (expected one of: {valid})")
        return v

    @model_validator(mode="after")
    def validate_payload(self):
        """Exactly one of script or command must be given."""
        if (self.script is None) == (self.command is None):
            raise ValueError(f"block '{self.name}' needs exactly one of 'script' or 'command'")
        return self

    @property
    def has_handlers(self) -> bool:
        return bool(self.mouse_events) or self.on_click is not None

    def handler_for(self, button: MouseButton) -> Optional[Handler]:
        """Return the handler for a button, falling back to on_click."""
        handler = self.mouse_events.get(button.display_name)
        if handler is None:
            handler = self.on_click
        return handler


class Config(BaseModel):
    """Complete status generator configuration."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    separator: str = DEFAULT_SEPARATOR
    stop_signal: Optional[int] = Field(None, ge=0, description="Signal the host sends to pause output")
    cont_signal: Optional[int] = Field(None, ge=0, description="Signal the host sends to resume output")
    symbol_lists: Tuple[SymbolList, ...] = ()
    blocks: Tuple[Block, ...] = ()

    @field_validator("separator", mode="before")
    @classmethod
    def default_separator(cls, v: Any) -> Any:
        return v or DEFAULT_SEPARATOR

    @field_validator("stop_signal", "cont_signal")
    @classmethod
    def unset_zero_signal(cls, v: Optional[int]) -> Optional[int]:
        """A signal number of 0 means 'not configured'."""
        return v or None

    @property
    def click_events(self) -> bool:
        """True iff any block declares at least one mouse handler."""
        return any(block.has_handlers for block in self.blocks)

    def find_block(self, name: str) -> Optional[Block]:
        """Find a block by exact name; the first declared block wins on duplicates."""
        for block in self.blocks:
            if block.name == name:
                return block
        return None

    def find_symbol_list(self, name: str) -> Optional[Tuple[str, ...]]:
        for symbol_list in self.symbol_lists:
            if symbol_list.name == name:
                return symbol_list.symbols
        return None

    def duplicate_block_names(self) -> List[str]:
        seen = set()
        duplicates = []
        for block in self.blocks:
            if block.name in seen and block.name not in duplicates:
                duplicates.append(block.name)
            seen.add(block.name)
        return duplicates


def parse_config(data: Any, source: str = "<config>") -> Config:
    """
    Validate a decoded configuration document.

    Args:
        data: Parsed YAML document
        source: Name used in error messages

    Returns:
        Validated Config

    Raises:
        ConfigError: If the document does not match the schema
    """
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"{source}: top level must be a mapping", context={"source": source})

    try:
        config = Config.model_validate(data)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or '<root>'}: {err['msg']}" for err in e.errors()
        )
        raise ConfigError(f"{source}: {problems}", context={"source": source}) from e

    for name in config.duplicate_block_names():
        logger.warning(f"Duplicate block name '{name}': clicks are routed to the first block with this name")

    return config


def load_config(path: Union[str, Path]) -> Config:
    """
    Load and validate a YAML configuration file.

    Args:
        path: Path to the configuration file

    Returns:
        Validated Config

    Raises:
        ConfigError: If the file cannot be read, parsed or validated
    """
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"cannot read {path}: {e}", context={"source": str(path)}) from e

    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ConfigError(f"{path}: invalid YAML: {e}", context={"source": str(path)}) from e

    config = parse_config(data, source=str(path))
    logger.info(f"Loaded {len(config.blocks)} blocks from {path}")
    return config
