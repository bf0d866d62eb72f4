"""Symbol resolver: maps a numeric reading onto a glyph ramp."""

import math
from typing import Any, Optional, Sequence

DEFAULT_SYMBOLS = ("🟦", "🟩", "🟨", "🟫", "🟥")
DEFAULT_OVERFLOW_SYMBOLS = ("⚠️", "💥", "🆘")

UNKNOWN_SYMBOL = "?"


def parse_reading(raw_value: Any) -> Optional[float]:
    """Parse '42', '42.5%' or 42 into a float; None if not a number."""
    text = str(raw_value).strip()
    if text.endswith("%"):
        text = text[:-1].strip()
    try:
        value = float(text)
    except ValueError:
        return None
    if math.isnan(value):
        return None
    return value


def _parse_scale(scale: Any) -> float:
    try:
        value = float(scale)
    except (TypeError, ValueError):
        return 1.0
    if not value > 0 or math.isinf(value):
        return 1.0
    return value


def _pick(symbols: Sequence[str], fraction: float) -> str:
    last = len(symbols) - 1
    if math.isinf(fraction):
        index = last if fraction > 0 else 0
    else:
        index = math.floor(fraction * last)
    return symbols[max(0, min(last, index))]


def resolve_symbol(
    raw_value: Any,
    symbols: Optional[Sequence[str]] = None,
    overflow: Optional[Sequence[str]] = None,
    scale: Any = 1.0,
) -> str:
    """
    Pick the glyph for a reading.

    Readings up to 100 (after dividing by scale) index into ``symbols``;
    readings above 100 index into ``overflow`` and saturate at its last
    glyph. Empty or missing lists fall back to the built-in ramps.

    Returns:
        The glyph, or "?" when the reading is not a number
    """
    value = parse_reading(raw_value)
    if value is None:
        return UNKNOWN_SYMBOL

    symbols = symbols or DEFAULT_SYMBOLS
    overflow = overflow or DEFAULT_OVERFLOW_SYMBOLS

    effective = value / _parse_scale(scale)
    if effective <= 100:
        return _pick(symbols, effective / 100)
    return _pick(overflow, effective / 100)


class SymbolTable:
    """Resolves symbol list references against a configuration.

    Exposed to templates as ``Symbol(value, list?, overflow_or_scale?, scale?)``
    where a list argument is either a configured list name or a literal list.
    """

    def __init__(self, config):
        self.config = config

    def lookup(self, ref: Any) -> Optional[Sequence[str]]:
        """Resolve a name or literal list; None means 'use the default'."""
        if ref is None:
            return None
        if isinstance(ref, str):
            return self.config.find_symbol_list(ref) or None
        if isinstance(ref, (list, tuple)):
            return [str(glyph) for glyph in ref] or None
        return None

    def symbol(self, *args: Any) -> str:
        if not 1 <= len(args) <= 4:
            raise TypeError(f"Symbol() takes 1 to 4 arguments ({len(args)} given)")

        value = args[0]
        symbols = self.lookup(args[1]) if len(args) > 1 else None
        overflow = None
        scale: Any = 1.0

        if len(args) > 2:
            third = args[2]
            if isinstance(third, (int, float)) and not isinstance(third, bool):
                scale = third
            else:
                overflow = self.lookup(third)
        if len(args) > 3:
            scale = args[3]

        return resolve_symbol(value, symbols, overflow, scale)

    __call__ = symbol
