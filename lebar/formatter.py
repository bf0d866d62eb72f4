"""Format engine: renders a block's output templates with Jinja2."""

import logging
import re
from typing import Any, Dict, Tuple, Union

import jinja2

from .config import Block, Config
from .errors import FormatError
from .models import RenderedItem
from .symbols import SymbolTable

logger = logging.getLogger(__name__)


# Sprig-style helpers: the string being operated on is the last argument,
# matching sprig argument order.

def _has_prefix(prefix: str, s: str) -> bool:
    return str(s).startswith(str(prefix))


def _has_suffix(suffix: str, s: str) -> bool:
    return str(s).endswith(str(suffix))


def _trim_prefix(prefix: str, s: str) -> str:
    s, prefix = str(s), str(prefix)
    return s[len(prefix):] if prefix and s.startswith(prefix) else s


def _trim_suffix(suffix: str, s: str) -> str:
    s, suffix = str(s), str(suffix)
    return s[:-len(suffix)] if suffix and s.endswith(suffix) else s


def _trim_all(cutset: str, s: str) -> str:
    return str(s).strip(str(cutset))


def _split(sep: str, s: str) -> list:
    return str(s).split(str(sep))


def _splitn(sep: str, n: int, s: str) -> list:
    return str(s).split(str(sep), int(n) - 1) if int(n) > 0 else str(s).split(str(sep))


def _default(fallback: Any, value: Any = None) -> Any:
    return value if value else fallback


def _number(value: Any) -> Union[int, float]:
    """Coerce a template value to int or float, tolerating a trailing '%'."""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value
    text = str(value).strip().rstrip("%")
    try:
        return int(text)
    except ValueError:
        return float(text)


def _max(first: Any, *rest: Any) -> Union[int, float]:
    return max(_number(v) for v in (first,) + rest)


def _min(first: Any, *rest: Any) -> Union[int, float]:
    return min(_number(v) for v in (first,) + rest)


def _round(value: Any, ndigits: int = 0) -> Union[int, float]:
    ndigits = int(ndigits)
    rounded = round(float(_number(value)), ndigits)
    return int(rounded) if ndigits <= 0 else rounded


# Go's %v (with optional flags/width) maps to %s; %% stays literal
_GO_VERB = re.compile(r"%([-+ #0]*\d*(?:\.\d+)?)([v%])")


def _printf(fmt: str, *args: Any) -> str:
    def convert(match: "re.Match") -> str:
        flags, verb = match.groups()
        if verb == "%":
            return match.group(0)
        return f"%{flags}s"

    return _GO_VERB.sub(convert, str(fmt)) % args


TEMPLATE_FUNCTIONS: Dict[str, Any] = {
    "hasPrefix": _has_prefix,
    "hasSuffix": _has_suffix,
    "trimPrefix": _trim_prefix,
    "trimSuffix": _trim_suffix,
    "trim": lambda s: str(s).strip(),
    "trimAll": _trim_all,
    "split": _split,
    "splitn": _splitn,
    "contains": lambda sub, s: str(sub) in str(s),
    "replace": lambda old, new, s: str(s).replace(str(old), str(new)),
    "upper": lambda s: str(s).upper(),
    "lower": lambda s: str(s).lower(),
    "title": lambda s: str(s).title(),
    "repeat": lambda n, s: str(s) * int(n),
    "join": lambda sep, items: str(sep).join(str(i) for i in items),
    "default": _default,
    "atoi": lambda s: int(str(s).strip()),
    "float64": lambda s: float(str(s).strip().rstrip("%")),
    "add": lambda a, b: a + b,
    "sub": lambda a, b: a - b,
    "mul": lambda a, b: a * b,
    "div": lambda a, b: a / b,
    "mod": lambda a, b: a % b,
    "max": _max,
    "min": _min,
    "round": _round,
    "printf": _printf,
}


def create_environment() -> jinja2.Environment:
    """Build the Jinja2 environment shared by all blocks."""
    env = jinja2.Environment(
        undefined=jinja2.StrictUndefined,
        autoescape=False,
        keep_trailing_newline=False,
    )
    env.globals.update(TEMPLATE_FUNCTIONS)
    return env


class FormatEngine:
    """Renders blocks into RenderedItems.

    Templates are compiled on first use and cached per (block, field).
    """

    def __init__(self, config: Config, env: jinja2.Environment = None):
        self.config = config
        self.env = env or create_environment()
        self.symbols = SymbolTable(config)
        self._symbol_lists = {sl.name: list(sl.symbols) for sl in config.symbol_lists}
        self._cache: Dict[Tuple[str, int, str], jinja2.Template] = {}

    def _compile(self, block: Block, field_name: str, source: str) -> jinja2.Template:
        key = (block.name, id(block), field_name)
        template = self._cache.get(key)
        if template is None:
            try:
                template = self.env.from_string(source)
            except jinja2.TemplateSyntaxError as e:
                raise FormatError(
                    f"block '{block.name}': {field_name} template line {e.lineno}: {e.message}",
                    context={"block": block.name, "field": field_name},
                ) from e
            self._cache[key] = template
        return template

    def context(self, block: Block, text: str) -> Dict[str, Any]:
        return {
            "Text": text,
            "Name": block.name,
            "Separator": self.config.separator,
            "SymbolLists": self._symbol_lists,
            "Symbol": self.symbols,
        }

    def render(self, block: Block, text: str) -> RenderedItem:
        """
        Render every templated output field of a block.

        Args:
            block: Block being rendered
            text: Trimmed output captured from the block's process

        Returns:
            RenderedItem named after the block

        Raises:
            FormatError: If any field fails to compile or render
        """
        ctx = self.context(block, text)
        fields: Dict[str, Any] = {}

        for field_name, source in block.output.templates():
            template = self._compile(block, field_name, source)
            try:
                fields[field_name] = template.render(ctx)
            except Exception as e:
                raise FormatError(
                    f"block '{block.name}': {field_name} template failed: {e}",
                    context={"block": block.name, "field": field_name},
                ) from e

        min_width = fields.get("min_width")
        if isinstance(min_width, str) and min_width.strip().isdigit():
            fields["min_width"] = int(min_width.strip())

        fields.update(block.output.literals())
        fields["name"] = block.name

        logger.debug(f"Rendered block {block.name}: {fields['full_text']!r}")
        return RenderedItem(**fields)
