"""Click event handling for status bar interactions."""

import json
import logging
import threading
from typing import Callable, Optional, TextIO

from .config import Block, Config
from .errors import EventParseError, LebarError
from .models import ClickEvent
from .runner import DEFAULT_TIMEOUT, Invocation, ProcessRunner

logger = logging.getLogger(__name__)


def parse_record(line: str) -> Optional[ClickEvent]:
    """
    Parse one line of the host's click stream.

    The host sends an endless JSON array, so lines may carry a leading comma
    or the opening bracket. Only the outermost {...} span is decoded.

    Returns:
        ClickEvent, or None for lines without an object ('[', blank lines)

    Raises:
        EventParseError: If the object is not valid JSON or not a click event
    """
    raw = line.lstrip(", \t\r\n")
    start = raw.find("{")
    end = raw.rfind("}")
    if start == -1 or end < start:
        return None

    raw = raw[start:end + 1]
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise EventParseError(f"invalid click event JSON: {e}", context={"record": raw}) from e
    return ClickEvent.from_json(data)


class ClickHandler:
    """Routes click events to block handlers and runs them."""

    def __init__(self, config: Config, runner: ProcessRunner, timeout: float = DEFAULT_TIMEOUT):
        """Initialize click handler.

        Args:
            config: Loaded configuration (read-only)
            runner: Process runner used to launch handlers
            timeout: Seconds before a handler is killed
        """
        self.config = config
        self.runner = runner
        self.timeout = timeout

    def find_block(self, name: str) -> Optional[Block]:
        return self.config.find_block(name)

    def handle_click(self, event: ClickEvent) -> bool:
        """Process a click event and launch the matching handler.

        Args:
            event: Click event from the bar host

        Returns:
            True if a handler was run (successfully or not)
        """
        block = self.find_block(event.name)
        if block is None:
            logger.debug(f"No block found for click on '{event.name}'")
            return False

        handler = block.handler_for(event.button)
        if handler is None:
            logger.debug(f"No handler for {event.button.display_name or event.button_code} on block {block.name}")
            return False

        env = {
            "BUTTON": event.button.display_name,
            "X": str(event.x),
            "Y": str(event.y),
        }
        try:
            output = self.runner.run(Invocation.for_handler(handler, block), timeout=self.timeout, env=env)
        except LebarError as e:
            logger.error(f"Click handler for block {block.name} failed: {e}")
        else:
            logger.info(f"Click handler for block {block.name} ({env['BUTTON']}) finished")
            if output:
                logger.debug(f"Click handler output for {block.name}: {output}")
        return True

    def listen(self, stream: TextIO) -> None:
        """Read click events until the stream closes."""
        logger.info("Click event listener started")
        for line in stream:
            try:
                event = parse_record(line)
            except EventParseError as e:
                logger.warning(f"Skipping click record: {e}")
                continue
            if event is None:
                continue
            self.handle_click(event)
        logger.info("Click event stream closed")


class ClickListener(threading.Thread):
    """Background thread feeding stdin records to a ClickHandler.

    Calls ``on_close`` once the stream reaches EOF.
    """

    def __init__(self, handler: ClickHandler, stream: TextIO, on_close: Optional[Callable[[], None]] = None):
        super().__init__(name="lebar-click-listener", daemon=True)
        self.handler = handler
        self.stream = stream
        self.on_close = on_close

    def run(self) -> None:
        try:
            self.handler.listen(self.stream)
        except Exception as e:
            logger.error(f"Click event listener error: {e}", exc_info=True)
        finally:
            if self.on_close is not None:
                self.on_close()
