"""i3bar protocol writer.

Protocol: https://i3wm.org/docs/i3bar-protocol.html

The status line is one endless JSON array: a header object on its own line,
then ``[``, then one array of items per update, each after the first
preceded by a comma. The outer array is never closed while running.
"""

import json
import logging
import threading
from typing import Iterable, Optional, TextIO

from .models import RenderedItem

logger = logging.getLogger(__name__)

PROTOCOL_VERSION = 1


class ProtocolWriter:
    """Streams the header and successive snapshots to the bar host."""

    def __init__(self, stream: TextIO):
        self.stream = stream
        self._lock = threading.Lock()
        self._header_written = False
        self._snapshots_written = 0

    @property
    def snapshots_written(self) -> int:
        return self._snapshots_written

    def _write(self, data: str) -> None:
        self.stream.write(data)
        self.stream.flush()

    def write_header(
        self,
        click_events: bool,
        stop_signal: Optional[int] = None,
        cont_signal: Optional[int] = None,
    ) -> None:
        """Print the protocol header line and open the infinite array."""
        header = {"version": PROTOCOL_VERSION}
        if stop_signal:
            header["stop_signal"] = stop_signal
        if cont_signal:
            header["cont_signal"] = cont_signal
        header["click_events"] = click_events

        with self._lock:
            if self._header_written:
                raise RuntimeError("protocol header already written")
            self._write(json.dumps(header) + "\n")
            self._write("[\n")
            self._header_written = True
        logger.info(f"Protocol header written (click_events={click_events})")

    def write_snapshot(self, items: Iterable[RenderedItem]) -> None:
        """Append one status line to the open array."""
        payload = json.dumps(
            [item.to_json() for item in items],
            ensure_ascii=False,
            separators=(",", ":"),
        )
        with self._lock:
            if not self._header_written:
                raise RuntimeError("snapshot written before protocol header")
            if self._snapshots_written:
                self._write("," + payload)
            else:
                self._write(payload)
            self._snapshots_written += 1
