"""Block scheduler: renders every block once per global tick."""

import logging
import threading
import time
from enum import Enum
from typing import List, Optional

from .config import Config
from .errors import LebarError
from .formatter import FormatEngine
from .models import RenderedItem
from .protocol import ProtocolWriter
from .runner import DEFAULT_TIMEOUT, Invocation, ProcessRunner

logger = logging.getLogger(__name__)

DEFAULT_TICK = 1.0


class SchedulerState(Enum):
    IDLE = "idle"
    RUNNING = "running"
    STOPPED = "stopped"


class BlockScheduler:
    """Drives one fixed-cadence tick for all blocks.

    Per-block ``interval`` values are advisory; every block runs on every
    tick. A tick emits a snapshot only when all blocks render; any block
    failure skips the whole tick.
    """

    def __init__(
        self,
        config: Config,
        runner: ProcessRunner,
        engine: FormatEngine,
        writer: ProtocolWriter,
        tick: float = DEFAULT_TICK,
        block_timeout: float = DEFAULT_TIMEOUT,
    ):
        if tick <= 0:
            raise ValueError("tick must be positive")
        self.config = config
        self.runner = runner
        self.engine = engine
        self.writer = writer
        self.tick = tick
        self.block_timeout = block_timeout
        self.state = SchedulerState.IDLE
        self._stop = threading.Event()
        self._paused = threading.Event()

    @property
    def paused(self) -> bool:
        return self._paused.is_set()

    def pause(self) -> None:
        """Stop emitting snapshots until resume() (host hid the bar)."""
        if not self._paused.is_set():
            logger.info("Scheduler paused")
        self._paused.set()

    def resume(self) -> None:
        if self._paused.is_set():
            logger.info("Scheduler resumed")
        self._paused.clear()

    def stop(self) -> None:
        """Ask the loop to exit; safe to call from any thread or signal handler."""
        self._stop.set()

    def render_block(self, block) -> RenderedItem:
        text = self.runner.run(Invocation.for_block(block), timeout=self.block_timeout)
        return self.engine.render(block, text)

    def run_tick(self) -> Optional[List[RenderedItem]]:
        """
        Render all blocks in declaration order and emit the snapshot.

        Returns:
            The emitted snapshot, or None if a block failed
        """
        snapshot: List[RenderedItem] = []
        for block in self.config.blocks:
            try:
                snapshot.append(self.render_block(block))
            except LebarError as e:
                logger.error(f"Block '{block.name}' failed, skipping update: {e}")
                return None

        self.writer.write_snapshot(snapshot)
        return snapshot

    def run(self) -> None:
        """Tick until stop() is called. The first tick runs immediately."""
        self.state = SchedulerState.RUNNING
        logger.info(f"Scheduler running {len(self.config.blocks)} blocks every {self.tick}s")

        next_tick = time.monotonic()
        try:
            while not self._stop.is_set():
                if not self._paused.is_set():
                    self.run_tick()

                # Drop ticks that a slow cycle overran instead of bursting
                next_tick += self.tick
                now = time.monotonic()
                if next_tick < now:
                    skipped = int((now - next_tick) // self.tick) + 1
                    next_tick += skipped * self.tick
                    logger.debug(f"Tick overran, skipped {skipped} tick(s)")

                self._stop.wait(next_tick - now)
        except Exception as e:
            logger.error(f"Fatal error in scheduler loop: {e}", exc_info=True)
            raise
        finally:
            self.state = SchedulerState.STOPPED
            logger.info("Scheduler stopped")
