"""lebar status generator using the i3bar protocol.

Runs user-defined scripts ("blocks") on a fixed tick, renders their output
through Jinja2 templates, and streams JSON status lines to i3bar/swaybar.
When any block declares mouse handlers, click events are read from stdin
and dispatched on a background thread.

Protocol: https://i3wm.org/docs/i3bar-protocol.html

Usage:
    lebar ~/.config/lebar/config.yaml
    lebar config.yaml --tick 2 --log-level DEBUG --log-file -
"""

import argparse
import logging
import signal
import sys
from typing import Optional, TextIO

from . import __version__
from .click_handler import ClickHandler, ClickListener
from .config import Config, load_config
from .errors import ConfigError
from .formatter import FormatEngine
from .protocol import ProtocolWriter
from .runner import DEFAULT_TIMEOUT, ProcessRunner
from .scheduler import DEFAULT_TICK, BlockScheduler

logger = logging.getLogger(__name__)

DEFAULT_LOG_FILE = "/tmp/lebar.log"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: str = "INFO", log_file: str = DEFAULT_LOG_FILE) -> logging.Logger:
    """Configure package-level logging.

    stdout carries the bar protocol, so logs go to a file by default.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Path of the log file, or "-" for stderr

    Returns:
        Configured logger for the lebar package
    """
    package_logger = logging.getLogger("lebar")
    package_logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    # Remove existing handlers to avoid duplicates
    package_logger.handlers.clear()

    if log_file == "-":
        handler: logging.Handler = logging.StreamHandler(sys.stderr)
    else:
        handler = logging.FileHandler(log_file)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    package_logger.addHandler(handler)

    return package_logger


class StatusGenerator:
    """Main status generator: wires the scheduler, writer and click listener."""

    def __init__(
        self,
        config: Config,
        stdout: TextIO = None,
        stdin: TextIO = None,
        tick: float = DEFAULT_TICK,
        timeout: float = DEFAULT_TIMEOUT,
        runner: Optional[ProcessRunner] = None,
    ):
        """Initialize status generator.

        Args:
            config: Loaded configuration
            stdout: Stream for the bar protocol (defaults to sys.stdout)
            stdin: Stream carrying click events (defaults to sys.stdin)
            tick: Seconds between updates
            timeout: Deadline for each block and click handler process
            runner: Process runner (shared by blocks and handlers)
        """
        self.config = config
        self.stdin = stdin if stdin is not None else sys.stdin
        self.runner = runner or ProcessRunner()
        self.writer = ProtocolWriter(stdout if stdout is not None else sys.stdout)
        self.scheduler = BlockScheduler(
            config,
            self.runner,
            FormatEngine(config),
            self.writer,
            tick=tick,
            block_timeout=timeout,
        )
        self.click_handler = ClickHandler(config, self.runner, timeout=timeout)
        self.click_thread: Optional[ClickListener] = None

        logger.info("Status generator initialized")

    def _on_input_closed(self) -> None:
        logger.info("Host closed the click event stream, shutting down")
        self.scheduler.stop()

    def start_click_listener(self) -> None:
        """Start the click event listener thread if any block has handlers."""
        if not self.config.click_events:
            logger.info("No mouse handlers configured, click events disabled")
            return
        self.click_thread = ClickListener(self.click_handler, self.stdin, on_close=self._on_input_closed)
        self.click_thread.start()

    def install_signal_handlers(self) -> None:
        """Stop on SIGINT/SIGTERM; pause/resume on the configured host signals."""

        def stop_handler(signum, frame):
            logger.info(f"Received signal {signum}, shutting down...")
            self.scheduler.stop()

        signal.signal(signal.SIGINT, stop_handler)
        signal.signal(signal.SIGTERM, stop_handler)

        for signum, action in (
            (self.config.stop_signal, self.scheduler.pause),
            (self.config.cont_signal, self.scheduler.resume),
        ):
            if not signum:
                continue
            try:
                signal.signal(signum, lambda _signum, _frame, action=action: action())
            except (OSError, ValueError) as e:
                # SIGSTOP cannot be caught; the kernel suspends us instead
                logger.warning(f"Cannot handle signal {signum}: {e}")

    def run(self) -> None:
        """Main loop: header, click listener, then ticks until stopped."""
        self.writer.write_header(
            self.config.click_events,
            stop_signal=self.config.stop_signal,
            cont_signal=self.config.cont_signal,
        )
        self.start_click_listener()

        try:
            self.scheduler.run()
        except KeyboardInterrupt:
            logger.info("Shutting down status generator")


def parse_args(argv: Optional[list] = None) -> argparse.Namespace:
    """Parse command-line arguments.

    Args:
        argv: Command-line arguments. Defaults to sys.argv[1:].

    Returns:
        Parsed arguments namespace.
    """
    parser = argparse.ArgumentParser(
        prog="lebar",
        description="Script-driven status line generator for i3bar and swaybar",
    )
    parser.add_argument("config", help="Path to the YAML configuration file")
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "--tick",
        type=float,
        default=DEFAULT_TICK,
        metavar="SECONDS",
        help=f"Seconds between status updates (default: {DEFAULT_TICK})",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=DEFAULT_TIMEOUT,
        metavar="SECONDS",
        help=f"Deadline for each block and click handler (default: {DEFAULT_TIMEOUT})",
    )
    parser.add_argument(
        "--log-file",
        default=DEFAULT_LOG_FILE,
        metavar="PATH",
        help=f"Log file, '-' for stderr (default: {DEFAULT_LOG_FILE})",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default="INFO",
        help="Logging level (default: INFO)",
    )
    parser.add_argument(
        "--check",
        action="store_true",
        help="Validate the configuration and exit",
    )

    args = parser.parse_args(argv)
    if args.tick <= 0:
        parser.error("--tick must be positive")
    if args.timeout <= 0:
        parser.error("--timeout must be positive")
    return args


def main(argv: Optional[list] = None) -> int:
    """Entry point for the status generator.

    Returns:
        Exit code (0 for normal shutdown, 1 for configuration errors)
    """
    args = parse_args(argv)

    try:
        configure_logging(args.log_level, args.log_file)
    except OSError as e:
        print(f"lebar: cannot open log file {args.log_file}: {e}", file=sys.stderr)
        return 1

    try:
        config = load_config(args.config)
    except ConfigError as e:
        logger.error(f"Configuration error: {e}")
        print(f"lebar: {e.message}", file=sys.stderr)
        return 1

    if args.check:
        print(f"{args.config}: {len(config.blocks)} blocks OK")
        return 0

    generator = StatusGenerator(config, tick=args.tick, timeout=args.timeout)
    generator.install_signal_handlers()
    try:
        generator.run()
    except OSError as e:
        # stdout closed by the host
        logger.error(f"Output error: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
