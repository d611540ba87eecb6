"""
Sensor Reader - Main Entry Point.

Takes a snapshot of the machine's hardware inventory and live sensor
readings and prints it, once or on a fixed interval.
"""

import argparse
import asyncio
import logging
import math
import signal
import sys
from pathlib import Path
from typing import List, Optional, TextIO

from .core.config import Config, configure_logging, get_default_config_path
from .core.report_assembler import ReportAssembler, create_assembler
from .output.formatters import (
    FORMAT_JSON,
    FORMAT_PLAIN_TEXT,
    OutputFormatter,
    get_formatter,
)


logger = logging.getLogger(__name__)


class MonitoringService:
    """
    Drives report cycles and owns the sources' lifetime.

    Cycles never overlap: the next one starts only after the previous one
    was written and the interval elapsed.
    """

    def __init__(self, assembler: ReportAssembler, formatter: OutputFormatter, stream: Optional[TextIO] = None):
        self.assembler = assembler
        self.formatter = formatter
        self.stream = stream
        self._running = False
        self._stop_event: Optional[asyncio.Event] = None

    @property
    def running(self) -> bool:
        return self._running

    def run_once(self) -> bool:
        """Build and write one report. Returns False when nothing was written."""
        report = self.assembler.build()
        if report is None:
            logger.error("Could not build a hardware report for this cycle")
            return False

        self.formatter.write(report, self.stream or sys.stdout)
        return True

    async def run_continuous(self, interval: float):
        """Run cycles until stop() is called. A failed cycle is logged and skipped."""
        self._running = True
        self._stop_event = asyncio.Event()
        logger.info(f"Reporting every {interval} seconds")

        while self._running:
            try:
                self.run_once()
            except Exception as e:
                logger.error(f"Collection error: {e}")

            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=interval)
            except asyncio.TimeoutError:
                pass

    def stop(self):
        """Ask the continuous loop to exit after the current cycle."""
        logger.info("Stopping monitoring service...")
        self._running = False
        if self._stop_event is not None:
            self._stop_event.set()

    def close(self):
        self.assembler.close()


def _format_name(value: str) -> str:
    """Accept the format name in any case."""
    for name in (FORMAT_PLAIN_TEXT, FORMAT_JSON):
        if value.lower() == name.lower():
            return name
    raise argparse.ArgumentTypeError(
        f"invalid format '{value}' (choose from {FORMAT_PLAIN_TEXT}, {FORMAT_JSON})"
    )


def _positive_seconds(value: str) -> float:
    try:
        seconds = float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid interval '{value}'")
    if not math.isfinite(seconds) or seconds <= 0:
        raise argparse.ArgumentTypeError("interval must be a finite number greater than zero")
    return seconds


def parse_args(argv: Optional[List[str]] = None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="sensor-reader",
        description="Hardware inventory and live sensor snapshot",
    )

    mode = parser.add_mutually_exclusive_group()
    mode.add_argument(
        "--once",
        action="store_true",
        help="Take a single snapshot and exit (default)"
    )
    mode.add_argument(
        "--interval",
        type=_positive_seconds,
        default=None,
        metavar="SECONDS",
        help="Take a snapshot every SECONDS until interrupted"
    )

    parser.add_argument(
        "--format",
        type=_format_name,
        default=None,
        help=f"Output format: {FORMAT_PLAIN_TEXT} or {FORMAT_JSON} (default: {FORMAT_JSON})"
    )

    parser.add_argument(
        "-c", "--config",
        default=None,
        help="Path to configuration file (YAML)"
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging"
    )

    parser.add_argument(
        "--generate-config",
        action="store_true",
        help="Generate a sample configuration file"
    )

    return parser.parse_args(argv)


def load_config(args) -> Config:
    """Load configuration and apply command line overrides."""
    config_path = args.config or get_default_config_path()
    config = Config.from_yaml(config_path)

    if args.once:
        config.collection.interval_seconds = None
    elif args.interval is not None:
        config.collection.interval_seconds = args.interval
    if args.format:
        config.output.format = args.format
    if args.verbose:
        config.logging.level = "DEBUG"

    config.validate()
    return config


async def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = parse_args(argv)

    # Generate sample config if requested
    if args.generate_config:
        config = Config()
        config_path = "config/config.yaml"
        Path("config").mkdir(exist_ok=True)
        config.to_yaml(config_path)
        print(f"Generated sample configuration: {config_path}")
        return 0

    try:
        config = load_config(args)
        formatter = get_formatter(config.output.format, indent=config.output.indent)
    except ValueError as e:
        print(f"sensor-reader: configuration error: {e}", file=sys.stderr)
        return 2
    configure_logging(config.logging)

    service = MonitoringService(create_assembler(config), formatter)
    try:
        interval = config.collection.interval_seconds
        if interval is None:
            service.run_once()
            return 0

        # Setup signal handlers
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, service.stop)
            except (NotImplementedError, RuntimeError):
                # Not supported by the Windows event loop; Ctrl+C still raises KeyboardInterrupt
                pass

        await service.run_continuous(interval)
        return 0
    finally:
        service.close()


def run():
    """Entry point for the application."""
    try:
        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        print("\nShutdown complete", file=sys.stderr)


if __name__ == "__main__":
    run()
