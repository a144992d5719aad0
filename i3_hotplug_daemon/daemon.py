"""Main daemon entry point with systemd integration.

This module wires the i3 session, reconciliation store, udev monitor and
hotplug orchestrator together, and provides systemd integration (sd_notify,
watchdog, journald logging).
"""

import argparse
import asyncio
import contextlib
import json
import logging
import os
import signal
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

try:
    from systemd import journal, daemon as sd_daemon
    SYSTEMD_AVAILABLE = True
except ImportError:
    SYSTEMD_AVAILABLE = False

from . import __version__
from .config import ConfigFileWatcher, load_config
from .connection import I3Session
from .constants import ConfigPaths, SYSLOG_IDENTIFIER
from .hotplug_monitor import UdevHotplugMonitor
from .models import HotplugConfig
from .orchestrator import HotplugOrchestrator
from .output_prober import OutputProber
from .store import ReconciliationStore

logger = logging.getLogger(__name__)


@contextlib.contextmanager
def _suppress_stderr_fd():
    """Suppress stderr at the file descriptor level.

    systemd-python writes directly to file descriptor 2, bypassing sys.stderr.
    """
    stderr_fd = sys.stderr.fileno()
    saved_stderr_fd = os.dup(stderr_fd)

    devnull_fd = os.open(os.devnull, os.O_WRONLY)
    os.dup2(devnull_fd, stderr_fd)
    os.close(devnull_fd)

    try:
        yield
    finally:
        os.dup2(saved_stderr_fd, stderr_fd)
        os.close(saved_stderr_fd)


class DaemonHealthMonitor:
    """Manages systemd health notifications and watchdog pings."""

    def __init__(self) -> None:
        self.watchdog_interval: Optional[float] = None
        self._setup_watchdog()

    def _setup_watchdog(self) -> None:
        """Detect watchdog interval from systemd environment."""
        if not SYSTEMD_AVAILABLE:
            return

        watchdog_usec = os.environ.get("WATCHDOG_USEC")
        if watchdog_usec:
            # Ping at 1/3 of the systemd timeout
            self.watchdog_interval = int(watchdog_usec) / 3_000_000
            logger.info(f"Systemd watchdog enabled: {self.watchdog_interval:.1f}s interval (1/3 of timeout)")
        else:
            logger.debug("Systemd watchdog not configured")

    def _notify(self, status: str) -> None:
        if not SYSTEMD_AVAILABLE:
            return
        with _suppress_stderr_fd():
            sd_daemon.notify(status)

    def notify_ready(self) -> None:
        """Send READY=1 signal to systemd."""
        self._notify("READY=1")
        logger.info("Daemon ready")

    def notify_stopping(self) -> None:
        """Send STOPPING=1 signal to systemd."""
        self._notify("STOPPING=1")

    async def watchdog_loop(self) -> None:
        """Background task that sends watchdog pings."""
        if not self.watchdog_interval:
            return

        logger.info(f"Starting watchdog loop (interval: {self.watchdog_interval}s)")
        while True:
            await asyncio.sleep(self.watchdog_interval)
            self._notify("WATCHDOG=1")


class HotplugDaemon:
    """Main daemon class."""

    def __init__(self, config_file: Path, overrides: Optional[Dict[str, Any]] = None) -> None:
        """Initialize daemon.

        Args:
            config_file: JSON config path
            overrides: CLI values layered over the config file
        """
        self.config_file = config_file
        self.overrides = overrides or {}
        self.config: HotplugConfig = HotplugConfig()
        self.session: Optional[I3Session] = None
        self.store: Optional[ReconciliationStore] = None
        self.prober: Optional[OutputProber] = None
        self.orchestrator: Optional[HotplugOrchestrator] = None
        self.hotplug_monitor: Optional[UdevHotplugMonitor] = None
        self.config_watcher: Optional[ConfigFileWatcher] = None
        self.health_monitor: Optional[DaemonHealthMonitor] = None
        self.shutdown_event = asyncio.Event()

    async def initialize(self) -> None:
        """Load config, connect to i3 and seed the store."""
        logger.info("Initializing i3 hotplug daemon...")

        self.config = load_config(self.config_file, self.overrides)
        logger.info(
            f"Primary output: {self.config.primary_output}, "
            f"position directive: {self.config.output_position or 'none'}"
        )

        self.health_monitor = DaemonHealthMonitor()

        self.session = I3Session()
        await self.session.connect_with_retry(self.config.connect_attempts)

        self.prober = OutputProber(self.config.xrandr_path, self.config.probe_timeout)

        self.store = ReconciliationStore()
        snapshot = await self.session.get_workspace_snapshot()
        await self.store.populate(snapshot or [])

        self.orchestrator = HotplugOrchestrator(self.session, self.store, self.prober, self.config)

        loop = asyncio.get_running_loop()
        self.hotplug_monitor = UdevHotplugMonitor(loop, self.orchestrator.trigger)

        self.config_watcher = ConfigFileWatcher(
            self.config_file,
            self._on_config_reload,
            current=self.config,
            overrides=self.overrides,
        )
        self.config_watcher.set_event_loop(loop)

        logger.info("Daemon initialization complete")

    def _on_config_reload(self, config: HotplugConfig) -> None:
        self.config = config
        if self.orchestrator:
            self.orchestrator.update_config(config)

    async def on_workspace_event(self, conn, event) -> None:
        """Keep the store current between hotplug passes."""
        change = getattr(event, "change", "?")
        logger.debug(f"Workspace event: {change}")
        await self.store.refresh(self.session, self.prober)

    async def register_event_handlers(self) -> None:
        self.session.on_workspace_event(self.on_workspace_event)
        await self.session.subscribe_events()

    async def run(self) -> None:
        """Start listeners and process i3 events until the connection ends."""
        self.hotplug_monitor.start()
        self.config_watcher.start()
        self.health_monitor.notify_ready()

        watchdog_task = asyncio.create_task(self.health_monitor.watchdog_loop())
        try:
            await self.session.main()
            logger.warning("i3 event loop ended")
        finally:
            watchdog_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await watchdog_task

    async def shutdown(self) -> None:
        """Stop listeners, cancel pending hotplug work and close i3."""
        logger.info("Shutting down daemon...")

        if self.health_monitor:
            self.health_monitor.notify_stopping()

        if self.hotplug_monitor:
            try:
                self.hotplug_monitor.stop()
            except Exception as e:
                logger.error(f"Error stopping udev monitor: {e}")

        if self.config_watcher:
            try:
                self.config_watcher.stop()
            except Exception as e:
                logger.error(f"Error stopping config watcher: {e}")

        if self.orchestrator:
            self.orchestrator.cancel()

        if self.session:
            try:
                self.session.close()
                logger.info("i3 connection closed")
            except Exception as e:
                logger.error(f"Error closing i3 connection: {e}")

        logger.info("Daemon shutdown complete")

    def diagnostics(self) -> Dict[str, Any]:
        """Snapshot of daemon state for the SIGUSR1 dump."""
        return {
            "pid": os.getpid(),
            "i3_connected": bool(self.session and self.session.is_connected),
            "config": self.config.model_dump(),
            "orchestrator": self.orchestrator.describe() if self.orchestrator else None,
            "tracked_workspaces": len(self.store) if self.store else 0,
            "workspaces": self.store.describe() if self.store else {},
        }

    def setup_signal_handlers(self) -> None:
        """Setup signal handlers for graceful shutdown and diagnostics."""
        loop = asyncio.get_running_loop()

        def shutdown_handler(signum, frame):
            logger.info(f"Received signal {signum}, initiating shutdown...")
            loop.call_soon_threadsafe(self.shutdown_event.set)

        def debug_handler(signum, frame):
            logger.info("=== DEBUG INFO (USR1) ===")
            try:
                logger.info(json.dumps(self.diagnostics(), indent=2, sort_keys=True))
            except Exception as e:
                logger.error(f"Error getting debug info: {e}")
            logger.info("======================")

        signal.signal(signal.SIGTERM, shutdown_handler)
        signal.signal(signal.SIGINT, shutdown_handler)
        signal.signal(signal.SIGUSR1, debug_handler)


def setup_logging(log_level: Optional[str] = None) -> None:
    """Setup logging to systemd journal or stderr."""
    log_level = (log_level or os.environ.get("LOG_LEVEL", "INFO")).upper()

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    if SYSTEMD_AVAILABLE:
        with _suppress_stderr_fd():
            handler = journal.JournalHandler(SYSLOG_IDENTIFIER=SYSLOG_IDENTIFIER)
    else:
        handler = logging.StreamHandler(sys.stderr)

    formatter = logging.Formatter(
        "%(levelname)s [%(name)s] %(message)s"
    )
    handler.setFormatter(formatter)
    root_logger.addHandler(handler)

    logger.info(f"Logging configured: level={log_level}")


def create_parser() -> argparse.ArgumentParser:
    """Create argument parser for the daemon."""
    parser = argparse.ArgumentParser(
        prog="i3-hotplug-daemon",
        description="Restore i3 workspaces to their monitor after display hotplug",
    )
    parser.add_argument(
        "-c",
        "--config",
        metavar="PATH",
        type=Path,
        default=ConfigPaths.CONFIG_FILE,
        help=f"JSON config file (default: {ConfigPaths.CONFIG_FILE})",
    )
    parser.add_argument(
        "--primary",
        metavar="OUTPUT",
        help="Output to make xrandr primary when connected",
    )
    parser.add_argument(
        "--position",
        metavar="OUTPUT:ARGS",
        help='Extra xrandr arguments for one output, e.g. "DVI-D-0:--right-of HDMI-A-0"',
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        type=str.upper,
        help="Log level (default: $LOG_LEVEL or INFO)",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"i3-hotplug-daemon {__version__}",
    )
    return parser


def cli_overrides(args: argparse.Namespace) -> Dict[str, Any]:
    return {
        "primary_output": args.primary,
        "output_position": args.position,
    }


async def main_async(args: argparse.Namespace) -> int:
    """Async main function.

    Returns:
        Exit code (0 = success, non-zero = error)
    """
    daemon = HotplugDaemon(args.config, cli_overrides(args))

    try:
        daemon.setup_signal_handlers()

        await daemon.initialize()
        await daemon.register_event_handlers()

        run_task = asyncio.create_task(daemon.run())
        shutdown_task = asyncio.create_task(daemon.shutdown_event.wait())

        done, pending = await asyncio.wait(
            [run_task, shutdown_task], return_when=asyncio.FIRST_COMPLETED
        )

        for task in pending:
            task.cancel()

        await daemon.shutdown()

        if run_task in done and run_task.exception() is not None:
            logger.error(f"Daemon stopped on error: {run_task.exception()}")
            return 1
        return 0

    except ConnectionError as e:
        logger.error(f"{e}")
        return 1
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        return 1


def main(argv: Optional[List[str]] = None) -> None:
    """Main entry point."""
    args = create_parser().parse_args(argv)

    setup_logging(args.log_level)

    logger.info("i3 Hotplug Daemon starting...")
    logger.info(f"PID: {os.getpid()}")
    logger.info(f"Config file: {args.config}")

    try:
        exit_code = asyncio.run(main_async(args))
        sys.exit(exit_code)

    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        sys.exit(0)


if __name__ == "__main__":
    main()
