"""Configuration loader for i3-hotplug-daemon.

Loads HotplugConfig from a JSON file, layers CLI overrides on top, and
watches the file so primary output and position changes apply without a
restart.
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from pydantic import ValidationError
from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from .constants import ConfigPaths, HotplugDefaults
from .models import HotplugConfig

logger = logging.getLogger(__name__)


def read_config_file(config_file: Path) -> Dict[str, Any]:
    """Read the raw JSON config.

    Args:
        config_file: Path to hotplug-daemon.json

    Returns:
        Parsed JSON object ({} if the file does not exist)

    Raises:
        ValueError: If the file is not valid JSON or not an object
    """
    if not config_file.exists():
        logger.info(f"Config file not found, using defaults: {config_file}")
        return {}

    try:
        with open(config_file) as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in {config_file}: {e.msg} at line {e.lineno}") from e

    if not isinstance(data, dict):
        raise ValueError(f"Config file {config_file} must contain a JSON object")

    return data


def load_config(
    config_file: Optional[Path] = None,
    overrides: Optional[Dict[str, Any]] = None,
    fallback: Optional[HotplugConfig] = None,
) -> HotplugConfig:
    """Load configuration from file with overrides applied.

    An unreadable or invalid file is logged and replaced by the fallback
    (defaults unless given), with overrides still applied.

    Args:
        config_file: JSON file (defaults to ~/.config/i3/hotplug-daemon.json)
        overrides: Values from the command line; None values are ignored
        fallback: Config used when the file is invalid

    Returns:
        HotplugConfig
    """
    config_file = config_file or ConfigPaths.CONFIG_FILE
    cli_values = {k: v for k, v in (overrides or {}).items() if v is not None}

    try:
        data = read_config_file(config_file)
        data.update(cli_values)
        config = HotplugConfig.model_validate(data)
    except (OSError, ValueError, ValidationError) as e:
        logger.error(f"Failed to load config from {config_file}: {e}")
        base = fallback.model_dump() if fallback else {}
        base.update(cli_values)
        config = HotplugConfig.model_validate(base)

    if config.output_position and config.position is None:
        logger.warning(f"Output position directive {config.output_position!r} is malformed, no position will be applied")

    logger.debug(f"Config: {config.model_dump_json()}")
    return config


class DebouncedReloadHandler(FileSystemEventHandler):
    """File system event handler with debounced reload callback.

    Editors save in bursts (write, rename, chmod); only the last event in a
    burst triggers the callback, on the asyncio loop.
    """

    def __init__(self, callback: Callable[[], None], debounce_ms: int, target_filename: str):
        """Initialize debounced reload handler.

        Args:
            callback: Function to call after debounce period
            debounce_ms: Debounce timeout in milliseconds
            target_filename: Only trigger on events for this filename
        """
        super().__init__()
        self.callback = callback
        self.debounce_seconds = debounce_ms / 1000
        self.target_filename = target_filename
        self._timer: Optional[asyncio.TimerHandle] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    def set_event_loop(self, loop: asyncio.AbstractEventLoop) -> None:
        self._loop = loop

    def _should_trigger(self, event) -> bool:
        if event.is_directory:
            return False
        event_path = getattr(event, "dest_path", None) or event.src_path
        return Path(event_path).name == self.target_filename

    def _schedule_callback(self) -> None:
        """Re-arm the debounce timer (loop thread)."""
        if self._timer is not None:
            self._timer.cancel()
        self._timer = self._loop.call_later(self.debounce_seconds, self._fire)

    def _fire(self) -> None:
        self._timer = None
        self.callback()

    def _dispatch_to_loop(self, event) -> None:
        if not self._should_trigger(event):
            return
        if self._loop is None:
            logger.warning("No event loop set for config reload handler, ignoring change")
            return
        # watchdog delivers events on its observer thread
        self._loop.call_soon_threadsafe(self._schedule_callback)

    def on_modified(self, event) -> None:
        self._dispatch_to_loop(event)

    def on_moved(self, event) -> None:
        self._dispatch_to_loop(event)

    def on_created(self, event) -> None:
        self._dispatch_to_loop(event)


class ConfigFileWatcher:
    """Reloads hotplug-daemon.json when it changes.

    Watches the parent directory since some editors use atomic save
    (create temp file + rename) which doesn't trigger inotify on the file itself.
    """

    def __init__(
        self,
        config_file: Path,
        on_reload: Callable[[HotplugConfig], None],
        current: HotplugConfig,
        overrides: Optional[Dict[str, Any]] = None,
        debounce_ms: int = HotplugDefaults.CONFIG_RELOAD_DEBOUNCE_MS,
    ) -> None:
        """Initialize config file watcher.

        Args:
            config_file: Path to hotplug-daemon.json
            on_reload: Receives every successfully reloaded config
            current: Config in effect now (kept if the file turns invalid)
            overrides: CLI values re-applied on every reload
            debounce_ms: Debounce timeout in milliseconds
        """
        self.config_file = config_file
        self.on_reload = on_reload
        self.current = current
        self.overrides = overrides or {}
        self.observer = Observer()
        self.handler = DebouncedReloadHandler(self.reload, debounce_ms, config_file.name)
        self._started = False

    def set_event_loop(self, loop: asyncio.AbstractEventLoop) -> None:
        self.handler.set_event_loop(loop)

    def reload(self) -> None:
        """Reload the file; keep the previous config if it is invalid."""
        logger.info(f"Config file changed, reloading {self.config_file}")
        config = load_config(self.config_file, self.overrides, fallback=self.current)
        if config == self.current:
            logger.debug("Config unchanged after reload")
            return
        self.current = config
        self.on_reload(config)

    def start(self) -> None:
        if self._started:
            logger.warning("Config file watcher already started")
            return

        watch_dir = self.config_file.parent
        if not watch_dir.is_dir():
            logger.info(f"Config directory {watch_dir} does not exist, live reload disabled")
            return

        self.observer.schedule(self.handler, str(watch_dir), recursive=False)
        self.observer.start()
        self._started = True

        logger.info(f"Started watching {self.config_file} for modifications")

    def stop(self) -> None:
        if not self._started:
            return

        self.observer.stop()
        self.observer.join(timeout=5.0)
        self._started = False

        logger.info(f"Stopped watching {self.config_file}")
