"""Centralized configuration paths and constants for i3-hotplug-daemon.

Single source of truth for file paths and timing defaults used across the
daemon.
"""

from pathlib import Path
from typing import Final


class ConfigPaths:
    """Centralized configuration paths.

    All paths are computed once at import time based on user's home directory.
    """

    HOME: Final[Path] = Path.home()
    I3_CONFIG_DIR: Final[Path] = HOME / ".config" / "i3"

    CONFIG_FILE: Final[Path] = I3_CONFIG_DIR / "hotplug-daemon.json"


class HotplugDefaults:
    """Defaults for hotplug handling."""

    PRIMARY_OUTPUT: Final[str] = "HDMI-A-0"

    # Delay between the last raw udev event and the layout pass
    LAYOUT_DEBOUNCE_MS: Final[int] = 500

    # Delay between applying the layout and snapshotting i3 again
    SETTLE_DELAY_MS: Final[int] = 500

    XRANDR_PATH: Final[str] = "xrandr"
    PROBE_TIMEOUT_SECONDS: Final[float] = 5.0

    CONNECT_ATTEMPTS: Final[int] = 10

    # Config file watcher debounce
    CONFIG_RELOAD_DEBOUNCE_MS: Final[int] = 200


class UdevFilter:
    """udev matching for display-controller hotplug events."""

    SUBSYSTEM: Final[str] = "drm"
    DEVICE_TYPE: Final[str] = "drm_minor"


SYSLOG_IDENTIFIER: Final[str] = "i3-hotplug-daemon"
