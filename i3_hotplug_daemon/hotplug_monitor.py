"""udev hotplug listener for display controllers.

pyudev's MonitorObserver reads the netlink socket on its own thread. Only
drm_minor devices are of interest; each matching event is handed to the
asyncio loop, where the orchestrator debounces it.
"""

import asyncio
import logging
from typing import Any, Callable, Optional

import pyudev

from .constants import UdevFilter

logger = logging.getLogger(__name__)


def is_display_event(device: Any) -> bool:
    """Check whether a udev device is a DRM minor (display controller) node."""
    return getattr(device, "device_type", None) == UdevFilter.DEVICE_TYPE


class UdevHotplugMonitor:
    """Forwards DRM hotplug events from udev to the event loop."""

    def __init__(
        self,
        loop: asyncio.AbstractEventLoop,
        on_hotplug: Callable[[], None],
        context: Optional[pyudev.Context] = None,
    ) -> None:
        """Initialize monitor.

        Args:
            loop: Event loop that on_hotplug runs on
            on_hotplug: Called on the loop thread once per matching event
            context: pyudev context (created if not given)
        """
        self.loop = loop
        self.on_hotplug = on_hotplug
        self.context = context or pyudev.Context()
        self.monitor = pyudev.Monitor.from_netlink(self.context)
        self.monitor.filter_by(UdevFilter.SUBSYSTEM)
        self.observer: Optional[pyudev.MonitorObserver] = None

    def handle_device(self, device: Any) -> None:
        """Observer thread callback."""
        if not is_display_event(device):
            return

        logger.info(
            f"Display hotplug event: {getattr(device, 'action', None)} "
            f"{getattr(device, 'sys_name', '?')}"
        )
        try:
            self.loop.call_soon_threadsafe(self.on_hotplug)
        except RuntimeError as e:
            # Loop already closed during shutdown
            logger.debug(f"Dropping hotplug event: {e}")

    def start(self) -> None:
        if self.observer is not None:
            logger.warning("udev hotplug monitor already started")
            return

        self.observer = pyudev.MonitorObserver(
            self.monitor,
            callback=self.handle_device,
            name="udev-hotplug-observer",
        )
        self.observer.daemon = True
        self.observer.start()
        logger.info(f"Watching udev for {UdevFilter.SUBSYSTEM}/{UdevFilter.DEVICE_TYPE} events")

    def stop(self) -> None:
        if self.observer is None:
            return

        self.observer.send_stop()
        self.observer = None
        logger.info("udev hotplug monitor stopped")
