"""i3 IPC session with resilient connection handling.

Wraps an i3ipc.aio connection behind the narrow interface the reconciler and
orchestrator need: workspace snapshots, command execution and workspace event
subscription. Every query catches and logs its own failures; callers get
None/False back instead of an exception.
"""

import asyncio
import logging
from typing import Awaitable, Callable, List, Optional

from i3ipc import Event, aio

from .models import WorkspaceSnapshot

logger = logging.getLogger(__name__)

WorkspaceEventHandler = Callable[[aio.Connection, object], Awaitable[None]]


class I3Session:
    """Manages the i3 IPC connection used by the daemon."""

    def __init__(self) -> None:
        self.conn: Optional[aio.Connection] = None
        self.is_shutting_down = False
        self.reconnect_delay = 0.1  # Initial delay: 100ms

    @property
    def is_connected(self) -> bool:
        """Check if i3 IPC connection is active."""
        return self.conn is not None and not self.is_shutting_down

    async def connect_with_retry(self, max_attempts: int = 10) -> aio.Connection:
        """Connect to i3 with exponential backoff retry.

        Args:
            max_attempts: Maximum connection attempts

        Returns:
            Connected i3ipc.aio.Connection

        Raises:
            ConnectionError: If connection fails after max attempts
        """
        attempt = 0
        delay = self.reconnect_delay

        while attempt < max_attempts:
            try:
                logger.info(f"Attempting to connect to i3 (attempt {attempt + 1}/{max_attempts})")

                self.conn = await aio.Connection(auto_reconnect=True).connect()

                version = await self.conn.get_version()
                logger.info(f"Connected to i3 version {version.human_readable}")

                return self.conn

            except Exception as e:
                logger.warning(f"Connection attempt {attempt + 1} failed: {e}")
                self.conn = None
                attempt += 1

                if attempt < max_attempts:
                    logger.debug(f"Waiting {delay:.1f}s before retry...")
                    await asyncio.sleep(delay)

                    # Exponential backoff: double delay up to 5s max
                    delay = min(delay * 2, 5.0)

        raise ConnectionError(f"Failed to connect to i3 after {max_attempts} attempts")

    def on_workspace_event(self, handler: WorkspaceEventHandler) -> None:
        """Register a handler for every workspace::* event.

        Args:
            handler: Coroutine function called with (conn, event)
        """
        if not self.conn:
            logger.error("Cannot register workspace handler: not connected")
            return
        self.conn.on(Event.WORKSPACE, handler)

    async def subscribe_events(self) -> None:
        """Subscribe to workspace and window events.

        Must be called after connecting and before main().
        """
        if not self.conn:
            logger.error("Cannot subscribe to events: not connected")
            return

        try:
            await self.conn.subscribe([Event.WORKSPACE, Event.WINDOW])
            logger.info("Subscribed to i3 IPC event stream (workspace, window)")
        except Exception as e:
            logger.error(f"Failed to subscribe to events: {e}")

    async def get_workspace_snapshot(self) -> Optional[List[WorkspaceSnapshot]]:
        """Query the current workspace list.

        Returns:
            Snapshots in i3's order, or None if i3 could not be queried
        """
        if not self.conn:
            logger.error("Cannot query workspaces: not connected")
            return None

        try:
            workspaces = await self.conn.get_workspaces()
            return [WorkspaceSnapshot.from_i3_workspace(ws) for ws in workspaces]
        except Exception as e:
            logger.error(f"Cannot query i3 workspaces: {e}")
            return None

    async def run_command(self, command: str) -> bool:
        """Send a RUN_COMMAND request.

        Args:
            command: i3 command string

        Returns:
            True if i3 reported success for every sub-command
        """
        if not self.conn:
            logger.error(f"Cannot run '{command}': not connected")
            return False

        try:
            replies = await self.conn.command(command)
        except Exception as e:
            logger.error(f"Cannot run '{command}': {e}")
            return False

        failed = [r for r in replies or [] if not getattr(r, "success", False)]
        if failed:
            errors = "; ".join(str(getattr(r, "error", None) or "unknown error") for r in failed)
            logger.warning(f"i3 rejected '{command}': {errors}")
            return False

        logger.debug(f"Ran i3 command: {command}")
        return True

    async def main(self) -> None:
        """Process i3 events until the connection closes."""
        if not self.conn:
            raise ConnectionError("Cannot start event loop: not connected")
        await self.conn.main()

    def close(self) -> None:
        """Stop the event loop and drop the connection."""
        self.is_shutting_down = True
        if self.conn:
            self.conn.main_quit()
            self.conn = None
