"""Reconciliation store for i3-hotplug-daemon.

Owns the workspace number -> TrackedWorkspace map with async-safe operations.
Both the workspace event handler and the hotplug orchestrator share one
instance; nothing else mutates the map.
"""

import asyncio
import copy
import logging
from typing import Dict, Iterable, List, Optional, TYPE_CHECKING

from .models import TrackedWorkspace, WorkspaceSnapshot
from . import reconciler

if TYPE_CHECKING:
    from .connection import I3Session
    from .output_prober import OutputProber

logger = logging.getLogger(__name__)


class ReconciliationStore:
    """In-memory workspace placement state guarded by a single lock."""

    def __init__(self) -> None:
        self._entries: Dict[int, TrackedWorkspace] = {}
        self._lock = asyncio.Lock()

    async def populate(self, snapshot: Iterable[WorkspaceSnapshot]) -> None:
        """Seed the store from the initial i3 snapshot.

        Every entry starts with no restoration pending.

        Args:
            snapshot: Workspaces reported by i3 at startup
        """
        async with self._lock:
            for ws in snapshot:
                if not ws.is_numbered:
                    continue
                self._entries[ws.num] = TrackedWorkspace.from_snapshot(ws)
            logger.info(f"Store populated with {len(self._entries)} workspaces")

    async def reconcile(
        self,
        snapshot: List[WorkspaceSnapshot],
        prober: "OutputProber",
    ) -> None:
        """Apply a fresh snapshot as one critical section.

        The prober is queried once, and only when some workspace changed
        output. A failed probe reports nothing connected.

        Args:
            snapshot: Workspaces as reported by i3
            prober: Output prober for connectivity checks
        """
        async with self._lock:
            candidates = reconciler.outputs_to_probe(self._entries, snapshot)
            connected = await prober.connected_outputs() if candidates else set()

            self._entries = reconciler.reconcile(
                self._entries,
                snapshot,
                lambda name: name in connected,
            )

            pending = sum(1 for e in self._entries.values() if e.restoration_pending)
            logger.debug(
                f"Reconciled {len(snapshot)} workspaces "
                f"({len(candidates)} output transitions, {pending} restorations pending)"
            )

    async def entries(self) -> List[TrackedWorkspace]:
        """Copies of all entries in insertion order."""
        async with self._lock:
            return [copy.copy(e) for e in self._entries.values()]

    async def get(self, num: int) -> Optional[TrackedWorkspace]:
        async with self._lock:
            entry = self._entries.get(num)
            return copy.copy(entry) if entry else None

    def __len__(self) -> int:
        return len(self._entries)

    async def refresh(self, session: "I3Session", prober: "OutputProber") -> bool:
        """Fetch a fresh snapshot from i3 and reconcile it.

        Args:
            session: i3 session to query
            prober: Output prober for connectivity checks

        Returns:
            False if i3 could not be queried (store left unchanged)
        """
        snapshot = await session.get_workspace_snapshot()
        if snapshot is None:
            logger.warning("Skipping reconciliation: no workspace snapshot from i3")
            return False

        await self.reconcile(snapshot, prober)
        return True

    def describe(self) -> Dict[str, Dict]:
        """Entries keyed by workspace number, for diagnostics."""
        return {str(num): e.to_dict() for num, e in self._entries.items()}
