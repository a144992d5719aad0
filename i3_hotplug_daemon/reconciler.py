"""Workspace reconciliation rules.

Given the previous tracked state and a fresh snapshot from i3, decide for each
workspace whether to keep, remember or forget its restoration target:

- output unchanged: keep remembered output and focus as they were
- output changed and the old output is disconnected: remember the old output
  and whether the workspace was focused (or visible) there
- output changed while the old output is still connected (the user moved it,
  or it was moved back after reconnection): forget, nothing is owed

These functions are pure. Locking and probing live in ReconciliationStore.
"""

import logging
from typing import Callable, Dict, Iterable, Optional, Set

from .models import TrackedWorkspace, WorkspaceSnapshot

logger = logging.getLogger(__name__)

ConnectivityCheck = Callable[[str], bool]


def reconcile_workspace(
    existing: Optional[TrackedWorkspace],
    snapshot: WorkspaceSnapshot,
    is_connected: ConnectivityCheck,
) -> TrackedWorkspace:
    """Compute the next entry for one workspace.

    Args:
        existing: Previous entry for this workspace number, if any
        snapshot: Workspace as i3 reports it now
        is_connected: Connectivity check for output names

    Returns:
        New TrackedWorkspace (existing is not modified)
    """
    remembered_output: Optional[str] = None
    was_focused = False

    if existing is not None:
        if snapshot.output == existing.current_output:
            remembered_output = existing.remembered_output
            was_focused = existing.was_focused
        elif not is_connected(existing.current_output):
            remembered_output = existing.current_output
            was_focused = existing.focused
            logger.debug(
                f"Workspace {snapshot.num} left disconnected output "
                f"{existing.current_output} for {snapshot.output} "
                f"(was_focused={was_focused})"
            )
        else:
            logger.debug(
                f"Workspace {snapshot.num} moved {existing.current_output} -> "
                f"{snapshot.output} with old output connected, nothing to restore"
            )

    return TrackedWorkspace(
        num=snapshot.num,
        current_output=snapshot.output,
        focused=snapshot.effective_focus,
        remembered_output=remembered_output,
        was_focused=was_focused,
    )


def outputs_to_probe(
    previous: Dict[int, TrackedWorkspace],
    snapshot: Iterable[WorkspaceSnapshot],
) -> Set[str]:
    """Old outputs whose connectivity decides a transition in this snapshot."""
    return {
        previous[ws.num].current_output
        for ws in snapshot
        if ws.is_numbered and ws.num in previous and previous[ws.num].current_output != ws.output
    }


def reconcile(
    previous: Dict[int, TrackedWorkspace],
    snapshot: Iterable[WorkspaceSnapshot],
    is_connected: ConnectivityCheck,
) -> Dict[int, TrackedWorkspace]:
    """Apply a snapshot to the tracked state.

    Workspaces missing from the snapshot are carried over untouched, so a
    workspace i3 briefly drops keeps its remembered placement. Named-only
    workspaces (num -1) are not tracked.

    Args:
        previous: Current tracked state (not modified)
        snapshot: Workspaces as reported by i3
        is_connected: Connectivity check for output names

    Returns:
        Next tracked state
    """
    result = dict(previous)
    for ws in snapshot:
        if not ws.is_numbered:
            continue
        result[ws.num] = reconcile_workspace(previous.get(ws.num), ws, is_connected)
    return result
