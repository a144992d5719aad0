"""Hotplug orchestrator.

Turns a burst of udev events into one pass through the state machine:

    IDLE -> LAYOUT_PENDING -> LAYOUT_APPLIED -> RECONCILING -> REPLAYING -> IDLE

LAYOUT_PENDING captures which workspaces exist and which one is focused, then
probes outputs and applies the xrandr layout. After the settle delay i3 has
moved workspaces off (or onto) the changed outputs, so RECONCILING refreshes
the store and REPLAYING moves remembered workspaces back and restores focus.

Timers run on the asyncio loop. At most one pass runs at a time; an event
whose debounce expires during a pass queues exactly one follow-up pass.
"""

import asyncio
import logging
from typing import Any, Dict, Iterable, List, Optional, Set, TYPE_CHECKING

from .layout import apply_layout, build_xrandr_args
from .models import (
    HotplugConfig,
    OrchestratorState,
    OutputConnection,
    PreChangeContext,
    ReplayPlan,
    TrackedWorkspace,
)

if TYPE_CHECKING:
    from .connection import I3Session
    from .output_prober import OutputProber
    from .store import ReconciliationStore

logger = logging.getLogger(__name__)


def plan_replay(
    entries: Iterable[TrackedWorkspace],
    context: PreChangeContext,
    connected: Set[str],
) -> ReplayPlan:
    """Decide which workspaces to move back and which to focus.

    1. Move every workspace with a remembered output that is connected now.
    2. Focus every workspace that was focused (or visible) on its lost output,
       in store order, if it existed before the change.
    3. Focus the workspace that was focused before the change, last, so it
       ends up as the focused one (not repeated if step 2 already ended
       on it).

    Args:
        entries: Store entries in iteration order
        context: i3 state captured before the layout change
        connected: Outputs connected at replay time

    Returns:
        ReplayPlan
    """
    entries = list(entries)
    plan = ReplayPlan()

    for entry in entries:
        if entry.remembered_output and entry.remembered_output in connected:
            plan.moves.append((entry.num, entry.remembered_output))

    for entry in entries:
        if entry.was_focused and entry.restoration_pending and context.exists(entry.num):
            plan.focus.append(entry.num)

    final = context.focused_workspace
    if final is not None and context.exists(final):
        # A repeated "workspace N" toggles back under workspace_auto_back_and_forth
        if plan.focus[-1:] != [final]:
            plan.focus.append(final)

    return plan


class HotplugOrchestrator:
    """Debounced, single-flight hotplug pass runner."""

    def __init__(
        self,
        session: "I3Session",
        store: "ReconciliationStore",
        prober: "OutputProber",
        config: HotplugConfig,
    ) -> None:
        """Initialize orchestrator.

        Args:
            session: i3 session for snapshots and commands
            store: Shared reconciliation store
            prober: Output prober
            config: Primary output, position directive and delays
        """
        self.session = session
        self.store = store
        self.prober = prober
        self.config = config

        self.state = OrchestratorState.IDLE
        self.passes_completed = 0
        self._debounce_handle: Optional[asyncio.TimerHandle] = None
        self._pass_task: Optional[asyncio.Task] = None
        self._rerun_requested = False

    @property
    def is_running(self) -> bool:
        return self._pass_task is not None and not self._pass_task.done()

    def update_config(self, config: HotplugConfig) -> None:
        """Swap in a reloaded configuration; applies from the next pass."""
        self.config = config
        self.prober.xrandr_path = config.xrandr_path
        self.prober.timeout = config.probe_timeout
        logger.info(
            f"Orchestrator config updated: primary={config.primary_output}, "
            f"position={config.output_position!r}"
        )

    # ------------------------------------------------------------------
    # Scheduling
    # ------------------------------------------------------------------

    def trigger(self) -> None:
        """Handle one raw hotplug event.

        Must run on the event loop thread (use loop.call_soon_threadsafe from
        other threads). Re-arms the debounce timer.
        """
        loop = asyncio.get_running_loop()

        if self._debounce_handle is not None:
            self._debounce_handle.cancel()
            logger.debug("Hotplug event within debounce window, re-arming timer")

        self._debounce_handle = loop.call_later(
            self.config.layout_debounce_seconds,
            self._on_debounce_elapsed,
        )

    def _on_debounce_elapsed(self) -> None:
        self._debounce_handle = None

        if self.is_running:
            self._rerun_requested = True
            logger.info("Hotplug pass already running, queued one follow-up pass")
            return

        self._start_pass()

    def _start_pass(self) -> None:
        self._pass_task = asyncio.get_running_loop().create_task(self.run_pass())
        self._pass_task.add_done_callback(self._on_pass_done)

    def _on_pass_done(self, task: asyncio.Task) -> None:
        if task is self._pass_task:
            self._pass_task = None

        if task.cancelled():
            return

        if self._rerun_requested:
            self._rerun_requested = False
            logger.info("Starting queued hotplug pass")
            self._start_pass()

    async def wait_idle(self, poll_interval: float = 0.01) -> None:
        """Wait until no timer is armed and no pass is running or queued."""
        while self._debounce_handle is not None or self._pass_task is not None:
            await asyncio.sleep(poll_interval)

    def cancel(self) -> None:
        """Cancel the armed timer and any in-flight pass (shutdown)."""
        if self._debounce_handle is not None:
            self._debounce_handle.cancel()
            self._debounce_handle = None
        self._rerun_requested = False
        if self.is_running:
            self._pass_task.cancel()

    # ------------------------------------------------------------------
    # Pass
    # ------------------------------------------------------------------

    def _transition(self, state: OrchestratorState) -> None:
        if state != self.state:
            logger.info(f"Hotplug state: {self.state.value} -> {state.value}")
            self.state = state

    async def run_pass(self) -> None:
        """Run one full hotplug pass.

        Errors are logged; the orchestrator always returns to IDLE.
        """
        try:
            self._transition(OrchestratorState.LAYOUT_PENDING)
            context = await self.capture_context()
            outputs = await self.probe_outputs()
            await self.apply_layout(outputs)

            self._transition(OrchestratorState.LAYOUT_APPLIED)
            await asyncio.sleep(self.config.settle_delay_seconds)

            self._transition(OrchestratorState.RECONCILING)
            await self.reconcile()

            self._transition(OrchestratorState.REPLAYING)
            await self.replay(context)

            self.passes_completed += 1
        except Exception as e:
            logger.error(f"Hotplug pass failed: {e}", exc_info=True)
        finally:
            self._transition(OrchestratorState.IDLE)

    async def capture_context(self) -> PreChangeContext:
        """Record existing workspaces and the focused one before the change."""
        snapshot = await self.session.get_workspace_snapshot()
        if snapshot is None:
            logger.warning("No pre-change workspace snapshot, focus replay disabled for this pass")
            return PreChangeContext()

        numbered = [ws for ws in snapshot if ws.is_numbered]
        focused = next((ws.num for ws in numbered if ws.focused), None)
        context = PreChangeContext(
            existing_workspaces=frozenset(ws.num for ws in numbered),
            focused_workspace=focused,
        )
        logger.debug(
            f"Pre-change context: workspaces={sorted(context.existing_workspaces)}, "
            f"focused={context.focused_workspace}"
        )
        return context

    async def probe_outputs(self) -> List[OutputConnection]:
        return await self.prober.list_outputs()

    async def apply_layout(self, outputs: List[OutputConnection]) -> bool:
        """Enable connected outputs, disable the rest, pick one primary."""
        if not outputs:
            logger.warning("No outputs probed, leaving the current layout untouched")
            return False

        args = build_xrandr_args(outputs, self.config.primary_output, self.config.position)
        return await apply_layout(args, self.config.xrandr_path)

    async def reconcile(self) -> bool:
        return await self.store.refresh(self.session, self.prober)

    async def replay(self, context: PreChangeContext) -> ReplayPlan:
        """Move remembered workspaces back and restore focus.

        Each command is independent; a failure is logged and the rest run.
        """
        connected = await self.prober.connected_outputs()
        plan = plan_replay(await self.store.entries(), context, connected)

        if plan.is_empty():
            logger.debug("Nothing to replay")
            return plan

        failures = 0
        for command in plan.commands():
            if not await self.session.run_command(command):
                failures += 1

        logger.info(
            f"Replayed {len(plan.moves)} moves and {len(plan.focus)} focus commands"
            + (f" ({failures} failed)" if failures else "")
        )
        return plan

    def describe(self) -> Dict[str, Any]:
        """Orchestrator status for diagnostics."""
        return {
            "state": self.state.value,
            "pass_running": self.is_running,
            "timer_armed": self._debounce_handle is not None,
            "rerun_requested": self._rerun_requested,
            "passes_completed": self.passes_completed,
        }
