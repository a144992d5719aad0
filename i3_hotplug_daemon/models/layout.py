"""Models exchanged between the hotplug orchestrator steps."""

from dataclasses import dataclass, field
from enum import Enum
from typing import FrozenSet, List, Optional, Tuple


class OrchestratorState(str, Enum):
    """Hotplug pass states."""
    IDLE = "idle"
    LAYOUT_PENDING = "layout_pending"
    LAYOUT_APPLIED = "layout_applied"
    RECONCILING = "reconciling"
    REPLAYING = "replaying"


@dataclass(frozen=True)
class OutputConnection:
    """An xrandr output and whether a display is attached to it."""
    name: str
    connected: bool


@dataclass(frozen=True)
class PreChangeContext:
    """i3 state captured before the layout is touched.

    Guards replay against focusing workspaces i3 has since removed.
    """
    existing_workspaces: FrozenSet[int] = frozenset()
    focused_workspace: Optional[int] = None

    def exists(self, num: int) -> bool:
        return num in self.existing_workspaces


@dataclass
class ReplayPlan:
    """Commands that restore workspace placement and focus."""
    moves: List[Tuple[int, str]] = field(default_factory=list)
    focus: List[int] = field(default_factory=list)

    def commands(self) -> List[str]:
        """i3 commands in execution order: all moves, then all focus changes."""
        commands = [
            f'[workspace="{num}"] move workspace to output {output}'
            for num, output in self.moves
        ]
        commands.extend(f"workspace {num}" for num in self.focus)
        return commands

    def is_empty(self) -> bool:
        return not self.moves and not self.focus
