"""
Models for i3-hotplug-daemon.

- workspace: WorkspaceSnapshot (i3 reply) and TrackedWorkspace (store entry)
- config: HotplugConfig and the OutputPosition directive
- layout: orchestrator state and the values passed between its steps
"""

from .workspace import WorkspaceSnapshot, TrackedWorkspace
from .config import HotplugConfig, OutputPosition
from .layout import (
    OrchestratorState,
    OutputConnection,
    PreChangeContext,
    ReplayPlan,
)

__all__ = [
    "WorkspaceSnapshot",
    "TrackedWorkspace",
    "HotplugConfig",
    "OutputPosition",
    "OrchestratorState",
    "OutputConnection",
    "PreChangeContext",
    "ReplayPlan",
]
