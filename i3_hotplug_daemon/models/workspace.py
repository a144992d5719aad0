"""Workspace models for reconciliation.

WorkspaceSnapshot is one entry of i3's GET_WORKSPACES reply, frozen as it was
observed. TrackedWorkspace is the daemon's own record for a workspace number,
carrying where it should be restored to after its output comes back.
"""

from dataclasses import dataclass, asdict
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class WorkspaceSnapshot(BaseModel):
    """A workspace as currently reported by i3.

    Immutable after creation (frozen).
    """

    num: int = Field(..., description="Workspace number (-1 for named-only workspaces)")
    name: str = Field("", description="Workspace name")
    output: str = Field(..., description="Output hosting the workspace")
    focused: bool = Field(False, description="Holds global input focus")
    visible: bool = Field(False, description="Visible on its output")

    model_config = {"frozen": True}

    @property
    def is_numbered(self) -> bool:
        """False for named-only workspaces, which i3 reports as num == -1."""
        return self.num >= 0

    @property
    def effective_focus(self) -> bool:
        """Focused, or simply the visible workspace on its output."""
        return self.focused or self.visible

    @classmethod
    def from_i3_workspace(cls, workspace: Any) -> "WorkspaceSnapshot":
        """Create snapshot from an i3ipc WorkspaceReply.

        Args:
            workspace: i3ipc WorkspaceReply from get_workspaces()

        Returns:
            WorkspaceSnapshot
        """
        return cls(
            num=workspace.num,
            name=getattr(workspace, "name", "") or str(workspace.num),
            output=workspace.output,
            focused=bool(getattr(workspace, "focused", False)),
            visible=bool(getattr(workspace, "visible", False)),
        )


@dataclass
class TrackedWorkspace:
    """Reconciliation state for one workspace number."""

    num: int
    current_output: str
    focused: bool = False  # focused or visible, as last reported
    remembered_output: Optional[str] = None  # output to move back to once reconnected
    was_focused: bool = False  # only meaningful while remembered_output is set

    @property
    def restoration_pending(self) -> bool:
        return self.remembered_output is not None

    @classmethod
    def from_snapshot(cls, snapshot: WorkspaceSnapshot) -> "TrackedWorkspace":
        """Fresh entry with no restoration owed."""
        return cls(
            num=snapshot.num,
            current_output=snapshot.output,
            focused=snapshot.effective_focus,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for diagnostics logging."""
        return asdict(self)
