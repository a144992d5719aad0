"""Mock i3 IPC and xrandr fixtures for hotplug tests."""

import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set

from i3_hotplug_daemon.models import OutputConnection
from i3_hotplug_daemon.output_prober import OutputProber

_MOVE_COMMAND = re.compile(r'^\[workspace="(-?\d+)"\] move workspace to output (\S+)$')
_FOCUS_COMMAND = re.compile(r"^workspace (-?\d+)$")


@dataclass
class MockI3Workspace:
    """Mock i3 workspace reply."""
    num: int
    output: str
    focused: bool = False
    visible: bool = False
    name: str = ""

    def __post_init__(self):
        if not self.name:
            self.name = str(self.num)


@dataclass
class MockCommandReply:
    """Mock i3 command reply."""
    success: bool = True
    error: Optional[str] = None


@dataclass
class MockVersionReply:
    human_readable: str = "4.23 (mock)"


class MockI3Connection:
    """Mock i3ipc.aio.Connection for testing without real i3.

    Understands the two commands the daemon sends, so replays change the mock
    workspace layout the way i3 would.
    """

    def __init__(self, workspaces: Optional[List[MockI3Workspace]] = None):
        self.workspaces: Dict[int, MockI3Workspace] = {ws.num: ws for ws in workspaces or []}
        self.commands: List[str] = []
        self.fail_commands: Set[str] = set()
        self.raise_on_query = False
        self.raise_on_command = False
        self.handlers: Dict[object, List] = {}
        self.subscriptions: List = []

    async def get_version(self) -> MockVersionReply:
        return MockVersionReply()

    async def get_workspaces(self) -> List[MockI3Workspace]:
        if self.raise_on_query:
            raise ConnectionError("i3 socket closed")
        return list(self.workspaces.values())

    async def command(self, cmd: str) -> List[MockCommandReply]:
        self.commands.append(cmd)
        if self.raise_on_command:
            raise ConnectionError("i3 socket closed")
        if cmd in self.fail_commands:
            return [MockCommandReply(success=False, error=f"cannot run {cmd}")]

        move = _MOVE_COMMAND.match(cmd)
        if move and int(move.group(1)) in self.workspaces:
            self.workspaces[int(move.group(1))].output = move.group(2)

        focus = _FOCUS_COMMAND.match(cmd)
        if focus and int(focus.group(1)) in self.workspaces:
            self.focus(int(focus.group(1)))

        return [MockCommandReply()]

    def focus(self, num: int) -> None:
        """Focus a workspace, making it the visible one on its output."""
        target = self.workspaces[num]
        for ws in self.workspaces.values():
            ws.focused = ws.num == num
            if ws.output == target.output:
                ws.visible = ws.num == num

    def move_all(self, from_output: str, to_output: str) -> None:
        """What i3 does when an output goes away."""
        for ws in self.workspaces.values():
            if ws.output == from_output:
                ws.output = to_output
                ws.visible = False

    def on(self, event, handler) -> None:
        self.handlers.setdefault(event, []).append(handler)

    async def subscribe(self, events) -> None:
        self.subscriptions.extend(events)

    def main_quit(self) -> None:
        pass

    @property
    def focus_commands(self) -> List[str]:
        return [c for c in self.commands if _FOCUS_COMMAND.match(c)]

    @property
    def move_commands(self) -> List[str]:
        return [c for c in self.commands if _MOVE_COMMAND.match(c)]


class ScriptedProber(OutputProber):
    """OutputProber whose xrandr state is set by the test."""

    def __init__(self, outputs: Optional[Dict[str, bool]] = None):
        super().__init__(xrandr_path="xrandr", timeout=1.0)
        self.outputs: Dict[str, bool] = dict(outputs or {})
        self.calls = 0

    def set_connected(self, name: str, connected: bool) -> None:
        self.outputs[name] = connected

    async def list_outputs(self) -> List[OutputConnection]:
        self.calls += 1
        return [OutputConnection(name=n, connected=c) for n, c in self.outputs.items()]
