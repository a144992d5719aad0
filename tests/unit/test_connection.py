"""
Unit tests for the i3 IPC session wrapper.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from i3ipc import Event

from i3_hotplug_daemon.connection import I3Session
from i3_hotplug_daemon.models import WorkspaceSnapshot

from tests.fixtures.mock_i3 import MockCommandReply, MockI3Connection


class TestWorkspaceSnapshot:

    @pytest.mark.asyncio
    async def test_snapshot_from_i3(self, session):
        snapshot = await session.get_workspace_snapshot()

        assert snapshot == [
            WorkspaceSnapshot(num=1, name="1", output="HDMI-A-0", focused=True, visible=True),
            WorkspaceSnapshot(num=2, name="2", output="DVI-D-0", focused=False, visible=True),
        ]

    @pytest.mark.asyncio
    async def test_snapshot_failure_returns_none(self, session, mock_i3):
        mock_i3.raise_on_query = True

        assert await session.get_workspace_snapshot() is None

    @pytest.mark.asyncio
    async def test_snapshot_when_not_connected(self):
        assert await I3Session().get_workspace_snapshot() is None


class TestRunCommand:

    @pytest.mark.asyncio
    async def test_success(self, session, mock_i3):
        assert await session.run_command("workspace 2") is True
        assert mock_i3.commands == ["workspace 2"]
        assert mock_i3.workspaces[2].focused is True

    @pytest.mark.asyncio
    async def test_rejected_by_i3(self, session, mock_i3):
        mock_i3.fail_commands.add("workspace 9")

        assert await session.run_command("workspace 9") is False

    @pytest.mark.asyncio
    async def test_partial_failure(self, session):
        session.conn = MagicMock()
        session.conn.command = AsyncMock(return_value=[
            MockCommandReply(),
            MockCommandReply(success=False, error="No output matched"),
        ])

        assert await session.run_command("workspace 1; workspace 2") is False

    @pytest.mark.asyncio
    async def test_ipc_error(self, session, mock_i3):
        mock_i3.raise_on_command = True

        assert await session.run_command("workspace 1") is False

    @pytest.mark.asyncio
    async def test_not_connected(self):
        assert await I3Session().run_command("workspace 1") is False


class TestEvents:

    @pytest.mark.asyncio
    async def test_subscribe_and_register(self, session, mock_i3):
        handler = AsyncMock()

        session.on_workspace_event(handler)
        await session.subscribe_events()

        assert mock_i3.handlers[Event.WORKSPACE] == [handler]
        assert mock_i3.subscriptions == [Event.WORKSPACE, Event.WINDOW]

    def test_close(self, session):
        session.close()

        assert session.conn is None
        assert session.is_connected is False


class TestConnectWithRetry:

    @pytest.mark.asyncio
    async def test_connects_after_failures(self):
        conn = MockI3Connection()
        session = I3Session()
        session.reconnect_delay = 0.001

        with patch("i3_hotplug_daemon.connection.aio.Connection") as mock_cls:
            mock_cls.return_value.connect = AsyncMock(
                side_effect=[ConnectionRefusedError("no socket"), conn]
            )
            result = await session.connect_with_retry(max_attempts=3)

        assert result is conn
        assert session.conn is conn
        assert mock_cls.return_value.connect.await_count == 2
        mock_cls.assert_called_with(auto_reconnect=True)

    @pytest.mark.asyncio
    async def test_gives_up(self):
        session = I3Session()
        session.reconnect_delay = 0.001

        with patch("i3_hotplug_daemon.connection.aio.Connection") as mock_cls:
            mock_cls.return_value.connect = AsyncMock(side_effect=FileNotFoundError("no socket"))

            with pytest.raises(ConnectionError):
                await session.connect_with_retry(max_attempts=2)

        assert session.conn is None
