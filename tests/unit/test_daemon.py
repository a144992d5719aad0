"""
Unit tests for daemon wiring: CLI parsing, initialization, config reload
and the workspace event handler.
"""

import json
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from i3_hotplug_daemon.constants import ConfigPaths
from i3_hotplug_daemon.daemon import HotplugDaemon, cli_overrides, create_parser
from i3_hotplug_daemon.models import HotplugConfig
from i3_hotplug_daemon.orchestrator import HotplugOrchestrator


class TestParser:

    def test_defaults(self):
        args = create_parser().parse_args([])

        assert args.config == ConfigPaths.CONFIG_FILE
        assert args.log_level is None
        assert cli_overrides(args) == {"primary_output": None, "output_position": None}

    def test_overrides(self):
        args = create_parser().parse_args([
            "--config", "/tmp/hotplug.json",
            "--primary", "DP-0",
            "--position", "HDMI-A-0:--left-of DP-0",
            "--log-level", "debug",
        ])

        assert args.config == Path("/tmp/hotplug.json")
        assert args.log_level == "DEBUG"
        assert cli_overrides(args) == {
            "primary_output": "DP-0",
            "output_position": "HDMI-A-0:--left-of DP-0",
        }

    def test_version(self, capsys):
        with pytest.raises(SystemExit) as exc:
            create_parser().parse_args(["--version"])

        assert exc.value.code == 0
        assert "i3-hotplug-daemon" in capsys.readouterr().out


class TestHotplugDaemon:

    @pytest.mark.asyncio
    async def test_initialize(self, tmp_path, session, mock_i3):
        config_file = tmp_path / "hotplug-daemon.json"
        config_file.write_text(json.dumps({"primary_output": "DVI-D-0"}))
        session.connect_with_retry = AsyncMock(return_value=mock_i3)

        with patch("i3_hotplug_daemon.daemon.I3Session", return_value=session), \
                patch("i3_hotplug_daemon.daemon.UdevHotplugMonitor") as mock_monitor:
            daemon = HotplugDaemon(config_file, {"output_position": "HDMI-A-0:--left-of DVI-D-0"})
            await daemon.initialize()

        assert daemon.config.primary_output == "DVI-D-0"
        assert daemon.config.output_position == "HDMI-A-0:--left-of DVI-D-0"
        session.connect_with_retry.assert_awaited_once_with(daemon.config.connect_attempts)
        assert len(daemon.store) == 2
        assert (await daemon.store.get(1)).focused is True
        assert mock_monitor.call_args.args[1] == daemon.orchestrator.trigger

    @pytest.mark.asyncio
    async def test_workspace_event_refreshes_store(self, session, store, prober, mock_i3):
        daemon = HotplugDaemon(Path("/nonexistent/hotplug-daemon.json"))
        daemon.session = session
        daemon.store = store
        daemon.prober = prober

        await daemon.on_workspace_event(mock_i3, MagicMock(change="init"))

        assert len(store) == 2
        assert prober.calls == 0

    def test_config_reload_reaches_orchestrator(self, session, store, prober, fast_config):
        daemon = HotplugDaemon(Path("/nonexistent/hotplug-daemon.json"))
        daemon.orchestrator = HotplugOrchestrator(session, store, prober, fast_config)
        reloaded = HotplugConfig(primary_output="DVI-D-0")

        daemon._on_config_reload(reloaded)

        assert daemon.config is reloaded
        assert daemon.orchestrator.config is reloaded

    @pytest.mark.asyncio
    async def test_diagnostics(self, session, store, prober, fast_config):
        await store.refresh(session, prober)
        daemon = HotplugDaemon(Path("/nonexistent/hotplug-daemon.json"))
        daemon.session = session
        daemon.store = store
        daemon.orchestrator = HotplugOrchestrator(session, store, prober, fast_config)

        info = daemon.diagnostics()

        assert info["i3_connected"] is True
        assert info["tracked_workspaces"] == 2
        assert info["orchestrator"]["state"] == "idle"
        assert info["workspaces"]["1"]["current_output"] == "HDMI-A-0"
        json.dumps(info)

    @pytest.mark.asyncio
    async def test_shutdown_closes_everything(self, session, store, prober, fast_config):
        daemon = HotplugDaemon(Path("/nonexistent/hotplug-daemon.json"))
        daemon.session = session
        daemon.orchestrator = HotplugOrchestrator(session, store, prober, fast_config)
        daemon.hotplug_monitor = MagicMock()
        daemon.config_watcher = MagicMock()

        await daemon.shutdown()

        daemon.hotplug_monitor.stop.assert_called_once()
        daemon.config_watcher.stop.assert_called_once()
        assert session.conn is None
