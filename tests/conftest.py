"""Pytest configuration for i3 hotplug daemon tests."""

import sys
from pathlib import Path

import pytest

# Make the package importable without installation
package_root = Path(__file__).parent.parent
if str(package_root) not in sys.path:
    sys.path.insert(0, str(package_root))

from i3_hotplug_daemon.connection import I3Session  # noqa: E402
from i3_hotplug_daemon.models import HotplugConfig  # noqa: E402
from i3_hotplug_daemon.store import ReconciliationStore  # noqa: E402

from tests.fixtures.mock_i3 import MockI3Connection, MockI3Workspace, ScriptedProber  # noqa: E402


@pytest.fixture
def mock_i3():
    """Two outputs: workspace 1 focused on HDMI-A-0, workspace 2 visible on DVI-D-0."""
    return MockI3Connection([
        MockI3Workspace(num=1, output="HDMI-A-0", focused=True, visible=True),
        MockI3Workspace(num=2, output="DVI-D-0", visible=True),
    ])


@pytest.fixture
def session(mock_i3):
    """I3Session wired to the mock connection."""
    i3_session = I3Session()
    i3_session.conn = mock_i3
    return i3_session


@pytest.fixture
def prober():
    return ScriptedProber({"HDMI-A-0": True, "DVI-D-0": True})


@pytest.fixture
def store():
    return ReconciliationStore()


@pytest.fixture
def fast_config():
    """Config with short delays so timer tests run quickly."""
    return HotplugConfig(
        primary_output="HDMI-A-0",
        output_position="DVI-D-0:--right-of HDMI-A-0",
        layout_debounce_ms=20,
        settle_delay_ms=0,
    )
