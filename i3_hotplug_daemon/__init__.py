"""i3 Hotplug Daemon

Hotplug-reactive display/workspace reconciler for i3.

This package provides a long-running daemon that:
- Listens for DRM hotplug events from udev
- Reprograms the output layout with xrandr
- Tracks which workspace lives on which output, and whether it was focused
- Moves workspaces back to their monitor when it is reattached

License: MIT
"""

__version__ = "1.0.0"
