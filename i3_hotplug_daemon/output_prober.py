"""Output connectivity probing via xrandr.

An output counts as connected when xrandr enumerates it and reports an EDID
block for it. The header's "connected" keyword alone is not trusted: some
drivers keep reporting a port as connected after the cable is pulled.

Every failure (missing binary, non-zero exit, timeout) is logged and reported
as "no outputs", so callers treat everything as disconnected.
"""

import asyncio
import logging
import re
from typing import List, Set

from .models import OutputConnection

logger = logging.getLogger(__name__)

# "HDMI-A-0 connected primary 1920x1080+0+0 ..." / "DVI-D-0 disconnected (...)"
_OUTPUT_HEADER = re.compile(r"^(\S+) (connected|disconnected|unknown connection)\b")
_HEX_LINE = re.compile(r"^[0-9a-fA-F]+$")


def parse_xrandr_verbose(text: str) -> List[OutputConnection]:
    """Parse `xrandr --verbose` output into outputs in enumeration order.

    Args:
        text: stdout of `xrandr --verbose`

    Returns:
        One OutputConnection per output; connected iff it has EDID data
    """
    names: List[str] = []
    has_edid = {}
    current = None
    in_edid = False

    for line in text.splitlines():
        header = _OUTPUT_HEADER.match(line)
        if header:
            current = header.group(1)
            names.append(current)
            has_edid[current] = False
            in_edid = False
            continue

        if current is None or not line.startswith("\t"):
            in_edid = False
            continue

        stripped = line.strip()
        if stripped == "EDID:":
            in_edid = True
        elif in_edid:
            if _HEX_LINE.match(stripped):
                has_edid[current] = True
            else:
                in_edid = False

    return [OutputConnection(name=name, connected=has_edid[name]) for name in names]


class OutputProber:
    """Answers "is output X connected?" from the live xrandr state."""

    def __init__(self, xrandr_path: str = "xrandr", timeout: float = 5.0) -> None:
        """Initialize prober.

        Args:
            xrandr_path: xrandr executable
            timeout: Seconds before a hung query is killed
        """
        self.xrandr_path = xrandr_path
        self.timeout = timeout

    async def list_outputs(self) -> List[OutputConnection]:
        """Query all outputs in xrandr's stable order.

        Returns:
            List of OutputConnection, empty if the query fails
        """
        try:
            proc = await asyncio.create_subprocess_exec(
                self.xrandr_path,
                "--verbose",
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )

            try:
                stdout, stderr = await asyncio.wait_for(
                    proc.communicate(),
                    timeout=self.timeout
                )
            except asyncio.TimeoutError:
                logger.warning(f"xrandr query timed out after {self.timeout}s")
                proc.kill()
                await proc.wait()
                return []

            if proc.returncode != 0:
                stderr_text = stderr.decode("utf-8", errors="replace").strip()
                logger.warning(f"xrandr query failed (exit code {proc.returncode}): {stderr_text}")
                return []

            outputs = parse_xrandr_verbose(stdout.decode("utf-8", errors="replace"))
            logger.debug(
                "Probed outputs: "
                + ", ".join(f"{o.name}={'on' if o.connected else 'off'}" for o in outputs)
            )
            return outputs

        except FileNotFoundError:
            logger.error(f"{self.xrandr_path} not found in PATH - output probing unavailable")
            return []
        except Exception as e:
            logger.error(f"Unexpected error probing outputs: {e}", exc_info=True)
            return []

    async def connected_outputs(self) -> Set[str]:
        """Names of outputs with a display attached."""
        return {o.name for o in await self.list_outputs() if o.connected}

    async def is_connected(self, output_name: str) -> bool:
        """Check if a display is attached to output_name.

        Args:
            output_name: xrandr output name (HDMI-A-0, DVI-D-0, ...)

        Returns:
            True if enumerated with EDID, False otherwise or on failure
        """
        return output_name in await self.connected_outputs()
