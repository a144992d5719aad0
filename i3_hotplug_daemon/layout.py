"""xrandr layout construction and application.

One xrandr invocation configures every known output:

    xrandr --output HDMI-A-0 --auto --primary \
           --output DVI-D-0 --auto --right-of HDMI-A-0 \
           --output DP-0 --off
"""

import asyncio
import logging
from typing import List, Optional, Sequence

from .models import OutputConnection, OutputPosition

logger = logging.getLogger(__name__)


def build_xrandr_args(
    outputs: Sequence[OutputConnection],
    primary_output: str,
    position: Optional[OutputPosition] = None,
) -> List[str]:
    """Build the xrandr argument list for the current connectivity.

    Connected outputs are enabled at their preferred mode, disconnected ones
    are turned off. Exactly one connected output gets --primary: the
    configured primary when connected, else the first connected output.

    Args:
        outputs: Outputs in xrandr enumeration order
        primary_output: Preferred primary output name
        position: Optional extra arguments for one output

    Returns:
        Arguments (without the xrandr executable itself)
    """
    primary_set = any(o.connected and o.name == primary_output for o in outputs)

    args: List[str] = []
    for output in outputs:
        args.extend(["--output", output.name])

        if not output.connected:
            args.append("--off")
            continue

        args.append("--auto")

        if position is not None and position.output == output.name:
            args.extend(position.args)

        if output.name == primary_output or not primary_set:
            args.append("--primary")
            primary_set = True

    return args


async def apply_layout(args: Sequence[str], xrandr_path: str = "xrandr") -> bool:
    """Run xrandr with the given arguments.

    Failures are logged and reported through the return value only; workspace
    repair goes ahead on whatever layout results.

    Args:
        args: Arguments from build_xrandr_args()
        xrandr_path: xrandr executable

    Returns:
        True if xrandr exited successfully
    """
    logger.info(f"Applying output layout: {xrandr_path} {' '.join(args)}")

    try:
        proc = await asyncio.create_subprocess_exec(
            xrandr_path,
            *args,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        _, stderr = await proc.communicate()

        if proc.returncode != 0:
            stderr_text = stderr.decode("utf-8", errors="replace").strip()
            logger.error(f"Could not set the monitor config (exit code {proc.returncode}): {stderr_text}")
            return False

        return True

    except FileNotFoundError:
        logger.error(f"{xrandr_path} not found in PATH - cannot apply layout")
        return False
    except Exception as e:
        logger.error(f"Could not set the monitor config: {e}")
        return False
