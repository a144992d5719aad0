"""Daemon configuration models.

HotplugConfig is loaded from ~/.config/i3/hotplug-daemon.json and CLI flags.
OutputPosition is the parsed form of the positional directive
"<output>:<xrandr args>", e.g. "DVI-D-0:--right-of HDMI-A-0".
"""

from typing import Any, List, Optional

from pydantic import BaseModel, Field, PrivateAttr, field_validator

from ..constants import HotplugDefaults


class OutputPosition(BaseModel):
    """Extra xrandr arguments applied to one output when it is enabled."""

    output: str = Field(..., min_length=1, description="Output name the arguments apply to")
    args: List[str] = Field(default_factory=list, description="Opaque xrandr arguments")

    model_config = {"frozen": True}

    @classmethod
    def parse(cls, directive: Optional[str]) -> Optional["OutputPosition"]:
        """Parse "<output>:<space-separated args>".

        Splits on the first ':'. A directive missing either part is treated
        as absent.

        Args:
            directive: Raw directive string (or None)

        Returns:
            OutputPosition, or None if not configured or malformed
        """
        if not directive:
            return None

        name, sep, args_string = directive.partition(":")
        name = name.strip()
        if not sep or not name or not args_string.strip():
            return None

        return cls(output=name, args=args_string.split())


class HotplugConfig(BaseModel):
    """Static configuration consumed by the orchestrator."""

    primary_output: str = Field(
        HotplugDefaults.PRIMARY_OUTPUT,
        description="Output preferred as xrandr primary when connected",
    )
    output_position: Optional[str] = Field(
        None,
        description='Positional directive "<output>:<xrandr args>"',
    )
    layout_debounce_ms: int = Field(HotplugDefaults.LAYOUT_DEBOUNCE_MS, ge=0)
    settle_delay_ms: int = Field(HotplugDefaults.SETTLE_DELAY_MS, ge=0)
    xrandr_path: str = Field(HotplugDefaults.XRANDR_PATH, min_length=1)
    probe_timeout: float = Field(HotplugDefaults.PROBE_TIMEOUT_SECONDS, gt=0)
    connect_attempts: int = Field(HotplugDefaults.CONNECT_ATTEMPTS, ge=1)

    _position: Optional[OutputPosition] = PrivateAttr(default=None)

    @field_validator("primary_output")
    @classmethod
    def primary_output_not_blank(cls, v: str) -> str:
        """Validate primary output name is non-empty."""
        if not v or v.strip() == "":
            raise ValueError("primary_output cannot be empty")
        return v.strip()

    def model_post_init(self, __context: Any) -> None:
        # Parsed once; a malformed directive yields None
        self._position = OutputPosition.parse(self.output_position)

    @property
    def position(self) -> Optional[OutputPosition]:
        return self._position

    @property
    def layout_debounce_seconds(self) -> float:
        return self.layout_debounce_ms / 1000

    @property
    def settle_delay_seconds(self) -> float:
        return self.settle_delay_ms / 1000
