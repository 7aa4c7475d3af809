"""
Rich TUI Console Setup

Provides the console used by the command-line interface.
Configured via environment variables for customizable appearance.
"""

import os
from dataclasses import dataclass
from datetime import datetime
from typing import Literal, Optional

from rich.console import Console
from rich.panel import Panel
from rich.style import Style
from rich.theme import Theme


# Block types for CLI output
BlockType = Literal["info", "success", "failure"]


@dataclass
class TUIConfig:
    """
    TUI configuration loaded from environment variables.

    Attributes:
        color_info: Color for informational blocks (server, listings)
        color_success: Color for passed flows and completed actions
        color_failure: Color for failed flows and errors
        show_timestamps: Whether to display timestamps
    """

    color_info: str = "blue"
    color_success: str = "green"
    color_failure: str = "red"
    show_timestamps: bool = True

    @classmethod
    def from_env(cls) -> "TUIConfig":
        """Load configuration from environment variables."""
        return cls(
            color_info=os.getenv("COLOR_INFO", "blue"),
            color_success=os.getenv("COLOR_SUCCESS", "green"),
            color_failure=os.getenv("COLOR_FAILURE", "red"),
            show_timestamps=os.getenv("SHOW_TIMESTAMPS", "true").lower() == "true",
        )


def create_theme(config: TUIConfig) -> Theme:
    """Create a Rich theme from TUI configuration."""
    return Theme(
        {
            "info": Style(color=config.color_info, bold=True),
            "success": Style(color=config.color_success, bold=True),
            "failure": Style(color=config.color_failure, bold=True),
            "timestamp": Style(dim=True),
            "label": Style(bold=True),
        }
    )


class ControlConsole:
    """
    Rich console wrapper for control plane CLI output.

    Provides bordered blocks with consistent styling and optional
    timestamps.
    """

    def __init__(self, config: Optional[TUIConfig] = None, console: Optional[Console] = None):
        """
        Initialize the console.

        Args:
            config: TUI configuration. If None, loads from environment.
            console: Underlying Rich console (a new one if None)
        """
        self.config = config or TUIConfig.from_env()
        self._theme = create_theme(self.config)
        if console is None:
            console = Console(theme=self._theme)
        else:
            console.push_theme(self._theme)
        self.console = console

    def get_timestamp(self) -> str:
        """Get formatted timestamp if enabled."""
        if self.config.show_timestamps:
            return datetime.now().strftime("%H:%M:%S")
        return ""

    def _get_block_style(self, block_type: BlockType) -> tuple[str, str]:
        styles = {
            "info": (self.config.color_info, "INFO"),
            "success": (self.config.color_success, "OK"),
            "failure": (self.config.color_failure, "FAILED"),
        }
        return styles[block_type]

    def print_block(
        self,
        content,
        block_type: BlockType = "info",
        title: Optional[str] = None,
    ) -> None:
        """
        Print a styled block to the console.

        Args:
            content: Text or renderable to display
            block_type: Type of block (info, success, failure)
            title: Optional title to override default label
        """
        color, label = self._get_block_style(block_type)
        block_title = title or f"[{label}]"

        timestamp = self.get_timestamp()
        if timestamp:
            block_title = f"{timestamp} {block_title}"

        panel = Panel(
            content,
            title=block_title,
            title_align="left",
            border_style=color,
            padding=(0, 1),
        )
        self.console.print(panel)

    def print(self, *args, **kwargs) -> None:
        """Passthrough to underlying Rich console."""
        self.console.print(*args, **kwargs)


# Global console instance
_console: Optional[ControlConsole] = None


def get_console() -> ControlConsole:
    """Get or create the global console instance."""
    global _console
    if _console is None:
        _console = ControlConsole()
    return _console


def create_console(
    config: Optional[TUIConfig] = None,
    console: Optional[Console] = None,
) -> ControlConsole:
    """
    Create a new console instance with optional configuration.

    Args:
        config: TUI configuration. If None, loads from environment.
        console: Underlying Rich console, e.g. one recording output in tests
    """
    return ControlConsole(config, console)
