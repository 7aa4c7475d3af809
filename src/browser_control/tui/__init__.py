"""
Rich TUI Interface Module

Terminal output for the browser-control command-line interface.
"""

from browser_control.tui.console import (
    BlockType,
    ControlConsole,
    TUIConfig,
    create_console,
    get_console,
)
from browser_control.tui.result import (
    format_inspection,
    print_actions,
    print_error,
    print_flow_result,
    print_flows,
    print_profiles,
)

__all__ = [
    # Console infrastructure
    "BlockType",
    "ControlConsole",
    "TUIConfig",
    "create_console",
    "get_console",
    # Result display
    "format_inspection",
    "print_actions",
    "print_error",
    "print_flow_result",
    "print_flows",
    "print_profiles",
]
