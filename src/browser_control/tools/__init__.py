"""
Page Tools

- Page inspection (screenshot + DOM snapshot)
- Script actions available to chunks and flows
"""

from .inspector import capture, SNAPSHOT_JS
from .actions import (
    Step,
    execute_script,
    format_script,
    parse_script,
    run_steps,
)
from .base import ActionSpec, action, get_action, get_all_actions, get_action_schemas

__all__ = [
    # Inspection
    "capture",
    "SNAPSHOT_JS",
    # Scripts
    "Step",
    "execute_script",
    "format_script",
    "parse_script",
    "run_steps",
    # Base
    "ActionSpec",
    "action",
    "get_action",
    "get_all_actions",
    "get_action_schemas",
]
