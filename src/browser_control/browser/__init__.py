"""
Browser Session Module

Provides Playwright browser management, named sessions and the session
registry for the control plane.
"""

from .controller import BrowserController, BrowserConfig, create_browser
from .session import BrowserSession, SessionState
from .registry import SessionRegistry, resolve_session_name

__all__ = [
    "BrowserController",
    "BrowserConfig",
    "create_browser",
    "BrowserSession",
    "SessionState",
    "SessionRegistry",
    "resolve_session_name",
]
