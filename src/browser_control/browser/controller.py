"""
Browser Controller

Manages one Playwright browser process with a single context and page.
Every session and every flow run owns its own controller; controllers are
never shared.
"""

import logging
import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Literal, Optional, Union

from playwright.async_api import (
    async_playwright,
    Browser,
    BrowserContext,
    Page,
    Playwright,
)

logger = logging.getLogger(__name__)


BrowserType = Literal["chromium", "firefox", "webkit"]

# Storage state accepted by Playwright: a path to a JSON file or the parsed dict
StorageState = Union[str, Path, dict[str, Any]]


@dataclass
class BrowserConfig:
    """
    Configuration for browser instances.

    Reads from environment variables with sensible defaults.
    """

    # Browser type (chromium is Playwright's Chrome-based browser)
    browser_type: BrowserType = "chromium"

    # Headless by default; sessions are driven remotely
    headless: bool = True

    # Viewport size
    viewport_width: int = 1280
    viewport_height: int = 720

    # Slow motion delay in ms (useful for debugging)
    slow_mo: int = 0

    # Default timeout for page actions in ms
    action_timeout: int = 30000

    @classmethod
    def from_env(cls) -> "BrowserConfig":
        """
        Create BrowserConfig from environment variables.

        Environment variables:
            BROWSER_TYPE: chromium, firefox, or webkit (default: chromium)
            BROWSER_HEADLESS: true/false (default: true)
            BROWSER_VIEWPORT_WIDTH: int (default: 1280)
            BROWSER_VIEWPORT_HEIGHT: int (default: 720)
            BROWSER_SLOW_MO: int in ms (default: 0)
            ACTION_TIMEOUT_MS: int in ms (default: 30000)
        """
        # Map config browser type to Playwright's expected values
        env_type = os.getenv("BROWSER_TYPE", "chromium").lower()
        browser_type_map = {
            "chrome": "chromium",
            "chromium": "chromium",
            "firefox": "firefox",
            "webkit": "webkit",
            "safari": "webkit",
        }
        browser_type = browser_type_map.get(env_type, "chromium")

        headless_str = os.getenv("BROWSER_HEADLESS", "true").lower()
        headless = headless_str in ("true", "1", "yes")

        return cls(
            browser_type=browser_type,
            headless=headless,
            viewport_width=int(os.getenv("BROWSER_VIEWPORT_WIDTH", "1280")),
            viewport_height=int(os.getenv("BROWSER_VIEWPORT_HEIGHT", "720")),
            slow_mo=int(os.getenv("BROWSER_SLOW_MO", "0")),
            action_timeout=int(os.getenv("ACTION_TIMEOUT_MS", "30000")),
        )

    def with_headless(self, headless: Optional[bool]) -> "BrowserConfig":
        """Return a copy with ``headless`` overridden, unless it is None."""
        if headless is None:
            return self
        return replace(self, headless=headless)


class BrowserController:
    """
    Controls one Playwright browser, context and page.

    Usage:
        >>> async with BrowserController(config, storage_state=path) as browser:
        ...     await browser.page.goto("https://example.com")
    """

    def __init__(
        self,
        config: Optional[BrowserConfig] = None,
        storage_state: Optional[StorageState] = None,
    ):
        """
        Initialize browser controller.

        Args:
            config: Browser configuration (uses env if None)
            storage_state: Saved cookies/local storage to hydrate the context from
        """
        self.config = config or BrowserConfig.from_env()
        self.initial_state = storage_state

        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._context: Optional[BrowserContext] = None
        self._page: Optional[Page] = None

    @property
    def is_initialized(self) -> bool:
        """Check if browser is initialized."""
        return self._browser is not None

    @property
    def page(self) -> Page:
        if self._page is None:
            raise RuntimeError("Browser not initialized")
        return self._page

    @property
    def context(self) -> BrowserContext:
        if self._context is None:
            raise RuntimeError("Browser not initialized")
        return self._context

    async def initialize(self) -> None:
        """Start Playwright, launch the browser and open the single page."""
        if self._playwright is not None:
            return

        self._playwright = await async_playwright().start()

        launcher = self._get_browser_launcher()
        self._browser = await launcher.launch(
            headless=self.config.headless,
            slow_mo=self.config.slow_mo,
        )

        context_options: dict[str, Any] = {
            "viewport": {
                "width": self.config.viewport_width,
                "height": self.config.viewport_height,
            },
        }
        if self.initial_state is not None:
            context_options["storage_state"] = (
                self.initial_state
                if isinstance(self.initial_state, dict)
                else str(self.initial_state)
            )

        self._context = await self._browser.new_context(**context_options)
        self._page = await self._context.new_page()
        self._page.set_default_timeout(self.config.action_timeout)

    def _get_browser_launcher(self):
        """Get the appropriate browser launcher based on config."""
        if self._playwright is None:
            raise RuntimeError("Playwright not initialized")

        launchers = {
            "chromium": self._playwright.chromium,
            "firefox": self._playwright.firefox,
            "webkit": self._playwright.webkit,
        }
        return launchers.get(self.config.browser_type, self._playwright.chromium)

    async def storage_state(self) -> dict[str, Any]:
        """Serialize the context's cookies and local storage."""
        return await self.context.storage_state()

    async def close(self) -> None:
        """Close the browser and release Playwright. Never raises."""
        if self._page is not None:
            try:
                await self._page.close()
            except Exception as e:
                logger.debug(f"Ignoring page close error: {e}")
            self._page = None

        if self._context is not None:
            try:
                await self._context.close()
            except Exception as e:
                logger.debug(f"Ignoring context close error: {e}")
            self._context = None

        if self._browser is not None:
            try:
                await self._browser.close()
            except Exception as e:
                logger.warning(f"Browser close failed: {e}")
            self._browser = None

        if self._playwright is not None:
            try:
                await self._playwright.stop()
            except Exception as e:
                logger.debug(f"Ignoring Playwright stop error: {e}")
            self._playwright = None

    async def __aenter__(self) -> "BrowserController":
        """Async context manager entry."""
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.close()


def create_browser(
    config: Optional[BrowserConfig] = None,
    storage_state: Optional[StorageState] = None,
) -> BrowserController:
    """
    Factory function to create a browser controller.

    Sessions and the flow runner accept any callable with this signature,
    which is how tests substitute a fake browser.

    Args:
        config: Browser configuration (uses env if None)
        storage_state: Saved auth state to hydrate the context from

    Returns:
        BrowserController instance (not yet initialized)
    """
    return BrowserController(config, storage_state=storage_state)
