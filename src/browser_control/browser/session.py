"""
Browser Session

A named, stateful binding to one browser/context/page plus its execution
history. Lifecycle:

    STARTING -> ACTIVE -> STOPPING -> STOPPED

STOPPED is terminal. Page operations are serialized per session, while
different sessions run concurrently on the event loop. stop() never waits
behind a running operation.
"""

import asyncio
import logging
import re
import uuid
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Callable, Optional
from urllib.parse import urlparse

from ..errors import InvalidStateError, ValidationError
from ..models import (
    AuthOutcome,
    AuthSaveResult,
    Chunk,
    ChunkResult,
    Inspection,
    SessionReview,
    SessionStatus,
    StopSummary,
)
from ..profiles import ProfileStore, utc_now
from ..tools import inspector
from ..tools.actions import execute_script
from .controller import BrowserConfig, BrowserController, StorageState, create_browser

if TYPE_CHECKING:
    from ..config import ServiceConfig

logger = logging.getLogger(__name__)


# Signature shared by create_browser and test doubles
BrowserFactory = Callable[[BrowserConfig, Optional[StorageState]], BrowserController]

MAX_SLUG_LENGTH = 50


class SessionState(Enum):
    """Lifecycle states of a browser session."""

    STARTING = "starting"
    ACTIVE = "active"
    STOPPING = "stopping"
    STOPPED = "stopped"


def slugify(label: str, max_length: int = MAX_SLUG_LENGTH) -> str:
    """Lower-case, collapse anything but [a-z0-9] to '-', trim and truncate."""
    slug = re.sub(r"[^a-z0-9]+", "-", (label or "").lower()).strip("-")
    slug = slug[:max_length].rstrip("-")
    return slug or "screenshot"


def label_for_url(url: str) -> str:
    """Screenshot label for a navigation: the URL path with slashes as dashes."""
    path = urlparse(url).path.strip("/")
    return path.replace("/", "-") or "home"


class BrowserSession:
    """
    One live browser session.

    Provides:
    - Launch and initial navigation, hydrated from an auth profile
    - Scripted chunk execution with an inspection after every chunk
    - Navigation and on-demand inspection
    - Auth profile persistence, including a final save on stop
    """

    def __init__(
        self,
        name: str,
        config: "ServiceConfig",
        profile_store: ProfileStore,
        browser_factory: BrowserFactory = create_browser,
    ):
        """
        Initialize a session. Nothing is launched until start().

        Args:
            name: Caller-chosen session name
            config: Service configuration (paths, timeouts, browser settings)
            profile_store: Store used to hydrate and persist auth state
            browser_factory: Builds the browser controller
        """
        self.name = name
        self.config = config
        self.profile_store = profile_store
        self.browser_factory = browser_factory

        self.session_id: Optional[str] = None
        self.profile: Optional[str] = None
        self.start_url: Optional[str] = None
        self.created_at: Optional[str] = None
        self.state = SessionState.STARTING
        self.screenshot_index = 0

        self._chunks: list[Chunk] = []
        self._browser: Optional[BrowserController] = None
        self._lock = asyncio.Lock()

    # ------------------------------------------------------------------ #
    # Properties
    # ------------------------------------------------------------------ #

    @property
    def is_active(self) -> bool:
        return self.state is SessionState.ACTIVE

    @property
    def chunks(self) -> tuple[Chunk, ...]:
        """Executed chunks, oldest first. Read-only view."""
        return tuple(self._chunks)

    @property
    def session_dir(self) -> Path:
        if self.session_id is None:
            raise InvalidStateError(f"Session '{self.name}' has not been started")
        return self.config.sessions_dir / self.session_id

    @property
    def screenshots_dir(self) -> Path:
        return self.session_dir / "screenshots"

    @property
    def page(self):
        if self._browser is None:
            raise InvalidStateError(f"Session '{self.name}' has no browser")
        return self._browser.page

    @property
    def url(self) -> Optional[str]:
        if self._browser is None or not self._browser.is_initialized:
            return None
        try:
            return self._browser.page.url
        except RuntimeError:
            return None

    def _require_active(self) -> None:
        if self.state is not SessionState.ACTIVE:
            raise InvalidStateError(
                f"Session '{self.name}' is {self.state.value}; create a new one with POST /sessions"
            )

    # ------------------------------------------------------------------ #
    # Screenshots
    # ------------------------------------------------------------------ #

    def next_screenshot_path(self, label: str) -> Path:
        """
        Reserve the next screenshot index and return its path.

        The index is consumed even if the capture later fails, so indices
        are never reused and file names sort in chronological order.
        """
        self.screenshot_index += 1
        return self.screenshots_dir / f"{self.screenshot_index:03d}-{slugify(label)}.png"

    async def _capture(self, label: str, full_page: bool = False) -> Inspection:
        return await inspector.capture(
            self.page,
            self.next_screenshot_path(label),
            full_page=full_page,
        )

    async def _goto(self, url: str, timeout_ms: int) -> None:
        await self.page.goto(url, wait_until="domcontentloaded", timeout=timeout_ms)
        if self.config.settle_ms:
            await self.page.wait_for_timeout(self.config.settle_ms)

    # ------------------------------------------------------------------ #
    # Lifecycle
    # ------------------------------------------------------------------ #

    async def start(
        self,
        url: str,
        profile: Optional[str] = None,
        headless: Optional[bool] = None,
    ) -> Inspection:
        """
        Launch the browser, navigate to ``url`` and take the first inspection.

        Args:
            url: Start URL
            profile: Auth profile to hydrate from and bind to
            headless: Override the configured headless mode

        Returns:
            Inspection of the loaded page (screenshot index 1)
        """
        if self.state is not SessionState.STARTING or self.session_id is not None:
            raise InvalidStateError(f"Session '{self.name}' was already started")

        self.session_id = uuid.uuid4().hex[:12]
        self.profile = profile
        self.start_url = url
        self.created_at = utc_now()
        self.screenshots_dir.mkdir(parents=True, exist_ok=True)

        storage_state = None
        if profile is not None and self.profile_store.has_state(profile):
            storage_state = self.profile_store.state_path(profile)
            logger.info(f"Session '{self.name}' hydrating from profile '{profile}'")

        browser_config = self.config.browser.with_headless(headless)
        self._browser = self.browser_factory(browser_config, storage_state)

        try:
            await self._browser.initialize()
            await self._goto(url, self.config.start_timeout_ms)
            inspection = await self._capture("initial")
        except Exception:
            logger.warning(f"Session '{self.name}' failed to start; closing browser")
            await self._browser.close()
            self.state = SessionState.STOPPED
            raise

        self.state = SessionState.ACTIVE
        logger.info(f"Session '{self.name}' ({self.session_id}) started at {url}")
        return inspection

    async def stop(self) -> StopSummary:
        """
        Persist auth (if bound to a saved profile) and close the browser.

        Does not wait for an in-flight operation: closing the browser makes
        its pending page calls fail, so it ends as a failed chunk. A failed
        or skipped auth save is logged and reported in the summary; it never
        prevents the browser from closing.
        """
        if self.state in (SessionState.STOPPING, SessionState.STOPPED):
            return self._summary(AuthOutcome())

        self.state = SessionState.STOPPING
        auth = AuthOutcome(profile=self.profile)

        if self.profile is not None and self._browser is not None:
            if self.profile_store.get_meta(self.profile) is None:
                auth.error = (
                    f"Profile '{self.profile}' was never saved. Description required for new "
                    "profiles; use POST /save-auth with a description to create it."
                )
                logger.warning(f"Session '{self.name}': {auth.error}")
            else:
                try:
                    await asyncio.wait_for(
                        self._persist_auth(self.profile, None),
                        timeout=self.config.browser.action_timeout / 1000,
                    )
                    auth.saved = True
                except Exception as e:
                    auth.error = str(e) or type(e).__name__
                    logger.warning(
                        f"Session '{self.name}': final auth save to '{self.profile}' failed: {auth.error}"
                    )

        if self._browser is not None:
            await self._browser.close()

        self.state = SessionState.STOPPED
        logger.info(
            f"Session '{self.name}' stopped "
            f"({len(self._chunks)} chunks, {self.screenshot_index} screenshots)"
        )
        return self._summary(auth)

    def _summary(self, auth: AuthOutcome) -> StopSummary:
        return StopSummary(
            name=self.name,
            session_id=self.session_id,
            chunks_recorded=len(self._chunks),
            screenshots_taken=self.screenshot_index,
            auth=auth,
        )

    # ------------------------------------------------------------------ #
    # Operations
    # ------------------------------------------------------------------ #

    async def run_chunk(self, code: str, label: Optional[str] = None) -> ChunkResult:
        """
        Execute a script against the live page.

        Script failures are returned as ``chunk_failed`` with a best-effort
        inspection; they are never raised.

        Args:
            code: Script body in the action language
            label: Label for the chunk and its screenshot

        Returns:
            ChunkResult with an inspection taken after the chunk ran
        """
        if not code or not code.strip():
            raise ValidationError("Missing 'code'. Send the script to run, e.g. {\"code\": \"click '#login'\"}")

        async with self._lock:
            self._require_active()
            label = label or f"chunk-{len(self._chunks) + 1}"

            try:
                await execute_script(self.page, code)
                if self.config.chunk_settle_ms:
                    await self.page.wait_for_timeout(self.config.chunk_settle_ms)
                # stop() may have closed the browser while the script ran
                self._require_active()
            except Exception as e:
                logger.info(f"Session '{self.name}': chunk '{label}' failed: {e}")
                inspection = None
                try:
                    inspection = await self._capture(f"{label}-failed")
                except Exception as capture_error:
                    logger.warning(
                        f"Session '{self.name}': could not inspect after failed chunk: {capture_error}"
                    )
                return ChunkResult(
                    type="chunk_failed",
                    session=self.name,
                    label=label,
                    error=str(e),
                    inspection=inspection,
                )

            chunk = Chunk(
                index=len(self._chunks) + 1,
                label=label,
                code=code,
                executed_at=utc_now(),
            )
            self._chunks.append(chunk)
            inspection = await self._capture(label)
            return ChunkResult(
                type="chunk_complete",
                session=self.name,
                label=label,
                chunk=chunk,
                inspection=inspection,
            )

    async def navigate(self, url: str, full_page: bool = False) -> Inspection:
        """Navigate to ``url`` and inspect the result."""
        if not url:
            raise ValidationError("Missing 'url'. Send the page to open, e.g. {\"url\": \"https://example.com\"}")

        async with self._lock:
            self._require_active()
            await self._goto(url, self.config.navigate_timeout_ms)
            return await self._capture(label_for_url(url), full_page=full_page)

    async def inspect(self, full_page: bool = False) -> Inspection:
        """Inspect the current page, with a screenshot."""
        async with self._lock:
            self._require_active()
            return await self._capture("inspect", full_page=full_page)

    async def save_auth(
        self,
        profile: Optional[str] = None,
        description: Optional[str] = None,
    ) -> AuthSaveResult:
        """
        Save the context's storage state to an auth profile and bind to it.

        Args:
            profile: Profile name (defaults to the bound profile)
            description: Required the first time a profile name is used

        Returns:
            AuthSaveResult describing the stored profile
        """
        async with self._lock:
            self._require_active()

            target = profile or self.profile
            if not target:
                raise ValidationError(
                    "No profile specified. Pass {\"profile\": \"<name>\"} or create the session with a profile."
                )

            is_new = self.profile_store.get_meta(target) is None
            if is_new and not description:
                raise ValidationError(
                    f"Description required for new profiles. Pass {{\"profile\": \"{target}\", "
                    "\"description\": \"what this login is for\"}."
                )

            self.profile = target
            meta = await self._persist_auth(target, description)
            return AuthSaveResult(
                session=self.name,
                profile=target,
                path=str(self.profile_store.state_path(target)),
                description=meta.description,
                created=is_new,
            )

    async def _persist_auth(self, profile: str, description: Optional[str]):
        state = await self._browser.storage_state()
        return self.profile_store.save_state(profile, state, description=description)

    # ------------------------------------------------------------------ #
    # Read models
    # ------------------------------------------------------------------ #

    def status(self) -> SessionStatus:
        return SessionStatus(
            name=self.name,
            active=self.is_active,
            state=self.state.value,
            session_id=self.session_id,
            url=self.url if self.is_active else None,
            start_url=self.start_url,
            profile=self.profile,
            chunks=len(self._chunks),
            screenshot_index=self.screenshot_index,
            created_at=self.created_at,
        )

    def review(self) -> SessionReview:
        return SessionReview(
            name=self.name,
            session_id=self.session_id,
            start_url=self.start_url,
            profile=self.profile,
            chunks=list(self._chunks),
        )
