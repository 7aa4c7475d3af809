"""
Session Registry

Owns the name -> session map. At most one session exists per name:
creating a session under a taken name stops the old one first, atomically
with respect to other creates for the same name.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, Iterable, Optional, Union

from ..errors import AmbiguityError, EmptyRegistryError, NotFoundError, ValidationError
from ..models import SessionStatus, StopSummary
from .session import BrowserSession

logger = logging.getLogger(__name__)

DEFAULT_SESSION_NAME = "default"

SessionFactory = Callable[[str], BrowserSession]


# ============================================================================
# Resolution policy
# ============================================================================


@dataclass(frozen=True)
class Resolved:
    name: str


@dataclass(frozen=True)
class Empty:
    pass


@dataclass(frozen=True)
class Ambiguous:
    names: tuple[str, ...]


Resolution = Union[Resolved, Empty, Ambiguous]


def resolve_session_name(
    explicit_name: Optional[str],
    active_names: Iterable[str],
) -> Resolution:
    """
    Decide which session a request targets.

    An explicit name always wins (existence is checked by the caller).
    Otherwise: the only session, else the one named "default", else
    ambiguous.
    """
    if explicit_name:
        return Resolved(explicit_name)

    names = sorted(active_names)
    if not names:
        return Empty()
    if len(names) == 1:
        return Resolved(names[0])
    if DEFAULT_SESSION_NAME in names:
        return Resolved(DEFAULT_SESSION_NAME)
    return Ambiguous(tuple(names))


# ============================================================================
# Registry
# ============================================================================


class SessionRegistry:
    """
    In-memory registry of live browser sessions.

    Usage:
        >>> registry = SessionRegistry(lambda name: BrowserSession(name, config, store))
        >>> session, inspection = await registry.create("a", "https://example.com")
        >>> registry.resolve().name
        'a'
    """

    def __init__(self, session_factory: SessionFactory):
        """
        Args:
            session_factory: Builds an unstarted session for a name
        """
        self.session_factory = session_factory
        self._sessions: dict[str, BrowserSession] = {}
        # name -> lock, plus how many creates currently hold or await it
        self._create_locks: dict[str, asyncio.Lock] = {}
        self._create_waiters: dict[str, int] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, name: str) -> bool:
        return name in self._sessions

    def names(self) -> list[str]:
        return sorted(self._sessions)

    def get(self, name: str) -> BrowserSession:
        session = self._sessions.get(name)
        if session is None:
            raise NotFoundError(f"Session '{name}' not found. Active sessions: {self._describe()}")
        return session

    def _describe(self) -> str:
        return ", ".join(self.names()) or "none"

    async def create(
        self,
        name: str,
        url: str,
        profile: Optional[str] = None,
        headless: Optional[bool] = None,
    ):
        """
        Start a new session under ``name``, replacing any existing one.

        Returns:
            Tuple of (session, initial inspection)
        """
        if not name:
            raise ValidationError("Session name must not be empty")
        if not url:
            raise ValidationError(
                "Missing 'url'. Send the page to open, e.g. {\"url\": \"https://example.com\"}"
            )

        lock = self._create_locks.setdefault(name, asyncio.Lock())
        self._create_waiters[name] = self._create_waiters.get(name, 0) + 1
        try:
            async with lock:
                if name in self._sessions:
                    logger.info(f"Replacing existing session '{name}'")
                    await self.remove(name)

                session = self.session_factory(name)
                inspection = await session.start(url, profile=profile, headless=headless)
                self._sessions[name] = session
                return session, inspection
        finally:
            self._create_waiters[name] -= 1
            if not self._create_waiters[name]:
                del self._create_waiters[name]
                del self._create_locks[name]

    def resolve(self, explicit_name: Optional[str] = None) -> BrowserSession:
        """
        Find the session a request refers to.

        Raises:
            NotFoundError: explicit name is not registered
            EmptyRegistryError: no sessions at all
            AmbiguityError: several sessions and none chosen
        """
        resolution = resolve_session_name(explicit_name, self._sessions)
        if isinstance(resolution, Resolved):
            return self.get(resolution.name)
        if isinstance(resolution, Empty):
            raise EmptyRegistryError()
        raise AmbiguityError(resolution.names)

    def statuses(self) -> list[SessionStatus]:
        return [self._sessions[name].status() for name in self.names()]

    async def remove(self, name: str) -> StopSummary:
        """
        Stop a session and drop it from the registry.

        The entry is removed even if stop() raises.
        """
        session = self.get(name)
        try:
            return await session.stop()
        finally:
            if self._sessions.get(name) is session:
                del self._sessions[name]

    async def stop_all(self) -> list[StopSummary]:
        """Stop every session, one at a time."""
        summaries = []
        for name in self.names():
            try:
                summaries.append(await self.remove(name))
            except Exception as e:
                logger.error(f"Failed to stop session '{name}': {e}")
        return summaries
