"""
Flows

A flow is a saved script replayed once against a fresh, disposable browser.
Flows live in ``flows/<name>.flow`` and may carry header comments:

    # Start URL: https://example.com/login
    # Generated: 2026-10-18T09:30:00+00:00

The runner never touches the session registry.
"""

import logging
import re
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Optional

from .browser.controller import BrowserController, create_browser
from .browser.session import BrowserFactory, BrowserSession
from .errors import NotFoundError, ScriptError, ValidationError
from .models import FlowInfo, FlowResult, Inspection
from .profiles import ProfileStore, utc_now, validate_name
from .tools import inspector
from .tools.actions import format_script, parse_script, run_steps

if TYPE_CHECKING:
    from .config import ServiceConfig

logger = logging.getLogger(__name__)

FLOW_EXTENSION = ".flow"

START_URL_HEADER = re.compile(r"^\s*(?:#|//)\s*Start URL:\s*(\S+)", re.IGNORECASE | re.MULTILINE)
GENERATED_HEADER = re.compile(r"^\s*(?:#|//)\s*Generated:\s*(.+?)\s*$", re.IGNORECASE | re.MULTILINE)


@dataclass
class Flow:
    """A flow script loaded from disk."""

    name: str
    path: Path
    body: str

    @property
    def start_url(self) -> Optional[str]:
        match = START_URL_HEADER.search(self.body)
        return match.group(1) if match else None

    @property
    def generated_at(self) -> Optional[str]:
        match = GENERATED_HEADER.search(self.body)
        if match:
            return match.group(1)
        try:
            mtime = self.path.stat().st_mtime
        except OSError:
            return None
        return datetime.fromtimestamp(mtime, tz=timezone.utc).isoformat()

    def info(self) -> FlowInfo:
        try:
            steps = len(parse_script(self.body))
        except ScriptError:
            steps = None
        return FlowInfo(
            name=self.name,
            path=str(self.path),
            start_url=self.start_url,
            generated_at=self.generated_at,
            steps=steps,
        )


class FlowStore:
    """Reads flow scripts from, and exports session logs to, the flows directory."""

    def __init__(self, flows_dir: Path):
        self.flows_dir = Path(flows_dir)

    def path_for(self, name: str) -> Path:
        validate_name(name, kind="flow")
        return self.flows_dir / f"{name}{FLOW_EXTENSION}"

    def get(self, name: str) -> Flow:
        path = self.path_for(name)
        if not path.is_file():
            raise NotFoundError(f"Flow '{name}' not found in {self.flows_dir}")
        return Flow(name=name, path=path, body=path.read_text(encoding="utf-8"))

    def list(self) -> list[FlowInfo]:
        if not self.flows_dir.is_dir():
            return []
        flows = []
        for path in sorted(self.flows_dir.glob(f"*{FLOW_EXTENSION}")):
            flow = Flow(name=path.stem, path=path, body=path.read_text(encoding="utf-8"))
            flows.append(flow.info())
        return flows

    def export(self, name: str, session: BrowserSession, overwrite: bool = False) -> FlowInfo:
        """
        Write a session's chunk log as a replayable flow.

        Each chunk is re-parsed and written in line form under a
        ``# --- <label>`` marker.
        """
        path = self.path_for(name)
        if path.exists() and not overwrite:
            raise ValidationError(
                f"Flow '{name}' already exists. Pass {{\"overwrite\": true}} to replace it."
            )
        if not session.chunks:
            raise ValidationError(f"Session '{session.name}' has no recorded chunks to export")

        lines = [
            f"# Flow: {name}",
            f"# Start URL: {session.start_url}",
            f"# Generated: {utc_now()}",
        ]
        for chunk in session.chunks:
            lines.append("")
            lines.append(f"# --- {chunk.label}")
            lines.append(format_script(parse_script(chunk.code)))

        self.flows_dir.mkdir(parents=True, exist_ok=True)
        path.write_text("\n".join(lines) + "\n", encoding="utf-8")
        logger.info(f"Exported {len(session.chunks)} chunks from '{session.name}' to {path}")
        return self.get(name).info()


class FlowRunner:
    """
    Runs a flow once in an ephemeral browser.

    The browser is always closed and a final inspection is always
    attempted, whether the flow passes or fails.
    """

    def __init__(
        self,
        config: "ServiceConfig",
        flow_store: FlowStore,
        profile_store: ProfileStore,
        browser_factory: BrowserFactory = create_browser,
    ):
        self.config = config
        self.flow_store = flow_store
        self.profile_store = profile_store
        self.browser_factory = browser_factory

    def resolve_start_url(self, flow: Flow, override: Optional[str] = None) -> str:
        start_url = override or flow.start_url
        if not start_url:
            raise ValidationError(
                f"No start URL specified for flow '{flow.name}'. "
                "Pass {\"startUrl\": \"https://...\"} or add a '# Start URL: <url>' header to the flow."
            )
        return start_url

    async def run(
        self,
        name: str,
        profile: Optional[str] = None,
        start_url: Optional[str] = None,
        headless: Optional[bool] = None,
    ) -> FlowResult:
        """
        Run flow ``name`` from start to finish.

        Args:
            name: Flow name (file stem)
            profile: Auth profile to hydrate the browser from
            start_url: Overrides the flow's Start URL header
            headless: Override the configured headless mode

        Returns:
            FlowResult with status "passed" or "failed"

        Raises:
            NotFoundError: unknown flow
            ValidationError: no start URL could be determined (no browser is launched)
        """
        flow = self.flow_store.get(name)
        url = self.resolve_start_url(flow, start_url)

        storage_state = None
        if profile is not None and self.profile_store.has_state(profile):
            storage_state = self.profile_store.state_path(profile)

        browser = self.browser_factory(self.config.browser.with_headless(headless), storage_state)
        started = time.monotonic()
        error: Optional[str] = None
        inspection: Optional[Inspection] = None

        logger.info(f"Running flow '{name}' from {url}")
        try:
            await browser.initialize()
            await browser.page.goto(url, wait_until="domcontentloaded", timeout=self.config.start_timeout_ms)
            if self.config.settle_ms:
                await browser.page.wait_for_timeout(self.config.settle_ms)
            await run_steps(browser.page, parse_script(flow.body))
        except Exception as e:
            error = str(e)
            logger.info(f"Flow '{name}' failed: {error}")
        finally:
            inspection = await self._final_inspection(browser)
            await browser.close()

        return FlowResult(
            flow=name,
            status="failed" if error is not None else "passed",
            start_url=url,
            error=error,
            inspection=inspection,
            duration_ms=int((time.monotonic() - started) * 1000),
        )

    async def _final_inspection(self, browser: BrowserController) -> Optional[Inspection]:
        if not browser.is_initialized:
            return None
        try:
            return await inspector.capture(browser.page)
        except Exception as e:
            logger.warning(f"Final flow inspection failed: {e}")
            return None
