"""Shared fixtures for control plane tests."""

import pytest

from browser_control.browser.session import BrowserSession
from browser_control.config import ServiceConfig
from browser_control.profiles import ProfileStore

from fakes import FakeBrowserFactory


@pytest.fixture
def config(tmp_path) -> ServiceConfig:
    """Service config rooted in a temp dir with no settle delays."""
    return ServiceConfig(home=tmp_path, settle_ms=0, chunk_settle_ms=0)


@pytest.fixture
def profile_store(config) -> ProfileStore:
    return ProfileStore(config.profiles_dir)


@pytest.fixture
def browser_factory() -> FakeBrowserFactory:
    return FakeBrowserFactory()


@pytest.fixture
def make_session(config, profile_store, browser_factory):
    """Build unstarted sessions wired to the fake browser factory."""

    def _make(name: str = "default") -> BrowserSession:
        return BrowserSession(name, config, profile_store, browser_factory)

    return _make
