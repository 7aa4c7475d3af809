"""
Unit tests for configuration loading and the browser controller's
pre-launch behavior.
"""

import logging
from pathlib import Path

import pytest

from browser_control.browser import BrowserConfig, BrowserController, create_browser
from browser_control.config import ServiceConfig, get_log_level


ENV_VARS = (
    "BROWSER_CONTROL_HOME",
    "PROFILES_DIR",
    "SESSIONS_DIR",
    "FLOWS_DIR",
    "BROWSER_CONTROL_HOST",
    "BROWSER_CONTROL_PORT",
    "BROWSER_TYPE",
    "BROWSER_HEADLESS",
    "SETTLE_MS",
    "LOG_LEVEL",
)


@pytest.fixture
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestServiceConfig:
    def test_directories_derive_from_home(self, tmp_path):
        config = ServiceConfig(home=tmp_path)

        assert config.profiles_dir == tmp_path / "profiles"
        assert config.sessions_dir == tmp_path / "sessions"
        assert config.flows_dir == tmp_path / "flows"

    def test_defaults(self, clean_env):
        config = ServiceConfig.from_env()

        assert config.home == Path(".")
        assert (config.host, config.port) == ("127.0.0.1", 3456)
        assert config.start_timeout_ms == 120000
        assert config.navigate_timeout_ms == 60000
        assert config.browser.headless is True
        assert config.browser.action_timeout == 30000

    def test_env_overrides(self, clean_env, tmp_path):
        clean_env.setenv("BROWSER_CONTROL_HOME", str(tmp_path))
        clean_env.setenv("FLOWS_DIR", str(tmp_path / "elsewhere"))
        clean_env.setenv("BROWSER_CONTROL_PORT", "8080")
        clean_env.setenv("BROWSER_HEADLESS", "false")
        clean_env.setenv("BROWSER_TYPE", "safari")
        clean_env.setenv("SETTLE_MS", "0")

        config = ServiceConfig.from_env()

        assert config.profiles_dir == tmp_path / "profiles"
        assert config.flows_dir == tmp_path / "elsewhere"
        assert config.port == 8080
        assert config.settle_ms == 0
        assert config.browser.headless is False
        assert config.browser.browser_type == "webkit"


class TestLogLevel:
    def test_default(self, clean_env):
        assert get_log_level() == logging.INFO

    def test_invalid_level_falls_back(self, clean_env, capsys):
        clean_env.setenv("LOG_LEVEL", "chatty")
        assert get_log_level() == logging.INFO
        assert "Invalid LOG_LEVEL" in capsys.readouterr().err


class TestBrowserConfig:
    def test_with_headless_none_keeps_config(self):
        config = BrowserConfig()
        assert config.with_headless(None) is config

    def test_with_headless_copies(self):
        config = BrowserConfig(headless=True)
        headed = config.with_headless(False)

        assert headed.headless is False
        assert config.headless is True


class TestBrowserControllerBeforeLaunch:
    def test_page_requires_initialize(self):
        controller = create_browser(BrowserConfig(), storage_state={"cookies": [], "origins": []})

        assert controller.is_initialized is False
        assert controller.initial_state == {"cookies": [], "origins": []}
        with pytest.raises(RuntimeError):
            controller.page
        with pytest.raises(RuntimeError):
            controller.context

    @pytest.mark.asyncio
    async def test_close_without_launch_is_a_no_op(self):
        controller = BrowserController(BrowserConfig())
        await controller.close()
        assert controller.is_initialized is False
