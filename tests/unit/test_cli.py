"""
Unit tests for the command-line entry point and its rich output.
"""

import pytest
from rich.console import Console

from browser_control.main import main, parse_args
from browser_control.models import FlowResult, Inspection
from browser_control.profiles import ProfileStore
from browser_control.tui import create_console, print_flow_result
from browser_control.tui.console import TUIConfig


@pytest.fixture
def home(tmp_path, monkeypatch):
    monkeypatch.setenv("BROWSER_CONTROL_HOME", str(tmp_path))
    for name in ("PROFILES_DIR", "SESSIONS_DIR", "FLOWS_DIR"):
        monkeypatch.delenv(name, raising=False)
    return tmp_path


class TestParseArgs:
    def test_serve_defaults_come_from_config(self):
        args = parse_args(["serve"])
        assert args.command == "serve"
        assert args.host is None and args.port is None
        assert args.headed is False

    def test_run_flow_options(self):
        args = parse_args(["-v", "run-flow", "login", "--profile", "work", "--start-url", "https://x.test"])
        assert args.verbose is True
        assert (args.name, args.profile, args.start_url) == ("login", "work", "https://x.test")

    def test_command_is_required(self):
        with pytest.raises(SystemExit):
            parse_args([])


def test_actions_lists_registry(home, capsys):
    assert main(["actions"]) == 0
    assert "click" in capsys.readouterr().out


def test_profiles_lists_saved_profiles(home, capsys):
    ProfileStore(home / "profiles").save_state("work", {"cookies": []}, description="Work SSO")

    assert main(["profiles"]) == 0
    assert "work" in capsys.readouterr().out


def test_flows_on_empty_home(home):
    assert main(["flows"]) == 0


def test_unknown_flow_exits_with_2(home):
    assert main(["run-flow", "missing"]) == 2


def test_flow_without_start_url_exits_with_2(home):
    (home / "flows").mkdir()
    (home / "flows" / "bare.flow").write_text("click #a\n")

    assert main(["run-flow", "bare"]) == 2


def test_flow_result_panel():
    recorder = Console(record=True, width=100)
    console = create_console(TUIConfig(show_timestamps=False), recorder)
    result = FlowResult(
        flow="login",
        status="failed",
        start_url="https://example.com/login",
        error="line 4 (click): Timeout 30000ms exceeded",
        inspection=Inspection(url="https://example.com/login", title="Sign in"),
    )

    print_flow_result(result, console)

    output = recorder.export_text()
    assert "login" in output
    assert "line 4 (click)" in output
    assert "https://example.com/login" in output
