"""
Script Actions

Chunk and flow bodies are written in a small action language rather than
executed as code. Two equivalent forms are accepted:

Line form, one action per line with shell-style quoting:

    # Start URL: https://example.com/login
    fill "input[name=email]" "me@example.com"
    click "text=Sign in"
    wait_for_url "**/dashboard"

JSON form, a list of objects keyed by parameter name:

    [{"action": "click", "selector": "#login"}]

Blank lines and lines starting with '#' or '//' are comments.
"""

import json
import shlex
from dataclasses import dataclass
from typing import Any, Optional

from playwright.async_api import Page

from ..errors import ExecutionError, ScriptError
from .base import ActionSpec, action, get_action, get_all_actions


COMMENT_PREFIXES = ("#", "//")


@dataclass(frozen=True)
class Step:
    """One parsed action invocation."""

    action: str
    args: tuple[str, ...]
    line: int

    def to_line(self) -> str:
        return shlex.join([self.action, *self.args])


# ============================================================================
# Parsing
# ============================================================================


def _require_action(name: str, line: int) -> ActionSpec:
    spec = get_action(name)
    if spec is None:
        available = ", ".join(sorted(get_all_actions()))
        raise ScriptError(
            f"line {line}: unknown action '{name}'. Available actions: {available}",
            line=line,
        )
    return spec


def _check_arity(name: str, arg_count: int, line: int) -> None:
    spec = _require_action(name, line)
    if not spec.accepts(arg_count):
        raise ScriptError(
            f"line {line}: '{name}' takes {len(spec.params)}"
            + (f"-{len(spec.all_params)}" if len(spec.all_params) > len(spec.params) else "")
            + f" argument(s), got {arg_count}. Usage: {spec.usage}",
            line=line,
        )


def _parse_lines(code: str) -> list[Step]:
    steps = []
    for number, raw in enumerate(code.splitlines(), start=1):
        line = raw.strip()
        if not line or line.startswith(COMMENT_PREFIXES):
            continue
        try:
            tokens = shlex.split(line)
        except ValueError as e:
            raise ScriptError(f"line {number}: {e}", line=number) from e
        name, args = tokens[0].lower(), tuple(tokens[1:])
        _check_arity(name, len(args), number)
        steps.append(Step(action=name, args=args, line=number))
    return steps


def _stringify(value: Any) -> str:
    if isinstance(value, str):
        return value
    return json.dumps(value)


def _parse_json(code: str) -> list[Step]:
    try:
        items = json.loads(code)
    except json.JSONDecodeError as e:
        raise ScriptError(f"line {e.lineno}: invalid JSON script: {e.msg}", line=e.lineno) from e

    if not isinstance(items, list):
        raise ScriptError("JSON script must be a list of action objects")

    steps = []
    for number, item in enumerate(items, start=1):
        if not isinstance(item, dict) or "action" not in item:
            raise ScriptError(f"step {number}: expected an object with an 'action' key", line=number)
        name = str(item["action"]).lower()
        spec = _require_action(name, number)

        missing = [p for p in spec.params if p not in item]
        if missing:
            raise ScriptError(
                f"step {number}: '{name}' is missing {', '.join(missing)}. Usage: {spec.usage}",
                line=number,
            )
        args = [_stringify(item[p]) for p in spec.leading if p in item]
        args += [_stringify(item[p]) for p in spec.params]
        for p in spec.optional:
            if p not in item:
                break
            args.append(_stringify(item[p]))
        steps.append(Step(action=name, args=tuple(args), line=number))
    return steps


def parse_script(code: str) -> list[Step]:
    """
    Parse a script body into steps without touching any page.

    Raises:
        ScriptError: unknown action, wrong argument count, bad quoting or
            an empty script
    """
    if code is None or not code.strip():
        raise ScriptError("Script is empty")

    if code.lstrip().startswith("["):
        steps = _parse_json(code)
    else:
        steps = _parse_lines(code)

    if not steps:
        raise ScriptError("Script contains no actions")
    return steps


def format_script(steps: list[Step]) -> str:
    """Render steps back to the line form."""
    return "\n".join(step.to_line() for step in steps)


# ============================================================================
# Execution
# ============================================================================


async def run_steps(page: Page, steps: list[Step]) -> int:
    """
    Execute parsed steps in order against ``page``.

    Returns:
        Number of steps executed

    Raises:
        ExecutionError: the first step that failed, with its line number
    """
    for step in steps:
        spec = get_action(step.action)
        try:
            await spec.function(page, *step.args)
        except Exception as e:
            raise ExecutionError(
                f"line {step.line} ({step.action}): {e}",
                line=step.line,
                action=step.action,
            ) from e
    return len(steps)


async def execute_script(page: Page, code: str) -> int:
    """Parse and execute a script body as one unit."""
    return await run_steps(page, parse_script(code))


def _to_int(value: str, name: str) -> int:
    try:
        return int(value)
    except ValueError:
        raise ExecutionError(f"{name} must be an integer, got {value!r}") from None


# ============================================================================
# Page actions
# ============================================================================


@action(
    name="goto",
    description="Navigate to a URL and wait for the DOM to load.",
    params=("url",),
)
async def goto(page: Page, url: str) -> None:
    await page.goto(url, wait_until="domcontentloaded")


@action(
    name="click",
    description="Click the first element matching a selector.",
    params=("selector",),
)
async def click(page: Page, selector: str) -> None:
    await page.click(selector)


@action(
    name="dblclick",
    description="Double-click the first element matching a selector.",
    params=("selector",),
)
async def dblclick(page: Page, selector: str) -> None:
    await page.dblclick(selector)


@action(
    name="fill",
    description="Clear an input and fill it with a value.",
    params=("selector", "value"),
)
async def fill(page: Page, selector: str, value: str) -> None:
    await page.fill(selector, value)


@action(
    name="type",
    description="Type text key by key into an element, for inputs that react to keystrokes.",
    params=("selector", "text"),
)
async def type_text(page: Page, selector: str, text: str) -> None:
    await page.locator(selector).first.press_sequentially(text)


@action(
    name="press",
    description="Press a key (e.g. Enter, Tab, Control+A), on an element when a selector is given.",
    params=("key",),
    leading=("selector",),
)
async def press(page: Page, *args: str) -> None:
    if len(args) == 2:
        selector, key = args
        await page.press(selector, key)
    else:
        await page.keyboard.press(args[0])


@action(
    name="check",
    description="Check a checkbox or radio button.",
    params=("selector",),
)
async def check(page: Page, selector: str) -> None:
    await page.check(selector)


@action(
    name="uncheck",
    description="Uncheck a checkbox.",
    params=("selector",),
)
async def uncheck(page: Page, selector: str) -> None:
    await page.uncheck(selector)


@action(
    name="select",
    description="Select an option in a <select> by value or label.",
    params=("selector", "value"),
)
async def select(page: Page, selector: str, value: str) -> None:
    await page.select_option(selector, value)


@action(
    name="hover",
    description="Move the mouse over an element.",
    params=("selector",),
)
async def hover(page: Page, selector: str) -> None:
    await page.hover(selector)


@action(
    name="wait",
    description="Pause for a number of milliseconds.",
    params=("ms",),
)
async def wait(page: Page, ms: str) -> None:
    await page.wait_for_timeout(_to_int(ms, "ms"))


@action(
    name="wait_for",
    description="Wait for an element to reach a state (attached, detached, visible, hidden).",
    params=("selector",),
    optional=("state",),
)
async def wait_for(page: Page, selector: str, state: Optional[str] = None) -> None:
    await page.wait_for_selector(selector, state=state or "visible")


@action(
    name="wait_for_url",
    description="Wait until the page URL matches a glob pattern.",
    params=("pattern",),
)
async def wait_for_url(page: Page, pattern: str) -> None:
    await page.wait_for_url(pattern)


@action(
    name="wait_for_load",
    description="Wait for a load state (load, domcontentloaded, networkidle).",
    optional=("state",),
)
async def wait_for_load(page: Page, state: Optional[str] = None) -> None:
    await page.wait_for_load_state(state or "load")


@action(
    name="scroll",
    description="Scroll vertically by a number of pixels (negative scrolls up).",
    params=("pixels",),
)
async def scroll(page: Page, pixels: str) -> None:
    await page.mouse.wheel(0, _to_int(pixels, "pixels"))


@action(
    name="expect_text",
    description="Fail unless visible text containing the given string appears.",
    params=("text",),
)
async def expect_text(page: Page, text: str) -> None:
    await page.get_by_text(text).first.wait_for(state="visible")


@action(
    name="expect_url",
    description="Fail unless the current URL contains the given fragment.",
    params=("fragment",),
)
async def expect_url(page: Page, fragment: str) -> None:
    if fragment not in page.url:
        raise ExecutionError(f"expected URL to contain {fragment!r}, got {page.url!r}")


@action(
    name="evaluate",
    description="Evaluate a JavaScript expression inside the page.",
    params=("expression",),
)
async def evaluate(page: Page, expression: str) -> None:
    await page.evaluate(expression)
