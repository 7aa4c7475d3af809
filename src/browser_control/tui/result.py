"""
Result display for the command-line interface.

Renders flow results, inspections and listings of profiles, flows and
actions as Rich panels and tables.
"""

from typing import Any, Optional

from rich.table import Table
from rich.text import Text

from ..models import FlowInfo, FlowResult, Inspection, ProfileInfo
from .console import ControlConsole, get_console


def format_inspection(inspection: Inspection) -> Text:
    """Summarize an inspection in a few lines."""
    text = Text()
    text.append("URL: ", style="label")
    text.append(f"{inspection.url}\n")
    text.append("Title: ", style="label")
    text.append(f"{inspection.title or '(untitled)'}\n")
    for heading in inspection.headings:
        text.append(f"  {heading.tag} ", style="dim")
        text.append(f"{heading.text}\n")
    text.append(
        f"{len(inspection.buttons)} buttons, {len(inspection.links)} links, "
        f"{len(inspection.inputs)} inputs",
        style="dim",
    )
    if inspection.screenshot_path:
        text.append(f"\nScreenshot: {inspection.screenshot_path}", style="dim")
    return text


def print_flow_result(result: FlowResult, console: Optional[ControlConsole] = None) -> None:
    """Print a flow run outcome."""
    console = console or get_console()

    content = Text()
    status_style = "success" if result.passed else "failure"
    content.append(f"{result.status.upper()} ", style=status_style)
    content.append(f"{result.flow} ({result.duration_ms} ms)\n")
    content.append("Start URL: ", style="label")
    content.append(result.start_url)
    if result.error:
        content.append("\n\nError: ", style="failure")
        content.append(result.error)
    if result.inspection is not None:
        content.append("\n\n")
        content.append_text(format_inspection(result.inspection))

    console.print_block(
        content,
        "success" if result.passed else "failure",
        title=f"[FLOW {result.flow}]",
    )


def print_error(
    error_message: str,
    *,
    error_type: Optional[str] = None,
    suggestion: Optional[str] = None,
    console: Optional[ControlConsole] = None,
) -> None:
    """
    Print an error block.

    Args:
        error_message: The error message
        error_type: Type/category of error
        suggestion: Suggestion for resolution
        console: Console to use (defaults to global console)
    """
    console = console or get_console()

    content = Text()
    content.append("Error", style="failure")
    if error_type:
        content.append(f" ({error_type})", style="dim")
    content.append("\n\n")
    content.append(error_message)

    if suggestion:
        content.append("\n\n")
        content.append(suggestion, style="italic")

    console.print_block(content, "failure", title="[ERROR]")


def _table(title: str, columns: list[str]) -> Table:
    table = Table(title=title, title_justify="left", show_lines=False)
    for column in columns:
        table.add_column(column)
    return table


def print_profiles(profiles: list[ProfileInfo], console: Optional[ControlConsole] = None) -> None:
    console = console or get_console()
    table = _table("Profiles", ["Name", "Domain", "Description", "Updated"])
    for profile in profiles:
        table.add_row(
            profile.name,
            profile.domain or "-",
            profile.description or "-",
            profile.updated_at or "-",
        )
    console.print(table)


def print_flows(flows: list[FlowInfo], console: Optional[ControlConsole] = None) -> None:
    console = console or get_console()
    table = _table("Flows", ["Name", "Start URL", "Steps", "Generated"])
    for flow in flows:
        table.add_row(
            flow.name,
            flow.start_url or "-",
            "?" if flow.steps is None else str(flow.steps),
            flow.generated_at or "-",
        )
    console.print(table)


def print_actions(schemas: list[dict[str, Any]], console: Optional[ControlConsole] = None) -> None:
    console = console or get_console()
    table = _table("Script actions", ["Usage", "Description"])
    for schema in schemas:
        table.add_row(schema["usage"], schema["description"])
    console.print(table)
