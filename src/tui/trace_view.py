"""
Session trace rendering

This module renders the interactions captured by a SessionRecorder as rich
tables and timelines, for inspecting the exact lock/command/unlock order a
client produced.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from ..prismatik.session import SessionRecorder


def _style_for(interaction: Dict[str, Any]) -> str:
    interaction_type = interaction.get("type")
    if interaction_type == "request":
        return "blue"
    if interaction_type == "response":
        return "green"
    if "error" in interaction.get("event_type", "").lower():
        return "red"
    return "yellow"


def _describe(interaction: Dict[str, Any]) -> str:
    if interaction.get("type") in ("request", "response"):
        return interaction.get("text", "")
    details = interaction.get("details") or {}
    text = interaction.get("description", "")
    if details:
        details_str = ", ".join(f"{k}: {v}" for k, v in details.items())
        text = f"{text} ({details_str})"
    if len(text) > 100:
        text = text[:97] + "..."
    return text


def build_trace_table(interactions: List[Dict[str, Any]]) -> Table:
    """One row per recorded interaction, in recording order."""
    table = Table(show_header=True, header_style="bold magenta", box=box.ROUNDED)
    table.add_column("#", style="cyan", justify="right")
    table.add_column("Time", style="white")
    table.add_column("Offset", style="white", justify="right")
    table.add_column("Kind", style="white")
    table.add_column("Line / Event")

    for index, interaction in enumerate(interactions, start=1):
        timestamp = interaction.get("timestamp", 0)
        time_str = datetime.fromtimestamp(timestamp).strftime("%H:%M:%S.%f")[:-3]

        if interaction.get("type") == "request":
            kind = "→ sent"
        elif interaction.get("type") == "response":
            kind = "← received"
        else:
            kind = f"• {interaction.get('event_type', 'event')}"

        table.add_row(
            str(index),
            time_str,
            f"{interaction.get('relative_time', 0):.3f}s",
            kind,
            Text(_describe(interaction), style=_style_for(interaction)),
        )

    return table


def build_timeline(interactions: List[Dict[str, Any]], current: Optional[int] = None,
                   window_size: int = 10) -> Text:
    """
    Compact timeline of interactions.

    When current is given only a window around it is shown and that entry
    is highlighted.
    """
    timeline_text = Text()

    if current is None:
        start_idx, end_idx = 0, len(interactions)
    else:
        start_idx = max(0, current - window_size // 2)
        end_idx = min(len(interactions), start_idx + window_size)

    for i in range(start_idx, end_idx):
        interaction = interactions[i]
        time_offset = interaction.get("relative_time", 0)

        if interaction.get("type") == "request":
            entry = f"{time_offset:6.2f}s → {interaction.get('text', '')}"
        elif interaction.get("type") == "response":
            entry = f"{time_offset:6.2f}s ← {interaction.get('text', '')}"
        else:
            entry = f"{time_offset:6.2f}s • {interaction.get('event_type', 'event')}"

        if i == current:
            timeline_text.append(f"► {entry}\n", style="bold yellow on blue")
        else:
            timeline_text.append(f"  {entry}\n", style=_style_for(interaction))

    return timeline_text


def create_header_panel(recorder: SessionRecorder) -> Panel:
    """Session information header."""
    summary = recorder.get_session_summary()
    start_time_str = datetime.fromtimestamp(recorder.start_time).strftime("%Y-%m-%d %H:%M:%S")

    header_text = Text()
    header_text.append("PRISMATIK API SESSION TRACE\n", style="bold red")
    header_text.append(f"Session ID: {summary['session_id']}\n", style="cyan")
    header_text.append(f"Start Time: {start_time_str}\n", style="white")
    header_text.append(f"Requests: {summary['requests']}  ", style="blue")
    header_text.append(f"Responses: {summary['responses']}  ", style="green")
    header_text.append(f"Events: {summary['events']}", style="yellow")

    return Panel(header_text, title="Session Information", border_style="blue")


def print_trace(recorder: SessionRecorder, console: Optional[Console] = None) -> None:
    """Print the header and full trace table of a recorded session."""
    console = console or Console()

    if not recorder.interactions:
        console.print("[yellow]No interactions recorded[/yellow]")
        return

    console.print(create_header_panel(recorder))
    console.print(build_trace_table(recorder.interactions))
