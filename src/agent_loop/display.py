# display.py
# All terminal output for the agent loop.
#
# This module owns presentation entirely. The executor never formats strings
# for the terminal — ConsoleCallbacks calls named functions here. Swap this
# file to change the entire UI.
#
# Colour language:
#   cyan    — run lifecycle / iterations
#   magenta — ReACT internals (Thought / Action / Observation)
#   yellow  — recovered parse errors and stopping conditions
#   green   — finish
#   red     — halts

import json
from collections.abc import Mapping, Sequence
from typing import Any

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.rule import Rule
from rich.table import Table
from rich.text import Text

from agent_loop.models import RunState, Step

console = Console()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _label(tag: str, color: str) -> Text:
    t = Text()
    t.append(f" {tag} ", style=f"bold white on {color}")
    return t


def _mono(value: str, max_len: int = 120) -> str:
    """Truncate and escape free text for embedding in markup."""
    if len(value) > max_len:
        return escape(value[:max_len]) + "…"
    return escape(value)


# ---------------------------------------------------------------------------
# Run lifecycle
# ---------------------------------------------------------------------------


def run_start(inputs: Mapping[str, str]) -> None:
    console.print()
    console.print(Rule("[cyan]NEW RUN[/cyan]", style="cyan"))
    console.print(
        Panel(
            f"[white]{escape(json.dumps(dict(inputs), ensure_ascii=False, indent=2))}[/white]",
            title=_label("INPUTS", "cyan"),
            border_style="cyan",
            padding=(0, 2),
        )
    )


def iteration_start(iteration: int, max_iterations: int | None) -> None:
    limit = max_iterations if max_iterations else "∞"
    console.print()
    console.print(f"[bold cyan]  ITERATION [{iteration}/{limit}][/bold cyan]")


# ---------------------------------------------------------------------------
# ReACT internals
# ---------------------------------------------------------------------------


def react_thought(thought: str) -> None:
    console.print(f"  [magenta]Thought[/magenta]  [dim white]{_mono(thought, 200)}[/dim white]")


def react_action(tool: str, tool_input: str) -> None:
    console.print(
        f"  [magenta]Action[/magenta]   [bold white]{escape(tool)}[/bold white]"
        f"  [dim]{_mono(tool_input, 120)}[/dim]"
    )


def react_observation(observation: str) -> None:
    console.print(f"  [magenta]Observe[/magenta]  [white]{_mono(observation, 140)}[/white]")


def parse_error_recovered(error: str, observation: str) -> None:
    console.print(
        Panel(
            f"[yellow]{_mono(error, 200)}[/yellow]\n"
            f"[dim]Recorded as observation:[/dim] [white]{_mono(observation, 140)}[/white]",
            title=_label("PARSE ERROR RECOVERED", "yellow"),
            border_style="yellow",
            padding=(0, 2),
        )
    )


# ---------------------------------------------------------------------------
# Termination
# ---------------------------------------------------------------------------


def execution_summary(steps: Sequence[Step]) -> None:
    console.print()
    table = Table(
        box=box.SIMPLE_HEAVY,
        border_style="dim",
        show_header=True,
        header_style="bold dim",
        padding=(0, 1),
    )
    table.add_column("Step", justify="center", width=6)
    table.add_column("Tool", width=14)
    table.add_column("Observation", style="dim white")

    for index, step in enumerate(steps, start=1):
        tool = escape(step.action.tool) if step.action else "[yellow]—[/yellow]"
        table.add_row(str(index), tool, _mono(step.observation, 60))

    console.print(
        Panel(
            table,
            title="[dim]EXECUTION SUMMARY[/dim]",
            border_style="dim",
            padding=(0, 1),
        )
    )


def stopped(state: RunState, steps: Sequence[Step]) -> None:
    console.print()
    console.print(
        Panel(
            f"[bold yellow]Stopping condition reached:[/bold yellow] [white]{state.value}[/white]\n"
            f"[dim]{len(steps)} step(s) recorded before the agent finished.[/dim]",
            title=_label("STOPPED", "yellow"),
            border_style="yellow",
            padding=(0, 2),
        )
    )
    if steps:
        execution_summary(steps)


def final_result(outputs: Mapping[str, Any]) -> None:
    body = "\n".join(
        f"[bold]{escape(str(key))}[/bold]: {escape(str(value))}"
        for key, value in outputs.items()
        if not isinstance(value, (list, tuple))
    )
    console.print()
    console.print(
        Panel(
            f"[white]{body}[/white]",
            title=_label("RESULT", "green"),
            border_style="green",
            padding=(1, 2),
        )
    )
    console.print()


def halt(state: RunState, reason: str) -> None:
    console.print()
    console.print(
        Panel(
            f"[bold white]{escape(reason)}[/bold white]",
            title=_label(f"HALT: {state.value.upper()}", "red"),
            border_style="red",
            padding=(0, 2),
        )
    )
    console.print()
