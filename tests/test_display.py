import asyncio

import pytest
from rich.console import Console

from agent_loop import display
from agent_loop.callbacks import ConsoleCallbacks
from agent_loop.errors import NotFinishedError, OutputParseError
from agent_loop.executor import Executor
from agent_loop.models import Action, Finish, RunState, Step
from agent_loop.parser_errors import StaticTextHandler
from agent_loop.tools import FunctionTool


@pytest.fixture
def recorded(monkeypatch):
    console = Console(record=True, width=140, color_system=None)
    monkeypatch.setattr(display, "console", console)
    return console


class ScriptAgent:
    input_keys = ("input",)
    output_keys = ("output",)
    tools = (FunctionTool("echo", "Returns its input.", lambda text: text),)

    def __init__(self, script):
        self.script = script

    async def plan(self, steps, inputs):
        decision = self.script[min(len(steps), len(self.script) - 1)]
        if isinstance(decision, Exception):
            raise decision
        return decision


def test_console_callbacks_render_a_finished_run(recorded):
    agent = ScriptAgent([
        [Action(tool="echo", tool_input="ping", log="Thought: check the echo tool")],
        Finish(outputs={"output": "pong"}),
    ])
    asyncio.run(Executor(agent, max_iterations=3, callbacks=ConsoleCallbacks()).run({"input": "hi"}))

    text = recorded.export_text()
    assert "NEW RUN" in text
    assert "ITERATION [1/3]" in text
    assert "check the echo tool" in text
    assert "Observe" in text and "ping" in text
    assert "RESULT" in text and "pong" in text


def test_console_callbacks_render_recovery_and_stop(recorded):
    agent = ScriptAgent([OutputParseError("garbled")])
    executor = Executor(
        agent,
        max_iterations=2,
        parser_error_handler=StaticTextHandler(text="Use the format."),
        callbacks=ConsoleCallbacks(),
    )

    with pytest.raises(NotFinishedError):
        asyncio.run(executor.run({"input": "hi"}))

    text = recorded.export_text()
    assert "PARSE ERROR RECOVERED" in text
    assert "Use the format." in text
    assert "STOPPED" in text and "stopped_max_iterations" in text
    assert "EXECUTION SUMMARY" in text
    assert "HALT: STOPPED_MAX_ITERATIONS" in text


def test_iteration_start_shows_unlimited(recorded):
    display.iteration_start(4, None)
    assert "ITERATION [4/∞]" in recorded.export_text()


def test_execution_summary_truncates_long_observations(recorded):
    display.execution_summary([Step(action=Action(tool="echo"), observation="x" * 500)])
    text = recorded.export_text()
    assert "echo" in text
    assert "x" * 61 not in text


def test_halt_names_the_state(recorded):
    display.halt(RunState.ABORTED_ERROR, "RuntimeError: model offline")
    text = recorded.export_text()
    assert "HALT: ABORTED_ERROR" in text
    assert "model offline" in text
