# callbacks.py
# Lifecycle hooks fired by the executor.
#
# The loop never returns partial history on the success path; these hooks
# are where diagnostics see it. NullCallbacks is the default.

from collections.abc import Mapping, Sequence
from typing import Any, Protocol

from agent_loop import display
from agent_loop.errors import OutputParseError
from agent_loop.models import Action, Finish, RunState, Step


class Callbacks(Protocol):
    def on_run_start(self, inputs: Mapping[str, str]) -> None: ...
    def on_iteration_start(self, iteration: int, max_iterations: int | None) -> None: ...
    def on_action(self, action: Action) -> None: ...
    def on_observation(self, step: Step) -> None: ...
    def on_parse_error(self, error: OutputParseError, observation: str) -> None: ...
    def on_finish(self, finish: Finish, outputs: Mapping[str, Any]) -> None: ...
    def on_stop(self, state: RunState, steps: Sequence[Step]) -> None: ...
    def on_error(self, state: RunState, error: BaseException) -> None: ...


class NullCallbacks:
    def on_run_start(self, inputs: Mapping[str, str]) -> None: ...
    def on_iteration_start(self, iteration: int, max_iterations: int | None) -> None: ...
    def on_action(self, action: Action) -> None: ...
    def on_observation(self, step: Step) -> None: ...
    def on_parse_error(self, error: OutputParseError, observation: str) -> None: ...
    def on_finish(self, finish: Finish, outputs: Mapping[str, Any]) -> None: ...
    def on_stop(self, state: RunState, steps: Sequence[Step]) -> None: ...
    def on_error(self, state: RunState, error: BaseException) -> None: ...


class RecordingCallbacks:
    """Keeps every hook call as an (event, payload) tuple, in order."""

    def __init__(self) -> None:
        self.events: list[tuple[str, Any]] = []

    def names(self) -> list[str]:
        return [name for name, _ in self.events]

    def on_run_start(self, inputs: Mapping[str, str]) -> None:
        self.events.append(("run_start", dict(inputs)))

    def on_iteration_start(self, iteration: int, max_iterations: int | None) -> None:
        self.events.append(("iteration_start", iteration))

    def on_action(self, action: Action) -> None:
        self.events.append(("action", action))

    def on_observation(self, step: Step) -> None:
        self.events.append(("observation", step))

    def on_parse_error(self, error: OutputParseError, observation: str) -> None:
        self.events.append(("parse_error", observation))

    def on_finish(self, finish: Finish, outputs: Mapping[str, Any]) -> None:
        self.events.append(("finish", dict(outputs)))

    def on_stop(self, state: RunState, steps: Sequence[Step]) -> None:
        self.events.append(("stop", state))

    def on_error(self, state: RunState, error: BaseException) -> None:
        self.events.append(("error", (state, error)))


class ConsoleCallbacks:
    """Routes every hook to the rich terminal display."""

    def on_run_start(self, inputs: Mapping[str, str]) -> None:
        display.run_start(inputs)

    def on_iteration_start(self, iteration: int, max_iterations: int | None) -> None:
        display.iteration_start(iteration, max_iterations)

    def on_action(self, action: Action) -> None:
        if action.log:
            display.react_thought(action.log)
        display.react_action(action.tool, action.tool_input)

    def on_observation(self, step: Step) -> None:
        display.react_observation(step.observation)

    def on_parse_error(self, error: OutputParseError, observation: str) -> None:
        display.parse_error_recovered(str(error), observation)

    def on_finish(self, finish: Finish, outputs: Mapping[str, Any]) -> None:
        display.final_result(outputs)

    def on_stop(self, state: RunState, steps: Sequence[Step]) -> None:
        display.stopped(state, steps)

    def on_error(self, state: RunState, error: BaseException) -> None:
        display.halt(state, f"{type(error).__name__}: {error}")
