# errors.py
# Exception taxonomy for the agent execution loop.
#
# Fatal kinds escape Executor.run(). ToolNotFoundError and ToolExecutionError
# are absorbed into the history as observations unless the executor is told
# otherwise. Cancellation is never wrapped: asyncio.CancelledError passes
# through untouched.

from collections.abc import Sequence
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from agent_loop.models import RunState, Step


class AgentLoopError(Exception):
    """Base class for every error raised by the loop."""


class InvalidInputError(AgentLoopError):
    """Raised before the first iteration when declared input keys are missing."""

    def __init__(self, missing: Sequence[str]) -> None:
        self.missing = list(missing)
        super().__init__(f"Missing input keys: {', '.join(self.missing)}")


class InvalidOutputError(AgentLoopError):
    """Raised when a Finish does not cover the agent's declared output keys."""

    def __init__(self, missing: Sequence[str]) -> None:
        self.missing = list(missing)
        super().__init__(f"Missing output keys: {', '.join(self.missing)}")


class OutputParseError(AgentLoopError):
    """
    Raised by an agent when its decision output is neither an action nor a
    finish. Recoverable when the executor has a parser error handler.
    """

    default_message = "unable to parse agent output"

    def __init__(self, message: str | None = None, *, llm_output: str | None = None) -> None:
        self.llm_output = llm_output
        super().__init__(message or self.default_message)


class ToolNotFoundError(AgentLoopError):
    """Raised when a tool name is absent from the registry."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Tool '{name}' is not in the registry.")


class ToolExecutionError(AgentLoopError):
    """Raised when a tool call fails and tool errors are configured as fatal."""

    def __init__(self, tool: str, message: str) -> None:
        self.tool = tool
        super().__init__(message)


class NotFinishedError(AgentLoopError):
    """
    Raised when a stopping condition fires before the agent finishes and no
    early-stopping strategy is configured. Carries the accumulated history.
    """

    def __init__(
        self,
        state: "RunState",
        steps: Sequence["Step"],
        iterations: int,
    ) -> None:
        self.state = state
        self.steps = tuple(steps)
        self.iterations = iterations
        super().__init__(
            f"Agent not finished before stopping condition ({state.value}) "
            f"after {iterations} iteration(s)."
        )
