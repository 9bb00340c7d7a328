# models.py
# Data contracts for the agent execution loop.
# No business logic lives here — pure schema and validation.

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class RunState(str, Enum):
    """Lifecycle of a single Executor.run() call."""

    RUNNING = "running"
    FINISHED = "finished"
    STOPPED_MAX_ITERATIONS = "stopped_max_iterations"
    STOPPED_MAX_TIME = "stopped_max_time"
    ABORTED_ERROR = "aborted_error"


class Action(BaseModel):
    """A tool invocation proposed by the agent."""

    model_config = ConfigDict(frozen=True)

    tool: str = Field(..., description="Tool name. Need not exist in the registry.")
    tool_input: str = Field(default="", description="Raw text handed to Tool.call().")
    log: str = Field(default="", description="Agent rationale, kept for diagnostics.")
    tool_call_id: str | None = None


class Finish(BaseModel):
    """Terminal decision of the agent."""

    model_config = ConfigDict(frozen=True)

    outputs: dict[str, Any] = Field(default_factory=dict)
    log: str = ""


class Step(BaseModel):
    """Immutable history entry: the action taken and what it produced."""

    model_config = ConfigDict(frozen=True)

    action: Action | None = Field(
        default=None,
        description="None for synthetic steps recorded after a recovered parse failure.",
    )
    observation: str = ""
