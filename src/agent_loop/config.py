# config.py
# Executor configuration. Applied once at construction; frozen afterwards.
#
# Environment (read by ExecutorConfig.from_env, .env files honoured):
#   AGENT_LOOP_MAX_ITERATIONS      — int, 0 = unlimited
#   AGENT_LOOP_MAX_EXECUTION_TIME  — seconds, float
#   AGENT_LOOP_TOOL_ERRORS_FATAL   — bool
#   AGENT_LOOP_CONCURRENT_TOOLS    — bool

import os
from typing import Any

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field

from agent_loop.early_stopping import EarlyStoppingStrategy
from agent_loop.parser_errors import ParserErrorHandler

_ENV_FIELDS = {
    "AGENT_LOOP_MAX_ITERATIONS": "max_iterations",
    "AGENT_LOOP_MAX_EXECUTION_TIME": "max_execution_time",
    "AGENT_LOOP_TOOL_ERRORS_FATAL": "tool_errors_fatal",
    "AGENT_LOOP_CONCURRENT_TOOLS": "concurrent_tools",
}


class ExecutorConfig(BaseModel):
    """Stopping policy, recovery policy, and result assembly for an Executor."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    max_iterations: int | None = Field(
        default=None, ge=0, description="Iterations before stopping. None or 0 = unlimited."
    )
    max_execution_time: float | None = Field(
        default=None, gt=0, description="Wall-clock seconds before stopping. None = unlimited."
    )
    parser_error_handler: ParserErrorHandler | None = None
    early_stopping: EarlyStoppingStrategy | None = None
    extra_return_values: dict[str, Any] = Field(
        default_factory=dict,
        description="Static fields merged into every result. They win over agent outputs.",
    )
    return_intermediate_steps: bool = False
    tool_errors_fatal: bool = False
    concurrent_tools: bool = Field(
        default=False,
        description="Dispatch the actions of one iteration concurrently. History order is kept.",
    )

    @classmethod
    def from_env(cls, **defaults: Any) -> "ExecutorConfig":
        """
        Build a config from AGENT_LOOP_* environment variables.

        Keyword arguments act as defaults; any variable that is set wins.
        """
        load_dotenv()
        values = dict(defaults)
        for env_name, field_name in _ENV_FIELDS.items():
            raw = os.getenv(env_name)
            if raw is not None and raw.strip():
                values[field_name] = raw.strip()
        return cls(**values)
