# executor.py
# Agent execution loop.
#
# The Executor is the kernel. The agent is a passive policy: it is asked
# for the next move and never touches a tool. This class owns dispatch,
# history, stopping policy, and result assembly.
#
# Control flow per iteration:
#   plan → parse failure? → handler observation (or abort)
#        → finish?        → validate outputs → merge → return
#        → actions        → dispatch each → append steps in action order
#   → stopping conditions → early-stopping strategy or NotFinishedError
#
# Terminal output is delegated to callbacks. No formatting here.

import asyncio
import logging
import time
from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from agent_loop.agent import Agent
from agent_loop.callbacks import Callbacks, NullCallbacks
from agent_loop.config import ExecutorConfig
from agent_loop.errors import (
    InvalidInputError,
    InvalidOutputError,
    NotFinishedError,
    OutputParseError,
    ToolExecutionError,
    ToolNotFoundError,
)
from agent_loop.models import Action, Finish, RunState, Step
from agent_loop.tools import Tool, ToolRegistry

logger = logging.getLogger(__name__)

INTERMEDIATE_STEPS_KEY = "intermediate_steps"


# ---------------------------------------------------------------------------
# Observation formatting
# ---------------------------------------------------------------------------


def _tool_not_found_observation(name: str) -> str:
    return f"{name} is not a valid tool, try another one."


def _tool_error_observation(name: str, exc: Exception) -> str:
    return f"Error: tool '{name}' failed: {exc}"


# ---------------------------------------------------------------------------
# Executor
# ---------------------------------------------------------------------------


class Executor:
    """
    Drives an Agent against a fixed set of Tools until it finishes or a
    stopping condition fires.

    The agent, tool registry and config are fixed at construction. All
    per-run state lives inside run(), so one Executor may serve concurrent
    runs.

    Example:
        executor = Executor(
            agent,
            max_iterations=5,
            parser_error_handler=StaticTextHandler(),
        )
        outputs = await executor.run({"input": "What is 5 plus 3?"})
    """

    def __init__(
        self,
        agent: Agent,
        *,
        config: ExecutorConfig | None = None,
        tools: Iterable[Tool] = (),
        callbacks: Callbacks | None = None,
        **options: Any,
    ) -> None:
        if config is not None and options:
            raise TypeError("Pass either an ExecutorConfig or keyword options, not both.")
        self._agent = agent
        self._config = config if config is not None else ExecutorConfig(**options)
        self._registry = ToolRegistry([*agent.tools, *tools])
        self._callbacks: Callbacks = callbacks or NullCallbacks()

    @property
    def agent(self) -> Agent:
        return self._agent

    @property
    def config(self) -> ExecutorConfig:
        return self._config

    @property
    def registry(self) -> ToolRegistry:
        return self._registry

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    async def run(self, inputs: Mapping[str, str] | None = None) -> dict[str, Any]:
        """
        Execute one full run and return the merged outputs.

        Raises InvalidInputError, OutputParseError (no handler configured),
        ToolExecutionError (tool errors fatal), NotFinishedError (no
        early-stopping strategy), InvalidOutputError, or whatever the agent
        raised. Cancellation propagates as asyncio.CancelledError.
        """
        inputs = dict(inputs or {})
        steps: list[Step] = []
        started = time.monotonic()
        iteration = 0
        state = RunState.RUNNING

        try:
            self._validate_inputs(inputs)
            self._callbacks.on_run_start(inputs)

            while True:
                iteration += 1
                self._callbacks.on_iteration_start(iteration, self._config.max_iterations)

                finish = await self._iterate(steps, inputs)
                if finish is not None:
                    state = RunState.FINISHED
                    return self._assemble(finish, steps)

                state = self._stopping_state(iteration, started)
                if state is not RunState.RUNNING:
                    return await self._early_stop(state, steps, inputs, iteration)
        except asyncio.CancelledError:
            logger.info("Run cancelled during iteration %d", iteration)
            raise
        except Exception as exc:
            # A stop without a strategy keeps its STOPPED_* state; anything else aborts.
            if not isinstance(exc, NotFinishedError):
                state = RunState.ABORTED_ERROR
            self._callbacks.on_error(state, exc)
            raise

    async def run_text(self, text: str) -> str:
        """Single-input, single-output shortcut around run()."""
        input_keys = list(self._agent.input_keys)
        output_keys = list(self._agent.output_keys)
        if len(input_keys) != 1:
            raise ValueError(f"run_text() needs exactly one input key, agent declares {input_keys}")
        if len(output_keys) != 1:
            raise ValueError(f"run_text() needs exactly one output key, agent declares {output_keys}")

        outputs = await self.run({input_keys[0]: text})
        return str(outputs[output_keys[0]])

    # ------------------------------------------------------------------
    # Iteration
    # ------------------------------------------------------------------

    async def _iterate(self, steps: list[Step], inputs: Mapping[str, str]) -> Finish | None:
        """One plan + dispatch round. Returns the Finish, or None to keep going."""
        try:
            decision = await self._agent.plan(tuple(steps), inputs)
        except OutputParseError as exc:
            handler = self._config.parser_error_handler
            if handler is None:
                raise
            observation = handler.observation(exc)
            logger.info("Recovered from unparsable agent output: %s", exc)
            self._callbacks.on_parse_error(exc, observation)
            steps.append(Step(observation=observation))
            return None

        if isinstance(decision, Finish):
            return decision

        actions = list(decision)
        if self._config.concurrent_tools and len(actions) > 1:
            steps.extend(await self._dispatch_concurrently(actions))
        else:
            for action in actions:
                steps.append(await self._dispatch(action))
        return None

    async def _dispatch_concurrently(self, actions: Sequence[Action]) -> list[Step]:
        # gather() preserves argument order, so history order matches action order.
        tasks = [asyncio.ensure_future(self._dispatch(action)) for action in actions]
        try:
            return list(await asyncio.gather(*tasks))
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

    async def _dispatch(self, action: Action) -> Step:
        self._callbacks.on_action(action)
        try:
            tool = self._registry.require(action.tool)
        except ToolNotFoundError:
            logger.info("Agent requested unknown tool '%s'", action.tool)
            observation = _tool_not_found_observation(action.tool)
        else:
            observation = await self._call_tool(tool, action)

        step = Step(action=action, observation=observation)
        self._callbacks.on_observation(step)
        return step

    async def _call_tool(self, tool: Tool, action: Action) -> str:
        try:
            return await tool.call(action.tool_input)
        except Exception as exc:
            if self._config.tool_errors_fatal:
                raise ToolExecutionError(tool.name, f"Tool '{tool.name}' failed: {exc}") from exc
            logger.warning("Tool '%s' failed: %s", tool.name, exc)
            return _tool_error_observation(tool.name, exc)

    # ------------------------------------------------------------------
    # Validation, stopping, and result assembly
    # ------------------------------------------------------------------

    def _validate_inputs(self, inputs: Mapping[str, str]) -> None:
        missing = [key for key in self._agent.input_keys if key not in inputs]
        if missing:
            raise InvalidInputError(missing)

    def _stopping_state(self, iteration: int, started: float) -> RunState:
        max_iterations = self._config.max_iterations
        if max_iterations and iteration >= max_iterations:
            return RunState.STOPPED_MAX_ITERATIONS

        max_time = self._config.max_execution_time
        if max_time is not None and time.monotonic() - started >= max_time:
            return RunState.STOPPED_MAX_TIME

        return RunState.RUNNING

    async def _early_stop(
        self,
        state: RunState,
        steps: list[Step],
        inputs: Mapping[str, str],
        iteration: int,
    ) -> dict[str, Any]:
        logger.warning("Agent stopped (%s) after %d iteration(s)", state.value, iteration)
        self._callbacks.on_stop(state, tuple(steps))

        strategy = self._config.early_stopping
        finish = await strategy(self._agent, tuple(steps), inputs) if strategy else None
        if finish is None:
            raise NotFinishedError(state, steps, iteration)
        return self._assemble(finish, steps)

    def _assemble(self, finish: Finish, steps: Sequence[Step]) -> dict[str, Any]:
        missing = [key for key in self._agent.output_keys if key not in finish.outputs]
        if missing:
            raise InvalidOutputError(missing)

        # Configured return values win on key conflict.
        outputs = {**finish.outputs, **self._config.extra_return_values}
        if self._config.return_intermediate_steps:
            outputs[INTERMEDIATE_STEPS_KEY] = tuple(steps)

        self._callbacks.on_finish(finish, outputs)
        return outputs
