# early_stopping.py
# Output strategies for runs that hit a stopping condition before finishing.
#
# A strategy is awaited with (agent, steps, inputs) and returns a Finish to
# use as the result, or None to let the executor raise NotFinishedError.

from collections.abc import Awaitable, Callable, Mapping, Sequence
from typing import TYPE_CHECKING

from agent_loop.errors import OutputParseError
from agent_loop.models import Finish, Step

if TYPE_CHECKING:
    from agent_loop.agent import Agent

EarlyStoppingStrategy = Callable[..., Awaitable[Finish | None]]

DEFAULT_STOP_MESSAGE = "Agent stopped due to iteration limit or time limit."

DEFAULT_FINAL_INSTRUCTION = (
    "You have run out of iterations or time. "
    "Do not use any more tools. Give your final answer now."
)


class ForceStop:
    """Fills every declared output key with a fixed message."""

    def __init__(self, message: str = DEFAULT_STOP_MESSAGE) -> None:
        self.message = message

    async def __call__(
        self,
        agent: "Agent",
        steps: Sequence[Step],
        inputs: Mapping[str, str],
    ) -> Finish | None:
        return Finish(
            outputs={key: self.message for key in agent.output_keys},
            log=self.message,
        )


class GenerateFinalAnswer:
    """
    Gives the agent one more plan() call with a synthetic observation asking
    for a final answer. Actions or unparsable output count as a refusal.
    """

    def __init__(self, instruction: str = DEFAULT_FINAL_INSTRUCTION) -> None:
        self.instruction = instruction

    async def __call__(
        self,
        agent: "Agent",
        steps: Sequence[Step],
        inputs: Mapping[str, str],
    ) -> Finish | None:
        history = (*steps, Step(observation=self.instruction))
        try:
            decision = await agent.plan(history, inputs)
        except OutputParseError:
            return None
        if isinstance(decision, Finish):
            return decision
        return None
