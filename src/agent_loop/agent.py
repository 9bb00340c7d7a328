# agent.py
# The decision-making policy consumed by the executor.
#
# Any object with these members is an Agent, whether model-backed or a stub
# under test. The executor never inspects which one it has.

from collections.abc import Mapping, Sequence
from typing import Protocol

from agent_loop.models import Action, Finish, Step
from agent_loop.tools import Tool


class Agent(Protocol):
    input_keys: Sequence[str]
    output_keys: Sequence[str]
    tools: Sequence[Tool]

    async def plan(
        self,
        steps: Sequence[Step],
        inputs: Mapping[str, str],
    ) -> list[Action] | Finish:
        """
        Decide the next move given the full history of this run.

        Returns one or more Actions to dispatch, or a Finish to end the run.
        Raises OutputParseError when the underlying decision cannot be read
        as either. Must not mutate `steps`.
        """
        ...
