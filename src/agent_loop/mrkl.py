# mrkl.py
# Zero-shot ReAct agent: one prompt, one completion, one decision per plan().
#
# The model is asked to answer in the classic format
#   Thought: ...
#   Action: <tool name>
#   Action Input: <text>
# or to end with "Final Answer: ...". Anything else is an OutputParseError,
# which the executor can turn into an observation.

import re
from collections.abc import Iterable, Mapping, Sequence

from agent_loop.errors import OutputParseError
from agent_loop.llm import LLM
from agent_loop.models import Action, Finish, Step
from agent_loop.tools import Tool, ToolRegistry

FINAL_ANSWER_MARKER = "Final Answer:"
STOP_SEQUENCES = ["\nObservation:"]

PROMPT_PREFIX = "Answer the following question as best you can. You have access to the following tools:"

FORMAT_INSTRUCTIONS = """\
Use the following format:

Question: the input question you must answer
Thought: you should always think about what to do
Action: the action to take, should be one of [{tool_names}]
Action Input: the input to the action
Observation: the result of the action
... (this Thought/Action/Action Input/Observation can repeat N times)
Thought: I now know the final answer
Final Answer: the final answer to the original input question\
"""

PROMPT_SUFFIX = """\
Begin!

Question: {question}
Thought:{scratchpad}\
"""

_ACTION_RE = re.compile(r"Action:\s*(.+?)\s*\n\s*Action Input:\s*(.*)", re.DOTALL)


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


def parse_react_output(text: str, output_key: str = "output") -> list[Action] | Finish:
    """
    Read a ReAct-format completion as a decision.

    A final answer wins over an action when both are present.
    Raises OutputParseError when neither is found.
    """
    if FINAL_ANSWER_MARKER in text:
        answer = text.split(FINAL_ANSWER_MARKER)[-1].strip()
        return Finish(outputs={output_key: answer}, log=text)

    match = _ACTION_RE.search(text)
    if not match:
        raise OutputParseError(
            f"{OutputParseError.default_message}: {text}",
            llm_output=text,
        )

    tool = match.group(1).strip()
    tool_input = match.group(2).strip().strip('"')
    return [Action(tool=tool, tool_input=tool_input, log=text)]


def format_scratchpad(steps: Sequence[Step]) -> str:
    """Replay prior steps in the same format the model is asked to write."""
    parts = []
    for step in steps:
        log = step.action.log if step.action else ""
        parts.append(f"{log}\nObservation: {step.observation}\nThought:")
    return "".join(parts)


# ---------------------------------------------------------------------------
# Agent
# ---------------------------------------------------------------------------


class ZeroShotReActAgent:
    """
    Model-backed Agent that decides from tool descriptions alone.

    Example:
        agent = ZeroShotReActAgent(OpenRouterLLM(MODEL), [BUILTIN_TOOLS["calculator"]])
        executor = Executor(agent, max_iterations=5)
    """

    def __init__(
        self,
        llm: LLM,
        tools: Iterable[Tool],
        *,
        input_key: str = "input",
        output_key: str = "output",
    ) -> None:
        self.llm = llm
        self.tools = tuple(tools)
        self.input_keys = (input_key,)
        self.output_keys = (output_key,)

        registry = ToolRegistry(self.tools)
        self._header = "\n\n".join(
            [
                PROMPT_PREFIX,
                registry.describe(),
                FORMAT_INSTRUCTIONS.format(tool_names=", ".join(registry.names())),
            ]
        )

    def build_prompt(self, steps: Sequence[Step], inputs: Mapping[str, str]) -> str:
        suffix = PROMPT_SUFFIX.format(
            question=inputs[self.input_keys[0]],
            scratchpad=format_scratchpad(steps),
        )
        return f"{self._header}\n\n{suffix}"

    async def plan(
        self,
        steps: Sequence[Step],
        inputs: Mapping[str, str],
    ) -> list[Action] | Finish:
        prompt = self.build_prompt(steps, inputs)
        text = await self.llm.complete(prompt, stop=STOP_SEQUENCES)
        return parse_react_output(text, self.output_keys[0])
