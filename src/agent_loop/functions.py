# functions.py
# Function-calling agent: the model picks tools through the chat completions
# `tools` API instead of a text format.
#
# Conversation sent on every plan():
#   system message → user input → extra messages → replayed history
# History replay: each Step becomes an assistant message carrying its tool
# call, followed by the matching `tool` message with the observation.
# Recovered parse failures come back as plain user messages.

import json
import os
from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from openai import AsyncOpenAI

from agent_loop.errors import OutputParseError
from agent_loop.llm import OPENROUTER_BASE_URL
from agent_loop.models import Action, Finish, Step
from agent_loop.tools import Tool, ToolRegistry

DEFAULT_SYSTEM_MESSAGE = "You are a helpful AI assistant."

# Every tool takes one free-text argument under this name.
TOOL_ARGUMENT = "input"


# ---------------------------------------------------------------------------
# Message construction
# ---------------------------------------------------------------------------


def tool_schema(tool: Tool) -> dict[str, Any]:
    return {
        "type": "function",
        "function": {
            "name": tool.name,
            "description": tool.description,
            "parameters": {
                "type": "object",
                "properties": {TOOL_ARGUMENT: {"type": "string"}},
                "required": [TOOL_ARGUMENT],
            },
        },
    }


def format_history(steps: Sequence[Step]) -> list[dict[str, Any]]:
    messages: list[dict[str, Any]] = []
    for step in steps:
        action = step.action
        if action is None:
            messages.append({"role": "user", "content": step.observation})
            continue
        if action.tool_call_id is None:
            # Action produced by some other agent: no call id to pair with.
            messages.append({"role": "assistant", "content": action.log or None})
            messages.append({"role": "user", "content": f"Observation: {step.observation}"})
            continue
        messages.append(
            {
                "role": "assistant",
                "content": action.log or None,
                "tool_calls": [
                    {
                        "id": action.tool_call_id,
                        "type": "function",
                        "function": {
                            "name": action.tool,
                            "arguments": json.dumps({TOOL_ARGUMENT: action.tool_input}),
                        },
                    }
                ],
            }
        )
        messages.append(
            {"role": "tool", "tool_call_id": action.tool_call_id, "content": step.observation}
        )
    return messages


# ---------------------------------------------------------------------------
# Response parsing
# ---------------------------------------------------------------------------


def _tool_input(arguments: str | None) -> str:
    if not arguments:
        return ""
    try:
        args = json.loads(arguments)
    except json.JSONDecodeError as exc:
        raise OutputParseError(
            f"{OutputParseError.default_message}: bad tool arguments {arguments!r}",
            llm_output=arguments,
        ) from exc
    if isinstance(args, dict) and set(args) == {TOOL_ARGUMENT}:
        return str(args[TOOL_ARGUMENT])
    # The model ignored the schema; hand the tool the raw JSON.
    return arguments


def parse_message(message: Any, output_key: str = "output") -> list[Action] | Finish:
    """
    Read one assistant message as a decision.

    Tool calls become Actions (one per call, in order). Plain content is the
    final answer. An empty message raises OutputParseError.
    """
    content = message.content or ""
    tool_calls = message.tool_calls or []
    if tool_calls:
        return [
            Action(
                tool=call.function.name,
                tool_input=_tool_input(call.function.arguments),
                log=content,
                tool_call_id=call.id,
            )
            for call in tool_calls
        ]
    if not content.strip():
        raise OutputParseError(
            f"{OutputParseError.default_message}: empty response",
            llm_output=content,
        )
    return Finish(outputs={output_key: content.strip()}, log=content)


# ---------------------------------------------------------------------------
# Agent
# ---------------------------------------------------------------------------


class OpenAIFunctionsAgent:
    """
    Model-backed Agent that decides through native tool calls.

    Example:
        agent = OpenAIFunctionsAgent(
            "openai/gpt-4o-mini",
            [BUILTIN_TOOLS["search"], BUILTIN_TOOLS["calculator"]],
            system_message="you are a helpful assistant",
            extra_messages=[{"role": "user", "content": "please be strict"}],
        )
        executor = Executor(agent, max_iterations=5)
    """

    def __init__(
        self,
        model: str,
        tools: Iterable[Tool],
        *,
        system_message: str = DEFAULT_SYSTEM_MESSAGE,
        extra_messages: Sequence[Mapping[str, Any]] = (),
        api_key: str | None = None,
        base_url: str = OPENROUTER_BASE_URL,
        input_key: str = "input",
        output_key: str = "output",
    ) -> None:
        self._model = model
        self.tools = tuple(tools)
        self.input_keys = (input_key,)
        self.output_keys = (output_key,)
        self.system_message = system_message
        self.extra_messages = tuple(dict(message) for message in extra_messages)

        # Validates names are unique before they reach the API.
        self._schemas = [tool_schema(tool) for tool in ToolRegistry(self.tools)]
        self._client = AsyncOpenAI(
            base_url=base_url,
            api_key=api_key or os.getenv("OPENROUTER_API_KEY"),
        )

    @property
    def model(self) -> str:
        return self._model

    def build_messages(
        self,
        steps: Sequence[Step],
        inputs: Mapping[str, str],
    ) -> list[dict[str, Any]]:
        return [
            {"role": "system", "content": self.system_message},
            {"role": "user", "content": inputs[self.input_keys[0]]},
            *self.extra_messages,
            *format_history(steps),
        ]

    async def plan(
        self,
        steps: Sequence[Step],
        inputs: Mapping[str, str],
    ) -> list[Action] | Finish:
        kwargs = {"tools": self._schemas} if self._schemas else {}
        response = await self._client.chat.completions.create(
            model=self._model,
            messages=self.build_messages(steps, inputs),
            **kwargs,
        )
        return parse_message(response.choices[0].message, self.output_keys[0])
