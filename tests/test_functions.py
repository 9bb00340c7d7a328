import asyncio
import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from agent_loop.errors import OutputParseError
from agent_loop.executor import Executor
from agent_loop.functions import (
    OpenAIFunctionsAgent,
    format_history,
    parse_message,
    tool_schema,
)
from agent_loop.models import Action, Finish, Step
from agent_loop.parser_errors import StaticTextHandler
from agent_loop.tools import BUILTIN_TOOLS


def _tool_call(call_id, name, arguments):
    function = MagicMock(arguments=arguments)
    function.name = name  # `name` is reserved by the MagicMock constructor
    return MagicMock(id=call_id, function=function)


def _message(content=None, tool_calls=None):
    return MagicMock(content=content, tool_calls=tool_calls)


def _response(message):
    response = MagicMock()
    response.choices = [MagicMock(message=message)]
    return response


def _agent(*messages, **kwargs):
    agent = OpenAIFunctionsAgent(
        "openai/gpt-4o-mini",
        [BUILTIN_TOOLS["calculator"], BUILTIN_TOOLS["echo"]],
        api_key="test-key",
        **kwargs,
    )
    agent._client = MagicMock()
    agent._client.chat.completions.create = AsyncMock(
        side_effect=[_response(message) for message in messages]
    )
    return agent


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


def test_parse_tool_calls_into_actions():
    message = _message(
        content="Let me check.",
        tool_calls=[
            _tool_call("call_1", "calculator", '{"input": "5 + 3"}'),
            _tool_call("call_2", "echo", '{"input": "hi"}'),
        ],
    )

    assert parse_message(message) == [
        Action(tool="calculator", tool_input="5 + 3", log="Let me check.", tool_call_id="call_1"),
        Action(tool="echo", tool_input="hi", log="Let me check.", tool_call_id="call_2"),
    ]


def test_parse_keeps_off_schema_arguments_as_json():
    arguments = '{"url": "https://example.com", "payload": {}}'
    message = _message(tool_calls=[_tool_call("call_1", "http_post", arguments)])

    (action,) = parse_message(message)
    assert action.tool_input == arguments


def test_parse_content_into_finish():
    decision = parse_message(_message(content=" 2012 \n"), output_key="answer")
    assert decision == Finish(outputs={"answer": "2012"}, log=" 2012 \n")


@pytest.mark.parametrize(
    "message",
    [
        _message(content=None),
        _message(content="   "),
        _message(tool_calls=[_tool_call("call_1", "echo", "{not json")]),
    ],
)
def test_parse_failures_raise_output_parse_error(message):
    with pytest.raises(OutputParseError):
        parse_message(message)


# ---------------------------------------------------------------------------
# History replay
# ---------------------------------------------------------------------------


def test_format_history_pairs_tool_calls_with_results():
    action = Action(tool="calculator", tool_input="5 + 3", log="", tool_call_id="call_1")

    assert format_history([Step(action=action, observation="8")]) == [
        {
            "role": "assistant",
            "content": None,
            "tool_calls": [
                {
                    "id": "call_1",
                    "type": "function",
                    "function": {"name": "calculator", "arguments": json.dumps({"input": "5 + 3"})},
                }
            ],
        },
        {"role": "tool", "tool_call_id": "call_1", "content": "8"},
    ]


def test_format_history_replays_recovered_parse_failures_as_user_messages():
    assert format_history([Step(observation="Answer with a tool call.")]) == [
        {"role": "user", "content": "Answer with a tool call."},
    ]


def test_format_history_handles_actions_without_call_ids():
    action = Action(tool="echo", tool_input="x", log="Thought: echo it")

    assert format_history([Step(action=action, observation="x")]) == [
        {"role": "assistant", "content": "Thought: echo it"},
        {"role": "user", "content": "Observation: x"},
    ]


# ---------------------------------------------------------------------------
# Agent
# ---------------------------------------------------------------------------


def test_agent_sends_system_and_extra_messages_before_history():
    agent = _agent(
        _message(content="March 2012"),
        system_message="you are a helpful assistant",
        extra_messages=[{"role": "user", "content": "please be strict"}],
    )

    decision = asyncio.run(agent.plan((), {"input": "When was Go 1.0 tagged?"}))

    assert decision == Finish(outputs={"output": "March 2012"}, log="March 2012")
    agent._client.chat.completions.create.assert_awaited_once_with(
        model="openai/gpt-4o-mini",
        messages=[
            {"role": "system", "content": "you are a helpful assistant"},
            {"role": "user", "content": "When was Go 1.0 tagged?"},
            {"role": "user", "content": "please be strict"},
        ],
        tools=[tool_schema(BUILTIN_TOOLS["calculator"]), tool_schema(BUILTIN_TOOLS["echo"])],
    )


def test_agent_without_tools_omits_tool_schemas():
    agent = OpenAIFunctionsAgent("some/model", [], api_key="test-key")
    agent._client = MagicMock()
    agent._client.chat.completions.create = AsyncMock(return_value=_response(_message(content="hi")))

    asyncio.run(agent.plan((), {"input": "hello"}))
    assert "tools" not in agent._client.chat.completions.create.await_args.kwargs


def test_agent_drives_executor_through_tool_calls():
    agent = _agent(
        _message(tool_calls=[_tool_call("call_1", "calculator", '{"input": "5 + 3"}')]),
        _message(content="The answer is 8."),
    )
    executor = Executor(agent, max_iterations=5, return_intermediate_steps=True)

    result = asyncio.run(executor.run({"input": "What is 5 plus 3?"}))

    assert result["output"] == "The answer is 8."
    (step,) = result["intermediate_steps"]
    assert step.action.tool_call_id == "call_1"
    assert step.observation == "8"

    second_messages = agent._client.chat.completions.create.await_args_list[1].kwargs["messages"]
    assert second_messages[-2]["tool_calls"][0]["id"] == "call_1"
    assert second_messages[-1] == {"role": "tool", "tool_call_id": "call_1", "content": "8"}


def test_agent_recovers_from_an_empty_response():
    agent = _agent(_message(content=""), _message(content="done"))
    executor = Executor(
        agent,
        max_iterations=3,
        parser_error_handler=StaticTextHandler(text="Reply with a tool call or an answer."),
    )

    assert asyncio.run(executor.run_text("q")) == "done"
    second_messages = agent._client.chat.completions.create.await_args_list[1].kwargs["messages"]
    assert second_messages[-1] == {"role": "user", "content": "Reply with a tool call or an answer."}
