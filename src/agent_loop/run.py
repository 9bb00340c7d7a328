# run.py
# Entry point. Config and wiring only — no logic lives here.
#
# Swap the model string for any OpenRouter-supported model.
# https://openrouter.ai/models
#
#   OPENROUTER_API_KEY=... python -m agent_loop.run

import asyncio

from agent_loop.callbacks import ConsoleCallbacks
from agent_loop.config import ExecutorConfig
from agent_loop.early_stopping import GenerateFinalAnswer
from agent_loop.errors import AgentLoopError
from agent_loop.executor import Executor
from agent_loop.llm import OpenRouterLLM
from agent_loop.mrkl import ZeroShotReActAgent
from agent_loop.parser_errors import StaticTextHandler
from agent_loop.tools import BUILTIN_TOOLS

MODEL = "anthropic/claude-3.5-haiku"

PROMPTS = [
    # Single tool call, deterministic answer
    "What is 5 plus 3? Please calculate this.",

    # Search → calculator chain
    "In what year was Python 1.0 released, and how many years before 2024 was that?",
]


def build_executor() -> Executor:
    agent = ZeroShotReActAgent(
        OpenRouterLLM(MODEL),
        [BUILTIN_TOOLS["calculator"], BUILTIN_TOOLS["search"]],
    )
    config = ExecutorConfig.from_env(
        max_iterations=6,
        max_execution_time=120,
        parser_error_handler=StaticTextHandler(
            suffix=" Reply with either 'Action:' and 'Action Input:' lines or a 'Final Answer:'."
        ),
        early_stopping=GenerateFinalAnswer(),
    )
    return Executor(agent, config=config, callbacks=ConsoleCallbacks())


async def _run_all() -> None:
    executor = build_executor()
    for prompt in PROMPTS:
        try:
            result = await executor.run_text(prompt)
        except AgentLoopError as exc:
            print(f"\n[FAILED] {exc}\n")
            continue
        print(f"\n[RESULT]\n{result}\n")


def main() -> None:
    asyncio.run(_run_all())


if __name__ == "__main__":
    main()
