# llm.py
# Text-completion contract for model-backed agents, plus an OpenRouter
# implementation. Transport is the openai client's business, not ours.

import os
from typing import Protocol

from dotenv import load_dotenv
from openai import AsyncOpenAI

load_dotenv()

OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"


class LLM(Protocol):
    async def complete(self, prompt: str, *, stop: list[str] | None = None) -> str: ...


class OpenRouterLLM:
    """
    Single-turn chat completion against any OpenRouter-supported model.

    Example:
        llm = OpenRouterLLM("anthropic/claude-3.5-haiku")
        text = await llm.complete("Say hi.")
    """

    def __init__(
        self,
        model: str,
        *,
        api_key: str | None = None,
        base_url: str = OPENROUTER_BASE_URL,
    ) -> None:
        self._model = model
        self._client = AsyncOpenAI(
            base_url=base_url,
            api_key=api_key or os.getenv("OPENROUTER_API_KEY"),
        )

    @property
    def model(self) -> str:
        return self._model

    async def complete(self, prompt: str, *, stop: list[str] | None = None) -> str:
        kwargs = {"stop": stop} if stop else {}
        response = await self._client.chat.completions.create(
            model=self._model,
            messages=[{"role": "user", "content": prompt}],
            **kwargs,
        )
        return (response.choices[0].message.content or "").strip()
