# tools.py
# Tool contract, registry, and the built-in tool implementations.
# The executor resolves tools through a ToolRegistry and never calls these
# functions directly.

import ast
import asyncio
import inspect
import json
import math
import operator
from collections.abc import Awaitable, Callable, Iterable, Iterator
from types import MappingProxyType
from typing import Protocol

import httpx

from agent_loop.errors import ToolNotFoundError


# ---------------------------------------------------------------------------
# Contract
# ---------------------------------------------------------------------------


class Tool(Protocol):
    """A named capability the agent can invoke with a text input."""

    name: str
    description: str

    async def call(self, tool_input: str) -> str: ...


def _is_async_callable(func: Callable) -> bool:
    return inspect.iscoroutinefunction(func) or inspect.iscoroutinefunction(
        getattr(type(func), "__call__", None)
    )


class FunctionTool:
    """
    Adapts a plain callable to the Tool contract.

    Coroutine functions are awaited on the running loop; synchronous ones
    run in a worker thread so a blocking tool never stalls the executor.
    """

    def __init__(
        self,
        name: str,
        description: str,
        func: Callable[[str], str] | Callable[[str], Awaitable[str]],
    ) -> None:
        self.name = name
        self.description = description
        self.func = func

    async def call(self, tool_input: str) -> str:
        if _is_async_callable(self.func):
            result = await self.func(tool_input)
        else:
            result = await asyncio.to_thread(self.func, tool_input)
        # A sync wrapper may still return an awaitable, e.g. a lambda over a coroutine function.
        if inspect.isawaitable(result):
            result = await result
        return str(result)

    def __repr__(self) -> str:
        return f"FunctionTool(name={self.name!r})"


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


class ToolRegistry:
    """Read-only name → tool mapping. Names are unique and case-sensitive."""

    def __init__(self, tools: Iterable[Tool] = ()) -> None:
        by_name: dict[str, Tool] = {}
        for tool in tools:
            if tool.name in by_name:
                raise ValueError(f"Tool named '{tool.name}' already registered.")
            by_name[tool.name] = tool
        self._tools = MappingProxyType(by_name)

    def get(self, name: str) -> Tool | None:
        return self._tools.get(name)

    def require(self, name: str) -> Tool:
        tool = self._tools.get(name)
        if tool is None:
            raise ToolNotFoundError(name)
        return tool

    def names(self) -> list[str]:
        return list(self._tools)

    def describe(self) -> str:
        """Prompt-friendly listing of the registered tools."""
        return "\n".join(f"{tool.name}: {tool.description}" for tool in self._tools.values())

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __iter__(self) -> Iterator[Tool]:
        return iter(self._tools.values())

    def __len__(self) -> int:
        return len(self._tools)


# ---------------------------------------------------------------------------
# Built-in tools
# ---------------------------------------------------------------------------

_BINARY_OPS = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
    ast.FloorDiv: operator.floordiv,
    ast.Mod: operator.mod,
    ast.Pow: operator.pow,
}

_UNARY_OPS = {
    ast.UAdd: operator.pos,
    ast.USub: operator.neg,
}

_MAX_EXPONENT = 100
_MAX_RESULT_DIGITS = 1000


def _check_power(base: int | float, exponent: int | float) -> None:
    if abs(exponent) > _MAX_EXPONENT:
        raise ValueError(f"Exponent {exponent} exceeds limit of {_MAX_EXPONENT}.")
    # Bounds the result: chained powers stay under the exponent cap individually.
    if exponent > 0 and abs(base) > 1 and exponent * math.log10(abs(base)) > _MAX_RESULT_DIGITS:
        raise ValueError(f"Result of {base} ** {exponent} exceeds {_MAX_RESULT_DIGITS} digits.")


def _evaluate(node: ast.AST) -> int | float:
    if isinstance(node, ast.Expression):
        return _evaluate(node.body)
    if isinstance(node, ast.Constant) and type(node.value) in (int, float):
        return node.value
    if isinstance(node, ast.BinOp) and type(node.op) in _BINARY_OPS:
        left, right = _evaluate(node.left), _evaluate(node.right)
        if isinstance(node.op, ast.Pow):
            _check_power(left, right)
        return _BINARY_OPS[type(node.op)](left, right)
    if isinstance(node, ast.UnaryOp) and type(node.op) in _UNARY_OPS:
        return _UNARY_OPS[type(node.op)](_evaluate(node.operand))
    raise ValueError(f"Unsupported expression element: {type(node).__name__}")


def _tool_calculator(text: str) -> str:
    expression = text.strip()
    if not expression:
        raise ValueError("no expression provided")
    try:
        tree = ast.parse(expression, mode="eval")
    except SyntaxError as exc:
        raise ValueError(f"invalid expression {expression!r}") from exc
    return str(_evaluate(tree))


def _tool_search(text: str) -> str:
    from ddgs import DDGS
    query = text.strip()
    if not query:
        raise ValueError("no query provided")

    # Coerce the generator to a list to ensure actual execution
    results = list(DDGS().text(query, max_results=4))
    if not results:
        return "No results found."

    lines = []
    for r in results:
        lines.append(f"[{r.get('title', 'No Title')}]\n{r.get('body', '')}\nSource: {r.get('href', '')}")
    return "\n\n".join(lines)


async def _tool_http_post(text: str, *, transport: httpx.AsyncBaseTransport | None = None) -> str:
    args = json.loads(text)
    if not isinstance(args, dict):
        raise ValueError("input must be a JSON object with 'url' and 'payload'")
    url = str(args.get("url", "")).strip()
    payload = args.get("payload", {})
    if not url:
        raise ValueError("no URL provided")
    async with httpx.AsyncClient(transport=transport, timeout=10) as client:
        response = await client.post(url, json=payload)
    return f"POST {url} → {response.status_code} ({len(response.content)} bytes)"


BUILTIN_TOOLS: dict[str, Tool] = {
    "echo": FunctionTool("echo", "Returns its input unchanged.", lambda text: text),
    "calculator": FunctionTool(
        "calculator",
        "Evaluates an arithmetic expression such as '2 * (3 + 4)'.",
        _tool_calculator,
    ),
    "search": FunctionTool(
        "search",
        "Searches the web and returns the top results. Input is the query text.",
        _tool_search,
    ),
    "http_post": FunctionTool(
        "http_post",
        'Sends a JSON POST request. Input: {"url": "<string>", "payload": {<object>}}.',
        _tool_http_post,
    ),
}
