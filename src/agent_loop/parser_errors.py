# parser_errors.py
# Recovery policies for unparsable agent output.
#
# When Agent.plan() raises OutputParseError and a handler is configured, the
# executor records a synthetic step carrying the handler's observation and
# keeps looping. Without a handler the parse failure is fatal.

from collections.abc import Callable

from pydantic import BaseModel, ConfigDict

from agent_loop.errors import OutputParseError


class StaticTextHandler(BaseModel):
    """
    Fixed observation text. Falls back to the error message itself when no
    text is configured, so the agent sees what went wrong.
    """

    model_config = ConfigDict(frozen=True)

    text: str | None = None
    prefix: str = ""
    suffix: str = ""

    def observation(self, error: OutputParseError) -> str:
        body = self.text if self.text is not None else str(error)
        return f"{self.prefix}{body}{self.suffix}"


class TransformHandler(BaseModel):
    """Observation computed from the error by a caller-supplied function."""

    model_config = ConfigDict(frozen=True)

    func: Callable[[OutputParseError], str]

    def observation(self, error: OutputParseError) -> str:
        return self.func(error)


ParserErrorHandler = StaticTextHandler | TransformHandler
