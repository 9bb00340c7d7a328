import pytest
from pydantic import ValidationError

from agent_loop.config import ExecutorConfig
from agent_loop.early_stopping import ForceStop
from agent_loop.parser_errors import StaticTextHandler, TransformHandler

ENV_NAMES = [
    "AGENT_LOOP_MAX_ITERATIONS",
    "AGENT_LOOP_MAX_EXECUTION_TIME",
    "AGENT_LOOP_TOOL_ERRORS_FATAL",
    "AGENT_LOOP_CONCURRENT_TOOLS",
]


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in ENV_NAMES:
        monkeypatch.delenv(name, raising=False)


# ---------------------------------------------------------------------------
# Defaults and validation
# ---------------------------------------------------------------------------


def test_defaults_are_unlimited_and_lenient():
    config = ExecutorConfig()
    assert config.max_iterations is None
    assert config.max_execution_time is None
    assert config.parser_error_handler is None
    assert config.early_stopping is None
    assert config.extra_return_values == {}
    assert config.tool_errors_fatal is False
    assert config.concurrent_tools is False


@pytest.mark.parametrize(
    "field, value",
    [
        ("max_iterations", -1),
        ("max_execution_time", 0),
        ("max_execution_time", -2.5),
        ("early_stopping", "not callable"),
    ],
)
def test_invalid_values_are_rejected(field, value):
    with pytest.raises(ValidationError):
        ExecutorConfig(**{field: value})


def test_unknown_options_are_rejected():
    with pytest.raises(ValidationError):
        ExecutorConfig(max_iteration=3)


def test_config_is_frozen():
    config = ExecutorConfig(max_iterations=3)
    with pytest.raises(ValidationError):
        config.max_iterations = 4


def test_accepts_both_handler_variants_and_strategies():
    static = ExecutorConfig(parser_error_handler=StaticTextHandler(text="x"))
    transform = ExecutorConfig(parser_error_handler=TransformHandler(func=str))
    strategy = ForceStop()

    assert isinstance(static.parser_error_handler, StaticTextHandler)
    assert isinstance(transform.parser_error_handler, TransformHandler)
    assert ExecutorConfig(early_stopping=strategy).early_stopping is strategy


# ---------------------------------------------------------------------------
# Environment
# ---------------------------------------------------------------------------


def test_from_env_reads_variables(monkeypatch):
    monkeypatch.setenv("AGENT_LOOP_MAX_ITERATIONS", "7")
    monkeypatch.setenv("AGENT_LOOP_MAX_EXECUTION_TIME", "12.5")
    monkeypatch.setenv("AGENT_LOOP_TOOL_ERRORS_FATAL", "true")
    monkeypatch.setenv("AGENT_LOOP_CONCURRENT_TOOLS", "1")

    config = ExecutorConfig.from_env()
    assert config.max_iterations == 7
    assert config.max_execution_time == 12.5
    assert config.tool_errors_fatal is True
    assert config.concurrent_tools is True


def test_from_env_variables_override_defaults(monkeypatch):
    monkeypatch.setenv("AGENT_LOOP_MAX_ITERATIONS", "9")

    config = ExecutorConfig.from_env(max_iterations=3, extra_return_values={"source": "env"})
    assert config.max_iterations == 9
    assert config.extra_return_values == {"source": "env"}


def test_from_env_keeps_defaults_when_unset():
    config = ExecutorConfig.from_env(max_iterations=3)
    assert config.max_iterations == 3


def test_from_env_rejects_garbage(monkeypatch):
    monkeypatch.setenv("AGENT_LOOP_MAX_ITERATIONS", "many")
    with pytest.raises(ValidationError):
        ExecutorConfig.from_env()
