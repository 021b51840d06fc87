# ============================================================================
# LOGGING AND CONFIGURATION TESTS
# ============================================================================
# EPOCH: 1 - RECIPE EXECUTION
# STATUS: Tests - Ambient stack
# PURPOSE: Verify log context propagation, formatters and env-driven defaults
# CREATED: 14 OCT 2026
# ============================================================================
"""
Logging and Configuration Tests

Run with:
    pytest tests/test_logging_config.py -v
"""

import asyncio
import json
import logging

from core.config import (
    CapabilityDefaults,
    CredentialDefaults,
    ExecutionDefaults,
    TimeoutDefaults,
    get_defaults,
    reset_defaults,
)
from core.contracts import Capability
from core.logging import (
    ComponentType,
    HumanFormatter,
    StructuredFormatter,
    configure_logging,
    get_current_context,
    get_logger,
    log_checkpoint,
    log_context,
)


def _record(message="hello", data=None):
    record = logging.LogRecord("test", logging.INFO, __file__, 1, message, None, None)
    if data is not None:
        record.data = data
    return record


# ============================================================================
# LOG CONTEXT
# ============================================================================

class TestLogContext:

    def test_nested_context_inherits(self):
        with log_context(execution_id="exec_1", recipe_id="r"):
            with log_context(node_id="gen"):
                context = get_current_context()
                assert (context.execution_id, context.recipe_id, context.node_id) == ("exec_1", "r", "gen")
            assert get_current_context().node_id is None
        assert get_current_context().execution_id is None

    def test_context_is_per_task(self):
        async def worker(node_id):
            with log_context(node_id=node_id):
                await asyncio.sleep(0)
                return get_current_context().node_id

        async def main():
            return await asyncio.gather(worker("a"), worker("b"))

        assert asyncio.run(main()) == ["a", "b"]

    def test_to_dict_drops_none(self):
        with log_context(execution_id="exec_1", extra={"attempt": 2}):
            assert get_current_context().to_dict() == {"execution_id": "exec_1", "attempt": 2}


# ============================================================================
# FORMATTERS
# ============================================================================

class TestFormatters:

    def test_structured_formatter(self):
        with log_context(execution_id="exec_1", node_id="gen"):
            line = StructuredFormatter().format(_record(data={"records": 3}))
        payload = json.loads(line)
        assert payload["message"] == "hello"
        assert payload["context"] == {"execution_id": "exec_1", "node_id": "gen"}
        assert payload["data"] == {"records": 3}
        assert payload["source"]["line"] == 1

    def test_human_formatter(self):
        with log_context(execution_id="exec_1", node_id="gen"):
            line = HumanFormatter().format(_record())
        assert "[exec=exec_1, node=gen]" in line
        assert line.endswith("test [exec=exec_1, node=gen]: hello")

    def test_context_logger_folds_data(self, caplog):
        logger = get_logger("recipe.test", ComponentType.DECODER)
        with caplog.at_level(logging.INFO, logger="recipe.test"):
            logger.info("emitted", data={"sequence": 1})
        assert caplog.records[0].data == {"sequence": 1, "component": "decoder"}

    def test_checkpoint(self, caplog):
        with caplog.at_level(logging.INFO, logger="checkpoint"):
            with log_context(execution_id="exec_1"):
                log_checkpoint("execution_started", {"nodes": 3})
        record = caplog.records[0]
        assert record.getMessage() == "CHECKPOINT: execution_started"
        assert record.data["execution_id"] == "exec_1"
        assert record.data["data"] == {"nodes": 3}

    def test_configure_logging_from_env(self, monkeypatch):
        root = logging.getLogger()
        saved_handlers, saved_level = root.handlers[:], root.level
        monkeypatch.setenv("LOG_LEVEL", "warning")
        monkeypatch.setenv("LOG_FORMAT", "json")
        try:
            configure_logging()
            assert root.level == logging.WARNING
            assert isinstance(root.handlers[-1].formatter, StructuredFormatter)
        finally:
            root.handlers[:] = saved_handlers
            root.setLevel(saved_level)


# ============================================================================
# CONFIGURATION
# ============================================================================

class TestDefaults:

    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("DEFAULT_AI_PROVIDER", "openai")
        monkeypatch.setenv("DEFAULT_AI_MODEL", "gpt-4o")
        monkeypatch.setenv("RECIPE_PARALLEL_BRANCHES", "true")
        monkeypatch.setenv("RECIPE_MAX_CONCURRENCY", "8")
        monkeypatch.setenv("RETRY_MAX_ATTEMPTS", "5")
        reset_defaults()

        defaults = get_defaults()

        assert defaults.capabilities.for_capability(Capability.TEXT_GENERATION) == {
            "provider": "openai", "model": "gpt-4o",
        }
        assert defaults.capabilities.image_provider == "openai"
        assert defaults.execution.parallel_branches is True
        assert defaults.execution.max_concurrency == 8
        assert defaults.retry.max_attempts == 5
        assert get_defaults() is defaults

    def test_timeouts(self):
        timeouts = TimeoutDefaults()
        assert timeouts.get_timeout("video_generation") == 600.0
        assert timeouts.get_timeout("video_generation", 30) == 30
        assert timeouts.get_timeout("unknown") == 120.0

    def test_capability_defaults_unset(self):
        assert CapabilityDefaults(video_model="").for_capability(Capability.VIDEO_GENERATION) is None

    def test_credentials_per_provider(self):
        credentials = CredentialDefaults(openai_api_key="sk", openai_org_id="org", gemini_api_key=None)
        assert credentials.for_provider("openai") == {"api_key": "sk", "organization": "org"}
        assert credentials.for_provider("gemini") == {}
        assert credentials.for_provider("echo") == {}

    def test_execution_defaults_sequential(self):
        assert ExecutionDefaults().parallel_branches is False
