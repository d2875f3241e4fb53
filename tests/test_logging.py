"""Tests for core.logging - processors, context binding and the console formatter."""

import json
import logging
from unittest.mock import MagicMock, patch

import pytest

import balance_simulation
from core.logging import bind_context, clear_context, get_current_context, shutdown_logging
from core.logging import config as logging_config
from core.logging.config import DualFormatFormatter
from core.logging.processors import add_service_context, redact_sensitive_data


def _record(message: str) -> logging.LogRecord:
    return logging.LogRecord("clicker", logging.INFO, __file__, 1, message, None, None)


class TestProcessors:
    """Tests for the structlog processors."""

    def test_redacts_sensitive_keys(self):
        event = redact_sensitive_data(None, "info", {"event": "login", "Token": "abc", "user_id": "u1"})
        assert event["Token"] == "[REDACTED]"
        assert event["user_id"] == "u1"

    def test_service_name_added_once(self):
        assert add_service_context(None, "info", {"event": "x"})["service"] == "clicker"
        assert add_service_context(None, "info", {"service": "other"})["service"] == "other"


class TestContext:
    """Tests for bind_context / clear_context."""

    def test_bind_and_clear(self):
        bind_context(user_id="u1", season_id="season_1")
        context = get_current_context()

        assert context["user_id"] == "u1"
        assert context["season_id"] == "season_1"
        assert len(context["session_id"]) == 8

        clear_context()
        assert get_current_context() == {}

    def test_session_id_kept_on_rebind(self):
        bind_context(user_id="u1")
        first = get_current_context()["session_id"]
        bind_context(season_id="season_2")

        assert get_current_context()["session_id"] == first
        clear_context()


class TestDualFormatFormatter:
    """Tests for DualFormatFormatter."""

    def test_json_passthrough(self):
        line = json.dumps({"event": "rank_up", "level": "info"})
        assert DualFormatFormatter(pretty=False).format(_record(line)) == line

    def test_pretty_line(self):
        line = json.dumps({
            "event": "rank_up",
            "level": "info",
            "logger": "clicker.progression",
            "timestamp": "2026-03-14T12:00:00.123456Z",
            "rank_index": 2,
        })
        rendered = DualFormatFormatter(pretty=True).format(_record(line))

        assert "2026-03-14 12:00:00" in rendered
        assert "clicker.progression: rank_up" in rendered
        assert "rank_index=2" in rendered

    def test_plain_message_untouched(self):
        assert DualFormatFormatter(pretty=True).format(_record("hello")) == "hello"


class TestShutdown:
    """Tests for shutdown_logging."""

    def test_stops_and_forgets_listeners(self):
        listener = MagicMock()
        with patch.object(logging_config, "_listeners", [listener]) as listeners:
            shutdown_logging()

            listener.stop.assert_called_once()
            assert listeners == []

    @pytest.mark.asyncio
    async def test_simulation_flushes_logs_on_exit(self):
        with patch.object(balance_simulation, "simulate_tapping") as simulate, \
                patch.object(balance_simulation, "print_curve"), \
                patch.object(balance_simulation, "shutdown_logging") as shutdown:
            await balance_simulation.main()

        assert simulate.call_count == 2
        shutdown.assert_called_once()

    @pytest.mark.asyncio
    async def test_simulation_flushes_logs_on_error(self):
        with patch.object(balance_simulation, "simulate_tapping", side_effect=RuntimeError("boom")), \
                patch.object(balance_simulation, "print_curve"), \
                patch.object(balance_simulation, "shutdown_logging") as shutdown:
            with pytest.raises(RuntimeError):
                await balance_simulation.main()

        shutdown.assert_called_once()
