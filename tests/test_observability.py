"""
Tests for logging context and metrics helpers.
"""

import importlib
from unittest.mock import patch

import structlog

from photobot.observability import log_context, metrics, start_metrics_server

# The package re-exports the `metrics` instance under the submodule's name
metrics_module = importlib.import_module("photobot.observability.metrics")


def sample(counter, **labels) -> float:
    return counter.labels(**labels)._value.get()


class TestLogContext:
    def test_binds_and_unbinds(self):
        with log_context(update_id=7, user_id=100):
            bound = structlog.contextvars.get_contextvars()
            assert bound["update_id"] == 7
            assert bound["user_id"] == 100

        bound = structlog.contextvars.get_contextvars()
        assert "update_id" not in bound
        assert "user_id" not in bound


class TestBotMetrics:
    def test_record_enhancement(self):
        before = sample(metrics.enhancements_total, outcome="delivered")
        metrics.record_enhancement("delivered")
        assert sample(metrics.enhancements_total, outcome="delivered") == before + 1

    def test_record_admin_action(self):
        before = sample(metrics.admin_actions_total, action="stats", outcome="denied")
        metrics.record_admin_action("stats", "denied")
        after = sample(metrics.admin_actions_total, action="stats", outcome="denied")
        assert after == before + 1

    def test_record_broadcast_delivery(self):
        before = sample(metrics.broadcast_deliveries_total, success="False")
        metrics.record_broadcast_delivery(False)
        assert sample(metrics.broadcast_deliveries_total, success="False") == before + 1


class TestMetricsServer:
    def test_disabled(self):
        with (
            patch.object(metrics_module.settings, "metrics_enabled", False),
            patch.object(metrics_module, "start_http_server") as start_http_server,
        ):
            start_metrics_server()
        start_http_server.assert_not_called()

    def test_enabled(self):
        with (
            patch.object(metrics_module.settings, "metrics_enabled", True),
            patch.object(metrics_module.settings, "metrics_port", 9191),
            patch.object(metrics_module, "start_http_server") as start_http_server,
        ):
            start_metrics_server()
        start_http_server.assert_called_once_with(9191)
