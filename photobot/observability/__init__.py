"""
Observability module - Logging and Metrics.
"""

from photobot.observability.logging import get_logger, log_context, setup_logging
from photobot.observability.metrics import metrics, start_metrics_server

__all__ = [
    "get_logger",
    "log_context",
    "setup_logging",
    "metrics",
    "start_metrics_server",
]
