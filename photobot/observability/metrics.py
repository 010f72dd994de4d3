"""
Metrics Collection with Prometheus.

Exposes business and system metrics for monitoring.
"""

from enum import Enum

from prometheus_client import Counter, Histogram, Info, start_http_server

from photobot.config import settings


class MetricLabels(str, Enum):
    """Standard metric label names."""

    UPDATE_KIND = "update_kind"
    OUTCOME = "outcome"
    STAGE = "stage"
    ACTION = "action"
    ERROR_TYPE = "error_type"


class BotMetrics:
    """
    Centralized metrics for the photo enhancement bot.

    Covers:
    - Inbound updates (rate by kind)
    - Enhancements (outcome, stage duration, upstream errors)
    - Referral onboarding
    - Admin console (actions, broadcast deliveries)
    - Daily maintenance
    """

    def __init__(self) -> None:
        """Initialize all Prometheus metrics."""

        # ====================================================================
        # Service Info
        # ====================================================================
        self.service_info = Info(
            "photobot_service",
            "Service information",
        )
        self.service_info.info(
            {
                "version": settings.service_version,
                "service_name": settings.service_name,
            }
        )

        # ====================================================================
        # Update Metrics
        # ====================================================================
        self.updates_total = Counter(
            "photobot_updates_total",
            "Total Telegram updates handled",
            [MetricLabels.UPDATE_KIND],
        )

        # ====================================================================
        # Enhancement Metrics
        # ====================================================================
        self.enhancements_total = Counter(
            "photobot_enhancements_total",
            "Photo submissions by final outcome",
            [MetricLabels.OUTCOME],
        )

        self.stage_duration_seconds = Histogram(
            "photobot_pipeline_stage_duration_seconds",
            "Time spent reaching each pipeline stage",
            [MetricLabels.STAGE],
            buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0),
        )

        self.upstream_errors_total = Counter(
            "photobot_upstream_errors_total",
            "Upstream failures by pipeline stage",
            [MetricLabels.STAGE, MetricLabels.ERROR_TYPE],
        )

        # ====================================================================
        # Referral Metrics
        # ====================================================================
        self.referrals_total = Counter(
            "photobot_referrals_total",
            "Onboarding outcomes",
            [MetricLabels.OUTCOME],
        )

        # ====================================================================
        # Admin Metrics
        # ====================================================================
        self.admin_actions_total = Counter(
            "photobot_admin_actions_total",
            "Admin console actions",
            [MetricLabels.ACTION, MetricLabels.OUTCOME],
        )

        self.broadcast_deliveries_total = Counter(
            "photobot_broadcast_deliveries_total",
            "Broadcast message deliveries",
            ["success"],
        )

        # ====================================================================
        # Maintenance Metrics
        # ====================================================================
        self.daily_resets_total = Counter(
            "photobot_daily_resets_total",
            "Daily usage resets performed",
        )

        # ====================================================================
        # Error Metrics
        # ====================================================================
        self.errors_total = Counter(
            "photobot_errors_total",
            "Total errors by type",
            [MetricLabels.ERROR_TYPE, MetricLabels.ACTION],
        )

    # ========================================================================
    # Helper Methods
    # ========================================================================

    def record_update(self, kind: str) -> None:
        """Record an inbound update."""
        self.updates_total.labels(update_kind=kind).inc()

    def record_enhancement(self, outcome: str) -> None:
        """Record the final outcome of a photo submission."""
        self.enhancements_total.labels(outcome=outcome).inc()

    def record_stage(self, stage: str, duration: float) -> None:
        """Record time taken to reach a pipeline stage."""
        self.stage_duration_seconds.labels(stage=stage).observe(duration)

    def record_upstream_error(self, stage: str, error_type: str) -> None:
        """Record an upstream failure."""
        self.upstream_errors_total.labels(stage=stage, error_type=error_type).inc()

    def record_referral(self, outcome: str) -> None:
        """Record an onboarding outcome."""
        self.referrals_total.labels(outcome=outcome).inc()

    def record_admin_action(self, action: str, outcome: str) -> None:
        """Record an admin console action."""
        self.admin_actions_total.labels(action=action, outcome=outcome).inc()

    def record_broadcast_delivery(self, success: bool) -> None:
        """Record a single broadcast delivery."""
        self.broadcast_deliveries_total.labels(success=str(success)).inc()

    def record_error(self, error_type: str, action: str) -> None:
        """Record error occurrence."""
        self.errors_total.labels(error_type=error_type, action=action).inc()


# Global metrics instance
metrics = BotMetrics()


def start_metrics_server() -> None:
    """Expose /metrics on the configured port when metrics are enabled."""
    if settings.metrics_enabled:
        start_http_server(settings.metrics_port)
