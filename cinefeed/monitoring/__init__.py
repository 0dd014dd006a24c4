"""Prometheus monitoring for the reporting API."""

from cinefeed.monitoring.middleware import PrometheusMiddleware, mount_metrics

__all__ = ["PrometheusMiddleware", "mount_metrics"]
