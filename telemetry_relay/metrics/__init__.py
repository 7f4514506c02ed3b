from .metrics_monitor import MetricsAggregator, MetricsSnapshot

__all__ = ["MetricsAggregator", "MetricsSnapshot"]
