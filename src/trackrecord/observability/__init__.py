"""
Observability for TrackRecord.

Prometheus counters and gauges for the reputation core.
"""

from .metrics import MetricsCollector

__all__ = ["MetricsCollector"]
