"""
Prometheus Metrics Integration.

Provides metrics collection and export for TrackRecord.
"""

from typing import Optional

from prometheus_client import CollectorRegistry, Counter, Gauge, generate_latest


class MetricsCollector:
    """
    Prometheus metrics collector for TrackRecord.

    Exposes metrics:
    - trackrecord_trades_logged_total
    - trackrecord_proofs_generated_total{proof_type="...", source="collaborator|local"}
    - trackrecord_proof_verifications_total{result="valid|invalid|expired"}
    - trackrecord_reputation_computations_total{source="collaborator|local"}
    - trackrecord_collaborator_failures_total{operation="..."}
    - trackrecord_backend_write_failures_total
    - trackrecord_rate_limited_total{policy="..."}
    - trackrecord_registered_agents
    - trackrecord_stored_proofs
    - trackrecord_backend_healthy

    Each collector owns its own registry so several services can coexist in
    one process.
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        """Initialize metrics collector."""
        self.registry = registry if registry is not None else CollectorRegistry()

        self.trades_logged = Counter(
            "trackrecord_trades_logged_total",
            "Total number of trades logged",
            registry=self.registry,
        )
        self.proofs_generated = Counter(
            "trackrecord_proofs_generated_total",
            "Total number of proofs generated",
            ["proof_type", "source"],
            registry=self.registry,
        )
        self.proof_verifications = Counter(
            "trackrecord_proof_verifications_total",
            "Total number of proof verifications",
            ["result"],
            registry=self.registry,
        )
        self.reputation_computations = Counter(
            "trackrecord_reputation_computations_total",
            "Total number of verified reputation computations",
            ["source"],
            registry=self.registry,
        )
        self.collaborator_failures = Counter(
            "trackrecord_collaborator_failures_total",
            "Privacy collaborator calls that failed or timed out",
            ["operation"],
            registry=self.registry,
        )
        self.backend_write_failures = Counter(
            "trackrecord_backend_write_failures_total",
            "Durable writes that failed",
            registry=self.registry,
        )
        self.rate_limited = Counter(
            "trackrecord_rate_limited_total",
            "Requests rejected by a rate limit policy",
            ["policy"],
            registry=self.registry,
        )
        self.registered_agents = Gauge(
            "trackrecord_registered_agents",
            "Number of registered agents",
            registry=self.registry,
        )
        self.stored_proofs = Gauge(
            "trackrecord_stored_proofs",
            "Number of proofs currently held in the ledger",
            registry=self.registry,
        )
        self.backend_healthy = Gauge(
            "trackrecord_backend_healthy",
            "1 when the durable backend is connected and healthy",
            registry=self.registry,
        )

    def record_trade(self):
        self.trades_logged.inc()

    def record_proof(self, proof_type: str, source: str):
        self.proofs_generated.labels(proof_type=proof_type, source=source).inc()

    def record_verification(self, result: str):
        """Record a verification outcome (valid, invalid or expired)."""
        self.proof_verifications.labels(result=result).inc()

    def record_reputation(self, source: str):
        self.reputation_computations.labels(source=source).inc()

    def record_collaborator_failure(self, operation: str):
        self.collaborator_failures.labels(operation=operation).inc()

    def record_backend_failure(self):
        self.backend_write_failures.inc()

    def record_rate_limited(self, policy: str):
        self.rate_limited.labels(policy=policy).inc()

    def set_registered_agents(self, count: int):
        self.registered_agents.set(count)

    def set_stored_proofs(self, count: int):
        self.stored_proofs.set(count)

    def set_backend_healthy(self, healthy: bool):
        self.backend_healthy.set(1 if healthy else 0)

    def export(self) -> bytes:
        """Render the registry in Prometheus text format."""
        return generate_latest(self.registry)

    def value(self, name: str, labels: Optional[dict[str, str]] = None) -> float:
        """Current value of a sample, 0.0 when it was never set."""
        result = self.registry.get_sample_value(name, labels or {})
        return result if result is not None else 0.0
