"""
Prometheus metrics for the AIVF clinic platform.

All collectors live on one `MetricsRegistry` instance (`metrics`) so call
sites read as `metrics.reminders_sent_total.labels(result='sent').inc()`.
"""
from prometheus_client import REGISTRY, Counter, Histogram


class MetricsRegistry:
    """
    Central metrics registry.

    Provides typed access to all application metrics.
    """

    def __init__(self, registry=REGISTRY):
        self._registry = registry
        self._setup_metrics()

    def _create_counter(self, name, description, labels=None):
        return Counter(name, description, labels or [], registry=self._registry)

    def _create_histogram(self, name, description, labels=None, buckets=None):
        if buckets:
            return Histogram(
                name, description, labels or [], buckets=buckets, registry=self._registry
            )
        return Histogram(name, description, labels or [], registry=self._registry)

    def _setup_metrics(self):
        # ===================================================================
        # Error Metrics
        # ===================================================================
        self.exceptions_total = self._create_counter(
            'exceptions_total',
            'Domain errors returned to clients',
            ['exception_type', 'location']
        )

        # ===================================================================
        # Protocol Metrics
        # ===================================================================
        self.protocol_assignments_total = self._create_counter(
            'protocol_assignments_total',
            'Protocol assignments created'
        )

        self.protocol_revisions_total = self._create_counter(
            'protocol_revisions_total',
            'Protocol revisions',
            ['mode']  # in_place, new_version
        )

        # ===================================================================
        # Completion Ledger Metrics
        # ===================================================================
        self.injection_completions_total = self._create_counter(
            'injection_completions_total',
            'Injection completion attempts',
            ['result']  # recorded, duplicate, rejected
        )

        self.mood_analysis_total = self._create_counter(
            'mood_analysis_total',
            'Mood enrichment attempts',
            ['result']  # completed, failed
        )

        # ===================================================================
        # Reminder Metrics
        # ===================================================================
        self.reminder_sweep_runs_total = self._create_counter(
            'reminder_sweep_runs_total',
            'Reminder sweeps executed'
        )

        self.reminders_sent_total = self._create_counter(
            'reminders_sent_total',
            'Reminder notifications per patient',
            ['result']  # sent, skipped, failed
        )

        self.reminder_sweep_duration_seconds = self._create_histogram(
            'reminder_sweep_duration_seconds',
            'Duration of a full reminder sweep',
            buckets=[0.1, 0.5, 1.0, 5.0, 15.0, 60.0, 300.0]
        )

        # ===================================================================
        # AI Assistant Metrics
        # ===================================================================
        self.ai_requests_total = self._create_counter(
            'ai_requests_total',
            'Text completion requests',
            ['purpose', 'result']  # result: success, failure
        )

        self.ai_request_duration_seconds = self._create_histogram(
            'ai_request_duration_seconds',
            'Text completion request duration',
            ['purpose'],
            buckets=[0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 15.0, 30.0]
        )


# Global metrics instance
metrics = MetricsRegistry()
