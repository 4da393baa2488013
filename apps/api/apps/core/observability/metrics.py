"""
Prometheus metrics registry.
"""
import time
from functools import wraps

from prometheus_client import Counter, Histogram


class MetricsRegistry:
    """
    Central metrics registry for the clinic backend.

    Provides typed access to all application metrics.
    """

    def __init__(self):
        self._setup_metrics()

    def _create_counter(self, name, description, labels=None):
        return Counter(name, description, labels or [])

    def _create_histogram(self, name, description, labels=None, buckets=None):
        if buckets:
            return Histogram(name, description, labels or [], buckets=buckets)
        return Histogram(name, description, labels or [])

    def _setup_metrics(self):
        # ===================================================================
        # HTTP Metrics
        # ===================================================================
        self.http_requests_total = self._create_counter(
            'http_requests_total',
            'Total HTTP requests',
            ['path', 'method', 'status']
        )

        self.http_request_duration_seconds = self._create_histogram(
            'http_request_duration_seconds',
            'HTTP request duration in seconds',
            ['path', 'method'],
            buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0]
        )

        self.exceptions_total = self._create_counter(
            'exceptions_total',
            'Total exceptions',
            ['exception_type', 'location']
        )

        # ===================================================================
        # Consultation Metrics
        # ===================================================================
        self.consultations_completed_total = self._create_counter(
            'consultations_completed_total',
            'Consultation workflow executions',
            ['path', 'result']  # path: complete|quick, result: success|validation_error|not_found|transient_error|unexpected_error
        )

        self.consultation_duration_seconds = self._create_histogram(
            'consultation_duration_seconds',
            'Duration of the consultation workflow including retries',
            buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0]
        )

        self.consultation_transaction_retries_total = self._create_counter(
            'consultation_transaction_retries_total',
            'Consultation transactions replayed after a transient store failure',
            ['reason']  # OperationalError, InterfaceError, IntegrityError
        )

        self.consultation_aggregates_reused_total = self._create_counter(
            'consultation_aggregates_reused_total',
            'Aggregates reused instead of created by the reconciler',
            ['aggregate']  # visit, prescription, bill
        )

        # ===================================================================
        # Visit / Billing Metrics
        # ===================================================================
        self.visit_transitions_total = self._create_counter(
            'visit_transitions_total',
            'Visit status transitions',
            ['from_status', 'to_status', 'result']
        )

        self.bill_payments_total = self._create_counter(
            'bill_payments_total',
            'Bill payments recorded',
            ['mode', 'result']
        )

        self.bill_overpayment_blocked_total = self._create_counter(
            'bill_overpayment_blocked_total',
            'Payments rejected because they exceed the bill total'
        )

    def track_duration(self, histogram_metric):
        """
        Decorator to track function duration.

        Usage:
            @metrics.track_duration(metrics.consultation_duration_seconds)
            def complete_consultation(payload, performed_by):
                ...
        """
        def decorator(func):
            @wraps(func)
            def wrapper(*args, **kwargs):
                start_time = time.time()
                try:
                    return func(*args, **kwargs)
                finally:
                    histogram_metric.observe(time.time() - start_time)
            return wrapper
        return decorator


# Global metrics instance
metrics = MetricsRegistry()
