from prometheus_client import Counter, Histogram
import logging

logger = logging.getLogger(__name__)

# Outbound request metrics
CLIENT_REQUEST_COUNT = Counter(
    'fieldops_client_requests_total',
    'Total number of logical requests made by the client',
    ['method', 'outcome']
)

CLIENT_REQUEST_DURATION = Histogram(
    'fieldops_client_request_duration_seconds',
    'Duration of logical requests including retries and backoff',
    ['method'],
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0]
)

CLIENT_RETRY_COUNT = Counter(
    'fieldops_client_retries_total',
    'Total number of retried attempts',
    ['method', 'reason']
)

CIRCUIT_OPEN_COUNT = Counter(
    'fieldops_client_circuit_open_total',
    'Total number of requests short-circuited by an open breaker',
    ['method']
)

class MetricsManager:
    """Records client traffic metrics"""

    @staticmethod
    def record_request(method: str, outcome: str, duration: float):
        """Record a finished logical request"""
        CLIENT_REQUEST_COUNT.labels(method=method, outcome=outcome).inc()
        CLIENT_REQUEST_DURATION.labels(method=method).observe(duration)

    @staticmethod
    def record_retry(method: str, reason: str):
        CLIENT_RETRY_COUNT.labels(method=method, reason=reason).inc()

    @staticmethod
    def record_circuit_open(method: str):
        CIRCUIT_OPEN_COUNT.labels(method=method).inc()
