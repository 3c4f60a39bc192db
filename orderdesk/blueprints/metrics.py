"""
/metrics endpoint and per-request HTTP instrumentation.

Not authenticated: keep it reachable from the monitoring network only.
"""
import time

from flask import Blueprint, Response, request, g
from prometheus_client import Counter, Histogram, Gauge, generate_latest, CONTENT_TYPE_LATEST

from orderdesk.metrics import registry, metric_registry

metrics_bp = Blueprint('metrics', __name__)

http_requests_total = Counter(
    'http_requests_total',
    'Total HTTP requests',
    ['method', 'endpoint', 'http_status'],
    registry=metric_registry
)

http_request_duration_seconds = Histogram(
    'http_request_duration_seconds',
    'HTTP request latency in seconds',
    ['method', 'endpoint'],
    registry=metric_registry,
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0)
)

http_requests_in_flight = Gauge(
    'http_requests_in_flight',
    'HTTP requests currently being processed',
    registry=metric_registry
)


def setup_metrics_instrumentation(app):
    """Time every request and count it by endpoint and status."""
    
    @app.before_request
    def start_request_timer():
        g._request_started_at = time.time()
        http_requests_in_flight.inc()
    
    @app.after_request
    def record_request(response):
        if not hasattr(g, '_request_started_at'):
            return response
        endpoint = request.endpoint or 'unknown'
        try:
            http_request_duration_seconds.labels(
                method=request.method,
                endpoint=endpoint
            ).observe(time.time() - g._request_started_at)
            http_requests_total.labels(
                method=request.method,
                endpoint=endpoint,
                http_status=response.status_code
            ).inc()
            http_requests_in_flight.dec()
        except ValueError as e:
            app.logger.warning(f"Failed to record request metrics: {e}")
        return response


@metrics_bp.route('/metrics')
def metrics():
    return Response(generate_latest(registry), mimetype=CONTENT_TYPE_LATEST)
