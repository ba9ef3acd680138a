"""
Prometheus metrics definitions.
All metrics are registered here and can be imported by other modules.
"""
from prometheus_client import Counter, Histogram

# HTTP request metrics
http_requests_total = Counter(
    'http_requests_total',
    'Total HTTP requests',
    ['method', 'path', 'status']
)

http_request_duration_seconds = Histogram(
    'http_request_duration_seconds',
    'HTTP request duration in seconds',
    ['method', 'path'],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0]
)

# Error metrics
errors_total = Counter(
    'errors_total',
    'Total errors',
    ['error_type']
)

# Upload metrics
uploads_total = Counter(
    'uploads_total',
    'Total upload attempts by outcome',
    ['outcome']  # created, conflict, rejected, failed
)

upload_bytes_total = Counter(
    'upload_bytes_total',
    'Total bytes written to storage'
)

auth_rejections_total = Counter(
    'auth_rejections_total',
    'Total uploads rejected by signature verification',
    ['reason']
)
