from prometheus_client import Counter, Histogram, Gauge, generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

# Keep metrics module-level singletons
jobs_submitted_total = Counter("jobs_submitted_total", "Total jobs submitted", ["type"])
jobs_finished_total = Counter("jobs_finished_total", "Jobs that reached a terminal state", ["type", "state"])
jobs_active = Gauge("jobs_active", "Jobs currently being executed by workers")
queue_depth = Gauge("queue_depth", "Job ids waiting for a worker")
error_count = Counter("error_count", "Total errors encountered by the control plane")
request_latency_seconds = Histogram("request_latency_seconds", "HTTP request latency seconds")

# Worker / execution metrics
execution_latency_seconds = Histogram("execution_latency_seconds", "Job execution latency seconds")

# Response cache
cache_hits_total = Counter("cache_hits_total", "Response cache hits")
cache_misses_total = Counter("cache_misses_total", "Response cache misses")


def metrics_response():
    # Return prometheus metrics as a Response
    payload = generate_latest()
    return Response(content=payload, media_type=CONTENT_TYPE_LATEST)
