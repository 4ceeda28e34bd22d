from prometheus_client import Counter, Histogram

REQUESTS = Counter("http_requests_total", "Total Request Count", ["service", "endpoint", "method", "status"])
LATENCY = Histogram("http_request_latency_seconds", "Request Latency", ["service", "endpoint"])
INDEX_MUTATIONS = Counter("index_mutations_total", "Token-link index set mutations", ["relation", "op", "status"])
BACKFILL_RUNS = Counter("backfill_runs_total", "Token-link index backfill runs", ["status"])
