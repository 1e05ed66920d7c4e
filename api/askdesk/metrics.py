from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from fastapi.responses import Response

# Vote ledger metrics
votes_cast = Counter(
    "askdesk_votes_cast_total",
    "Vote ledger transitions",
    ["target_type", "action"],  # action: created | updated | deleted | noop
)

reputation_delta_points = Counter(
    "askdesk_reputation_delta_points_total",
    "Absolute reputation points applied to authors",
    ["direction"],  # direction: gain | loss
)

# Acceptance metrics
answers_accepted = Counter(
    "askdesk_answers_accepted_total",
    "Accept-answer calls",
    ["outcome"],  # outcome: accepted | already_accepted
)

# Visibility metrics
answers_hidden = Counter(
    "askdesk_answers_hidden_total",
    "Answers omitted from a read because the viewer may not see them",
)

# Reconciliation metrics
reputation_drift_corrections = Counter(
    "askdesk_reputation_drift_corrections_total",
    "Users whose stored reputation was corrected by the reconciliation sweep",
)

# HTTP request metrics (from middleware)
http_requests = Counter(
    "askdesk_http_requests_total",
    "Total HTTP requests",
    ["method", "path", "status_code"],
)

http_request_duration = Histogram(
    "askdesk_http_request_duration_seconds",
    "HTTP request duration",
    ["method", "path"],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
)


async def metrics_endpoint():
    """FastAPI endpoint handler that returns Prometheus metrics."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
