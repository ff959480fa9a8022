"""
Prometheus metrics for the hotpath agent.
Served in text exposition format at GET /metrics.
"""
import logging
from prometheus_client import Counter, Gauge, Info, CollectorRegistry, generate_latest

logger = logging.getLogger(__name__)

# Use custom registry to avoid conflicts
REGISTRY = CollectorRegistry()

# Ingest metrics
sample_batches_ingested_total = Counter(
    'hotpath_agent_sample_batches_ingested_total',
    'Total sample batches accepted on /samples/',
    registry=REGISTRY
)

sample_batches_rejected_total = Counter(
    'hotpath_agent_sample_batches_rejected_total',
    'Total sample batches rejected on /samples/',
    registry=REGISTRY
)

# Flush metrics
flushes_total = Counter(
    'hotpath_agent_flushes_total',
    'Total flush attempts',
    ['status'],  # success, failed, dumped
    registry=REGISTRY
)

pending_samples = Gauge(
    'hotpath_agent_pending_samples',
    'Number of (project, environment, function) keys awaiting a flush',
    registry=REGISTRY
)

# Auth metrics
token_renewals_total = Counter(
    'hotpath_agent_token_renewals_total',
    'Total access token renewals',
    ['status'],  # success, failed
    registry=REGISTRY
)

# Application info
app_info = Info('hotpath_agent_application', 'Hotpath agent information', registry=REGISTRY)


def render_metrics() -> bytes:
    """Render the agent registry in Prometheus text format."""
    return generate_latest(REGISTRY)
