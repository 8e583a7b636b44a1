"""
Prometheus metrics for the game evaluator.

Metrics exposed:
- Pipeline run counters and the "run in progress" gauge
- Collector yield and failure counters per provider
- Trend lookup outcomes per provider
- Evaluation outcomes (oracle answer vs neutral default)
- Notification delivery counters
"""
from prometheus_client import Counter, Gauge

# Pipeline
pipeline_runs_total = Counter(
    "pipeline_runs_total",
    "Total evaluation pipeline runs by terminal status",
    ["status"]
)

pipeline_running = Gauge(
    "pipeline_running",
    "1 while an evaluation pipeline run is active"
)

pipeline_rejected_triggers_total = Counter(
    "pipeline_rejected_triggers_total",
    "Run triggers rejected because a run was already active"
)

# Collectors
collector_records_total = Counter(
    "collector_records_total",
    "Candidate records produced per provider",
    ["provider"]
)

collector_failures_total = Counter(
    "collector_failures_total",
    "Collector failures absorbed per provider",
    ["provider"]
)

# Trend providers
trend_lookups_total = Counter(
    "trend_lookups_total",
    "Trend provider lookups by outcome (hit, miss, error)",
    ["provider", "outcome"]
)

# Evaluations
evaluations_total = Counter(
    "evaluations_total",
    "Game evaluations by outcome (oracle, default)",
    ["outcome"]
)

persistence_failures_total = Counter(
    "persistence_failures_total",
    "Per-game persistence failures absorbed by the pipeline"
)

# Notifications
notifications_total = Counter(
    "notifications_total",
    "Notifications sent by type and status",
    ["notification_type", "status"]
)
