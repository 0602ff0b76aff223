"""Prometheus metrics for record activity, ceiling utilization and audit health"""

from prometheus_client import Counter, Gauge, Histogram

from escompte_gateway.domain.models import DashboardKPI

# Record lifecycle
record_operations_counter = Counter(
    "escompte_record_operations_total",
    "Record lifecycle operations",
    ["entity", "action", "outcome"],  # outcome: success | rejected | not_found
)

validation_rejections_counter = Counter(
    "escompte_validation_rejections_total",
    "Writes rejected by validation",
    ["entity", "phase"],  # structural | business
)

audit_write_failures_counter = Counter(
    "audit_write_failures_total",
    "Audit entries that could not be written",
)

export_rows_counter = Counter(
    "escompte_export_rows_total",
    "Rows written to CSV/XLSX exports",
    ["entity", "format"],
)

# Ceiling exposure, refreshed whenever the dashboard KPI is computed
utilization_gauge = Gauge(
    "escompte_ceiling_utilization_percent",
    "Share of the bank authorization consumed",
    ["scope"],  # escomptes | global
)

authorization_gauge = Gauge(
    "escompte_bank_authorization",
    "Current bank authorization ceiling",
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_operation(entity: str, action: str, outcome: str = "success") -> None:
    record_operations_counter.labels(entity=entity, action=action, outcome=outcome).inc()


def record_kpi(kpi: DashboardKPI) -> None:
    """Publish the latest aggregate so alerts can fire on near-ceiling exposure"""
    utilization_gauge.labels(scope="escomptes").set(kpi.utilization_percent)
    utilization_gauge.labels(scope="global").set(kpi.utilization_percent_global)
    authorization_gauge.set(kpi.authorization)
