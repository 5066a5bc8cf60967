"""Prometheus metrics."""

from prometheus_client import Counter, Histogram

# Signature request metrics
signature_requests_created = Counter(
    "sealsign_signature_requests_created_total",
    "Total signature requests created",
)

signing_outcomes = Counter(
    "sealsign_signing_outcomes_total",
    "Signing session outcomes",
    ["operation", "result"],
)

# Sealing metrics
sealing_duration = Histogram(
    "sealsign_sealing_duration_seconds",
    "Document sealing duration",
)

sealing_failures = Counter(
    "sealsign_sealing_failures_total",
    "Sealing failures",
    ["retryable"],
)

# Audit metrics
audit_entries_appended = Counter(
    "sealsign_audit_entries_appended_total",
    "Audit entries appended",
    ["action"],
)

# Notification metrics
notification_failures = Counter(
    "sealsign_notification_failures_total",
    "Notifications that could not be handed off",
    ["kind"],
)

# Blob store metrics
blob_store_retries = Counter(
    "sealsign_blob_store_retries_total",
    "Blob store calls retried after a transient failure",
    ["operation"],
)
