"""Prometheus metrics instrumentation for zigbridge."""

from prometheus_client import Counter, Gauge
from prometheus_fastapi_instrumentator import Instrumentator, metrics

# Callback deliveries by outcome (delivered, failed)
callback_deliveries_total = Counter(
    "zigbridge_callback_deliveries_total",
    "Callback POST attempts by outcome",
    ["outcome"],
)

# Events dropped because the device model is alarm-class
suppressed_events_total = Counter(
    "zigbridge_suppressed_events_total",
    "Device state events suppressed from callback delivery",
)

# Feedback records currently held
feedback_records = Gauge(
    "zigbridge_feedback_records",
    "Number of feedback records held in memory",
)

# MQTT connection gauge
mqtt_connected = Gauge(
    "zigbridge_mqtt_connected",
    "Whether the gateway is connected to the MQTT broker (1=connected, 0=disconnected)",
)


def setup_metrics(app) -> Instrumentator:
    """Set up Prometheus metrics instrumentation for FastAPI app."""
    instrumentator = Instrumentator(
        should_group_status_codes=True,
        should_ignore_untemplated=True,
        should_respect_env_var=True,
        excluded_handlers=["/health", "/metrics"],
        env_var_name="METRICS_ENABLED",
    )

    instrumentator.add(
        metrics.default(
            metric_namespace="",
            metric_subsystem="",
        )
    )

    instrumentator.instrument(app)

    return instrumentator


def expose_metrics(app, instrumentator: Instrumentator) -> None:
    """Expose the /metrics endpoint."""
    instrumentator.expose(app, include_in_schema=False, should_gzip=True)


def record_delivery(delivered: bool) -> None:
    """Count one callback delivery attempt."""
    callback_deliveries_total.labels(outcome="delivered" if delivered else "failed").inc()


def record_suppressed() -> None:
    """Count one suppressed event."""
    suppressed_events_total.inc()


def set_feedback_records(count: int) -> None:
    """Set number of feedback records held."""
    feedback_records.set(count)


def set_mqtt_connected(connected: bool) -> None:
    """Set MQTT connection status."""
    mqtt_connected.set(1 if connected else 0)
