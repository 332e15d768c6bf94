"""
OpenTelemetry integration

- tracer: span creation around event emission and dispatch
- metrics: counters and latency histograms

Both go through the OpenTelemetry API and stay no-ops until ``setup_telemetry``
installs the SDK providers.
"""

import logging

from .tracer import setup_tracer, create_span
from .metrics import setup_metrics, increment_counter, record_latency

logger = logging.getLogger(__name__)


def setup_telemetry(config):
    """Install tracer and meter providers according to a ChannelConfig

    Args:
        config: ChannelConfig carrying service name, OTLP endpoint and flags

    Returns:
        tuple: (tracer or None, meter or None)
    """
    tracer = None
    meter = None
    if config.enable_tracing:
        tracer = setup_tracer(config.service_name, config.otlp_endpoint)
    if config.enable_metrics:
        meter = setup_metrics(config.service_name, config.otlp_endpoint, config.metrics_export_interval_ms)
    if tracer is None and meter is None:
        logger.debug("Telemetry disabled by configuration")
    return tracer, meter


__all__ = [
    "setup_telemetry",
    "setup_tracer",
    "setup_metrics",
    "create_span",
    "increment_counter",
    "record_latency",
]
