"""
OpenTelemetry metrics collection

Instruments recorded by the package:

- ipc.channel.events.emitted / ipc.channel.events.failed: emit outcomes, by event_name
- ipc.channel.events.received / ipc.channel.messages.ignored / ipc.channel.messages.malformed:
  inbound traffic seen by a channel
- ipc.emitter.listener.errors: listeners that raised, sync or async
- ipc.handle.pipe.errors / ipc.handle.zeromq.errors: transport receive failures
- ipc.channel.emit.latency: milliseconds from emit to settlement of its future

Instruments are created lazily on the global meter provider, so they record
nothing until ``setup_metrics`` installs one.
"""

import logging
from typing import Dict, Any

from opentelemetry import metrics
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
from opentelemetry.exporter.otlp.proto.grpc.metric_exporter import OTLPMetricExporter

logger = logging.getLogger(__name__)

_counters = {}
_histograms = {}


def setup_metrics(service_name: str, otlp_endpoint: str = "localhost:4317", export_interval_ms: int = 5000):
    """Install an OTLP-exporting meter provider

    Args:
        service_name: Meter name, ChannelConfig.service_name
        otlp_endpoint: OTLP collector address
        export_interval_ms: Export period in milliseconds

    Returns:
        Meter for the service
    """
    reader = PeriodicExportingMetricReader(
        OTLPMetricExporter(endpoint=otlp_endpoint),
        export_interval_millis=export_interval_ms
    )

    metrics.set_meter_provider(MeterProvider(metric_readers=[reader]))
    meter = metrics.get_meter(service_name)

    logger.info(f"IPC event metrics exporting to {otlp_endpoint} every {export_interval_ms} ms "
                f"(service: {service_name})")

    return meter


def get_counter(name: str, description: str = "", unit: str = "1"):
    """Return the counter registered under a metric name, creating it on first use"""
    counter = _counters.get(name)
    if counter is None:
        counter = metrics.get_meter(__name__).create_counter(name=name, description=description, unit=unit)
        _counters[name] = counter
    return counter


def get_histogram(name: str, description: str = "", unit: str = "ms"):
    """Return the histogram registered under a metric name, creating it on first use"""
    histogram = _histograms.get(name)
    if histogram is None:
        histogram = metrics.get_meter(__name__).create_histogram(name=name, description=description, unit=unit)
        _histograms[name] = histogram
    return histogram


def increment_counter(name: str, amount: int = 1, attributes: Dict[str, Any] = None):
    """Count IPC events, messages or failures

    Args:
        name: Metric name, e.g. "ipc.channel.events.emitted"
        amount: Increment
        attributes: Labels such as event_name or failure type
    """
    get_counter(name, f"IPC events counted as {name}").add(amount, attributes or {})


def record_latency(name: str, value_ms: float, attributes: Dict[str, Any] = None):
    """Record the duration of an IPC operation

    Args:
        name: Metric name, e.g. "ipc.channel.emit.latency"
        value_ms: Duration in milliseconds
        attributes: Labels such as event_name
    """
    get_histogram(name, f"Duration of {name}").record(value_ms, attributes or {})
