"""
Configuration settings for IPC event channels
"""
import os
from typing import Dict, Any
from dataclasses import dataclass
from enum import Enum


class TransmitMode(Enum):
    """How an envelope is handed to the process handle"""
    CALLBACK = "callback"  # send(envelope, callback) reports completion
    NEXT_TICK = "next_tick"  # send(envelope) on the next loop iteration, no acknowledgement


def _env_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class ChannelConfig:
    """Configuration for EventChannel and its telemetry"""
    transmit_mode: TransmitMode = TransmitMode.CALLBACK

    # Telemetry configuration
    enable_tracing: bool = False
    enable_metrics: bool = False
    service_name: str = "ipc_events"
    otlp_endpoint: str = "localhost:4317"
    metrics_export_interval_ms: int = 5000

    @classmethod
    def from_env(cls) -> "ChannelConfig":
        """Create config from environment variables

        Raises:
            ValueError: IPC_EVENTS_TRANSMIT_MODE names an unknown mode
        """
        mode = os.getenv("IPC_EVENTS_TRANSMIT_MODE", TransmitMode.CALLBACK.value).strip().lower()
        try:
            transmit_mode = TransmitMode(mode)
        except ValueError:
            raise ValueError(f"Unsupported transmit mode: {mode}") from None

        return cls(
            transmit_mode=transmit_mode,
            enable_tracing=_env_flag("IPC_EVENTS_ENABLE_TRACING", False),
            enable_metrics=_env_flag("IPC_EVENTS_ENABLE_METRICS", False),
            service_name=os.getenv("IPC_EVENTS_SERVICE_NAME", "ipc_events"),
            otlp_endpoint=os.getenv("IPC_EVENTS_OTLP_ENDPOINT", "localhost:4317"),
            metrics_export_interval_ms=int(os.getenv("IPC_EVENTS_METRICS_EXPORT_INTERVAL_MS", "5000")),
        )

    @classmethod
    def default(cls) -> "ChannelConfig":
        """Create default configuration"""
        return cls.from_env()

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization"""
        return {
            "transmit_mode": self.transmit_mode.value,
            "enable_tracing": self.enable_tracing,
            "enable_metrics": self.enable_metrics,
            "service_name": self.service_name,
            "otlp_endpoint": self.otlp_endpoint,
            "metrics_export_interval_ms": self.metrics_export_interval_ms,
        }
