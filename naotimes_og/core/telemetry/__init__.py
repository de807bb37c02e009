"""
Telemetry
=========

Anonymized Plausible analytics for rendered artifacts.
"""

from naotimes_og.core.telemetry.dispatcher import TelemetryDispatcher, TelemetrySlot
from naotimes_og.core.telemetry.metadata import (
    extract_client_metadata,
    forwarded_for,
    public_ips,
)

__all__ = [
    "TelemetryDispatcher",
    "TelemetrySlot",
    "extract_client_metadata",
    "forwarded_for",
    "public_ips",
]
