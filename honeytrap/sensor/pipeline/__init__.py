"""Capture pipeline: policy, enrichment, capture and aggregation."""

from honeytrap.sensor.pipeline.aggregator import Aggregator, classify_threat
from honeytrap.sensor.pipeline.capture import CaptureError, CaptureService, resolve_origin, validate_payload
from honeytrap.sensor.pipeline.enrichment import GeoClient
from honeytrap.sensor.pipeline.policy import OutcomePolicy, RandomInterceptPolicy

__all__ = [
    "Aggregator",
    "CaptureError",
    "CaptureService",
    "GeoClient",
    "OutcomePolicy",
    "RandomInterceptPolicy",
    "classify_threat",
    "resolve_origin",
    "validate_payload",
]
