"""
Monitoring package initializer.

This package exposes Prometheus metrics and helper decorators for tracking message
ingestion, storage fallback, workflow timing and external API latency.
"""

from .metrics import (
    INBOUND_MESSAGES,
    STORAGE_WRITES,
    FALLBACK_THREADS_PENDING,
    ERROR_COUNT,
    WORKFLOW_PROCESSING_TIME,
    LLM_REQUEST_TIME,
    GATEWAY_REQUEST_TIME,
    track_latency,
    track_errors,
)

__all__ = [
    'INBOUND_MESSAGES',
    'STORAGE_WRITES',
    'FALLBACK_THREADS_PENDING',
    'ERROR_COUNT',
    'WORKFLOW_PROCESSING_TIME',
    'LLM_REQUEST_TIME',
    'GATEWAY_REQUEST_TIME',
    'track_latency',
    'track_errors',
]
