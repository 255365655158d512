"""
Resilience layer - Backoff policy and the retrying request executor.

- BackoffPolicy: Exponential backoff with symmetric jitter and an elapsed-time budget
- RequestExecutor: Rebuilds, sends and classifies requests, backing off on rate limits
"""

from oaikit.resilience.backoff import (
    BackoffAction,
    BackoffConfig,
    BackoffDecision,
    BackoffPolicy,
    BackoffState,
)
from oaikit.resilience.executor import (
    Outcome,
    PermanentFailure,
    RequestExecutor,
    Success,
    TransientFailure,
    classify_error_response,
    classify_response,
)

__all__ = [
    "BackoffAction",
    "BackoffConfig",
    "BackoffDecision",
    "BackoffPolicy",
    "BackoffState",
    "Outcome",
    "PermanentFailure",
    "RequestExecutor",
    "Success",
    "TransientFailure",
    "classify_error_response",
    "classify_response",
]
