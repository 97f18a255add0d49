"""Small HTTP-related helpers shared across npcchat.

This module is intentionally tiny to avoid circular imports and drift.
"""

from __future__ import annotations

RATE_LIMIT_STATUS = 429


def is_success_status(status_code: int) -> bool:
    """Return True for 2xx statuses."""
    return 200 <= status_code <= 299


def is_retryable_status(status_code: int) -> bool:
    """Return True for statuses a resend can plausibly fix: 429 and 5xx."""
    return status_code == RATE_LIMIT_STATUS or 500 <= status_code <= 599
