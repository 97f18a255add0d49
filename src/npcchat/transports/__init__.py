"""Transport implementations."""

from .base import Transport, TransportResponse
from .http import HttpxTransport
from .mock import MockTransport

__all__ = [
    "HttpxTransport",
    "MockTransport",
    "Transport",
    "TransportResponse",
]
