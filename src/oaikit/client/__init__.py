"""
Client layer - User-facing API.

Provides:
- Client: Executes requests and opens event streams
- ClientBuilder: Fluent configuration
"""

from oaikit.client.builder import ClientBuilder
from oaikit.client.core import Client

__all__ = [
    "Client",
    "ClientBuilder",
]
