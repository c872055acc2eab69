"""External service clients.

HTTP transport used by the fetch paths to reach the datasource.
"""

from falcon_fetch.infra.external.base_client import (
    BaseHTTPClient,
    Transport,
    TransportResponse,
)

__all__ = [
    "BaseHTTPClient",
    "Transport",
    "TransportResponse",
]
