"""EchoReads - session-aware client for the EchoReads magazine API"""

from .app import EchoReadsApp
from .client import ApiResponse, AuthenticatedClient
from .exceptions import (
    EchoReadsAuthenticationError,
    EchoReadsClientError,
    EchoReadsConnectionError,
    EchoReadsHTTPError,
    EchoReadsStorageError,
    EchoReadsTimeoutError,
)

__version__ = "0.1.0"
__all__ = [
    "EchoReadsApp",
    "ApiResponse",
    "AuthenticatedClient",
    "EchoReadsClientError",
    "EchoReadsAuthenticationError",
    "EchoReadsConnectionError",
    "EchoReadsHTTPError",
    "EchoReadsStorageError",
    "EchoReadsTimeoutError",
]
