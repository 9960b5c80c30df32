"""Custom exceptions for the echoreads client."""


class EchoReadsClientError(Exception):
    """Base exception for echoreads client errors."""

    pass


class EchoReadsConnectionError(EchoReadsClientError):
    """Raised when no response was received from the echoreads API."""

    pass


class EchoReadsTimeoutError(EchoReadsClientError):
    """Raised when a request to the echoreads API exceeds its deadline."""

    pass


class EchoReadsAuthenticationError(EchoReadsClientError):
    """Raised when the API rejects the session (401) or a login fails."""

    pass


class EchoReadsHTTPError(EchoReadsClientError):
    """Raised for any other non-2xx status, passed through untouched."""

    def __init__(self, status, body=None):
        super().__init__(f"HTTP {status}")
        self.status = status
        self.body = body


class EchoReadsStorageError(EchoReadsClientError):
    """Raised when the credential file cannot be written or removed."""

    pass
