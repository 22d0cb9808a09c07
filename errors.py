from __future__ import annotations


class RelayError(Exception):
    """Base class for every failure the relay knows how to report."""

    status: int = 500
    default_message: str = "internal error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)
        self.message = message or self.default_message


class TransportFailure(RelayError):
    status = 502
    default_message = "upstream transport failure"


class UpstreamRejected(RelayError):
    status = 502
    default_message = "upstream rejected the request"


class ConfigUnavailable(RelayError):
    status = 500
    default_message = "upstream list is empty or unreadable"


class AlreadyRefreshing(RelayError):
    status = 503
    default_message = "currently rechecking, try again later"


class ServiceBusy(RelayError):
    status = 503
    default_message = "no available keys or urls, currently rechecking"


class NoUpstreamsAvailable(RelayError):
    status = 503
    default_message = "no available keys and urls"


class MalformedRequest(RelayError):
    status = 400
    default_message = "invalid request body"
