"""Exceptions raised by the megaphone client.

Failures fall into three groups: negotiation failures, which belong to a
single caller and are raised synchronously by the stream constructors;
channel failures, which are delivered to every stream sharing the channel;
and broker failures, raised by the REST helpers in :mod:`megaphone.broker`.
"""

from __future__ import annotations

from typing import Optional


class MegaphoneError(Exception):
    """Base class for all megaphone client errors."""


class NegotiationError(MegaphoneError):
    """The caller-supplied negotiation callback failed, or returned
    something that cannot be used to register a stream."""


class TransportError(MegaphoneError):
    """The read against a channel failed; every stream multiplexed on that
    channel is torn down."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class DecodeError(TransportError):
    """A line received from the read endpoint is not a valid chunk."""


class BrokerError(MegaphoneError):
    """A broker REST call returned a non-success status."""

    def __init__(self, message: str, status: Optional[int] = None, code: Optional[str] = None):
        super().__init__(message)
        self.status = status
        self.code = code


class DelayedResponseError(MegaphoneError):
    """Base class for failures of :func:`megaphone.Poller.delayed_response`."""


class InitializationError(DelayedResponseError):
    """The stream backing a delayed response could not be negotiated."""


class MissingResponse(DelayedResponseError):
    """The stream finished, or the timeout elapsed, before any response
    arrived."""


class DeserializationError(DelayedResponseError):
    """The response body could not be converted to the requested type."""


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
