"""Upstream provider errors, classified by what the caller may safely do next."""

from __future__ import annotations


class ProviderError(Exception):
    """Base class for upstream provider failures."""

    retryable: bool = False


class ProviderUnreachableError(ProviderError):
    """The request never reached the provider; resubmitting is safe."""

    retryable = True


class ProviderTimeoutError(ProviderError):
    """The request was sent but no usable answer came back.

    The provider may already have accepted the order, so a submit must be
    resolved through reconciliation rather than retried blindly.
    """

    retryable = True


class ProviderRejectedError(ProviderError):
    """The provider refused the order; terminal, never retried."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(reason)


class ProviderResponseError(ProviderError):
    """The provider answered with a payload we cannot interpret."""
