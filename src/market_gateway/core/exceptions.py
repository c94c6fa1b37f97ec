"""Custom exception hierarchy for market-gateway."""

from typing import Any


class GatewayError(Exception):
    """Base exception for all market-gateway errors.

    All exceptions carry an optional `context` dict for structured error
    metadata that can be logged without parsing the message. The message
    itself is what HTTP clients see in the ``error`` field.
    """

    def __init__(self, message: str, context: dict[str, Any] | None = None):
        super().__init__(message)
        self.context = context or {}


class ConfigError(GatewayError):
    """Invalid or missing configuration.

    Raised by load_config() during startup. Should be treated as fatal.

    Context keys:
        field: str: the config field that failed validation
        value: Any: the invalid value
    """


class UpstreamError(GatewayError):
    """The market-data provider could not supply a usable answer.

    Policy: surface to the caller as HTTP 500. Never retried.
    """


class UpstreamUnreachable(UpstreamError):
    """Network-level failure or a response body that is not JSON.

    Context keys:
        url: str: the URL that was being fetched
        reason: str: the underlying transport or decode error
    """


class UpstreamShapeError(UpstreamError):
    """Provider JSON is missing fields the normalizers require.

    Context keys:
        symbol: str | None: the symbol being normalized, when known
        missing: str: the path that was absent, e.g. "chart.result[0]"
    """


class NoUsableData(UpstreamError):
    """Provider JSON has the right shape but no usable values.

    Raised when the timestamp or close sequences are empty, or every close
    is null. The spot price cache is left untouched.

    Context keys:
        symbol: str
    """


class InvalidInput(GatewayError):
    """Missing or unsupported request parameters.

    Policy: reject with HTTP 400 before any upstream call is made.

    Context keys:
        field: str: the offending parameter(s)
        value: Any: the rejected value, when present
    """


class LedgerError(GatewayError):
    """The balance file could not be read or written.

    Policy: raise immediately. A half-written ledger is worse than a
    failed request.

    Context keys:
        operation: str: "load" or "save"
        path: str: the ledger file path
    """
