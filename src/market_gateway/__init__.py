"""market-gateway: caching HTTP gateway for Yahoo Finance chart data."""

__version__ = "0.1.0"
