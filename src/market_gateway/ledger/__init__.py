"""Per-user balance ledger persisted to a flat JSON file."""

from market_gateway.ledger.store import JsonBalanceLedger

__all__ = ["JsonBalanceLedger"]
