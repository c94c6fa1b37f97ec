"""JSON-file-backed per-user balance ledger.

The whole file is a single JSON object mapping user id to a number. Every
read loads the file and every mutation rewrites it wholesale. File I/O runs
in a worker thread; mutations are serialized with an asyncio lock so two
concurrent updates cannot drop each other's writes.
"""

from __future__ import annotations

import asyncio
import json
import logging
import math
import os
from pathlib import Path

from market_gateway.core.exceptions import InvalidInput, LedgerError

logger = logging.getLogger(__name__)


def _require_finite(value: float, field: str) -> None:
    # NaN and infinities have no JSON encoding
    if not math.isfinite(value):
        raise InvalidInput("Invalid amount", context={"field": field, "value": value})


class JsonBalanceLedger:
    """Balance ledger persisted to one JSON file.

    Parameters
    ----------
    path : str | Path
        Ledger file. Created (with parent directories) on first write.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._lock = asyncio.Lock()

    @property
    def path(self) -> Path:
        return self._path

    async def get_balance(self, user_id: str) -> float:
        """Return the balance for ``user_id``; unknown users have 0."""
        balances = await asyncio.to_thread(self._load)
        return balances.get(user_id, 0)

    async def set_balance(self, user_id: str, amount: float) -> float:
        """Overwrite the balance for ``user_id`` and return it."""
        _require_finite(amount, "amount")
        async with self._lock:
            balances = await asyncio.to_thread(self._load)
            balances[user_id] = amount
            await asyncio.to_thread(self._save, balances)
        return amount

    async def adjust_balance(self, user_id: str, delta: float) -> float:
        """Add ``delta`` to the balance for ``user_id`` and return the new value."""
        _require_finite(delta, "delta")
        async with self._lock:
            balances = await asyncio.to_thread(self._load)
            new_balance = balances.get(user_id, 0) + delta
            _require_finite(new_balance, "delta")
            balances[user_id] = new_balance
            await asyncio.to_thread(self._save, balances)
            return balances[user_id]

    async def register(self, user_id: str) -> float:
        """Register ``user_id`` with a zero balance, resetting any existing one."""
        return await self.set_balance(user_id, 0)

    async def all_balances(self) -> dict[str, float]:
        return await asyncio.to_thread(self._load)

    def _load(self) -> dict[str, float]:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            raise LedgerError(
                f"Failed to load balances: {e}",
                context={"operation": "load", "path": str(self._path)},
            ) from e
        if not isinstance(data, dict):
            raise LedgerError(
                f"Balance file must hold a JSON object, got {type(data).__name__}",
                context={"operation": "load", "path": str(self._path)},
            )
        return data

    def _save(self, balances: dict[str, float]) -> None:
        tmp = self._path.with_suffix(self._path.suffix + ".tmp")
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp.write_text(json.dumps(balances, indent=2), encoding="utf-8")
            os.replace(tmp, self._path)
        except OSError as e:
            raise LedgerError(
                f"Failed to save balances: {e}",
                context={"operation": "save", "path": str(self._path)},
            ) from e
        logger.info("Balances saved to %s", self._path)
