"""Wallet balances derived from the transaction ledger."""
from __future__ import annotations

import logging
from decimal import Decimal
from typing import Optional, Protocol

from .errors import InvalidInputError

logger = logging.getLogger(__name__)


class Ledger(Protocol):
    def available_sum(self, wallet_id: int) -> Optional[Decimal]:
        ...

    def pending_sum(self, wallet_id: int) -> Optional[Decimal]:
        ...


class BalanceCalculator:
    """The ledger is the only source of truth; nothing here is cached."""

    def __init__(self, ledger: Ledger) -> None:
        self.ledger = ledger

    def available(self, wallet_id: int) -> Decimal:
        balance = self.ledger.available_sum(wallet_id)
        logger.debug("available balance for wallet %s: %s", wallet_id, balance)
        return Decimal(balance) if balance is not None else Decimal("0")

    def pending(self, wallet_id: int) -> Decimal:
        balance = self.ledger.pending_sum(wallet_id)
        logger.debug("pending balance for wallet %s: %s", wallet_id, balance)
        return Decimal(balance) if balance is not None else Decimal("0")

    def total(self, wallet_id: int) -> Decimal:
        return self.available(wallet_id) + self.pending(wallet_id)

    def has_sufficient_funds(self, wallet_id: int, amount: Decimal) -> bool:
        if amount <= 0:
            raise InvalidInputError("Amount must be positive")
        return self.available(wallet_id) >= amount
