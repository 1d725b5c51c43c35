"""Credit business rules: initialization, deduction and top-up."""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

from galbot.config import AppConfig
from galbot.exceptions import InvalidAmount
from galbot.services.ledger import CreditBalance, CreditLedger

logger = logging.getLogger(__name__)


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _is_positive_int(value: Any) -> bool:
    return _is_int(value) and value > 0


class CreditManager:
    """Applies credit rules on top of a CreditLedger.

    Every read-modify-write for a user runs under that user's lock, and the
    ledger's decrement is itself conditional, so concurrent deductions can
    never drive a balance below zero.
    """

    def __init__(self, config: AppConfig, ledger: CreditLedger) -> None:
        self.ledger = ledger
        self.default_start_credits = config.default_start_credits
        self.render_cost = config.render_cost
        self.ask_cost = config.ask_cost
        # Locks live only while someone holds or waits on them.
        self._user_locks: dict[str, asyncio.Lock] = {}
        self._lock_holders: dict[str, int] = {}
        logger.info(
            "CreditManager ready (start=%d, render=%d, ask=%d)",
            self.default_start_credits,
            self.render_cost,
            self.ask_cost,
        )

    @asynccontextmanager
    async def _user_lock(self, user_id: str) -> AsyncIterator[None]:
        lock = self._user_locks.get(user_id)
        if lock is None:
            lock = self._user_locks[user_id] = asyncio.Lock()
        self._lock_holders[user_id] = self._lock_holders.get(user_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_holders[user_id] -= 1
            if not self._lock_holders[user_id]:
                del self._lock_holders[user_id]
                del self._user_locks[user_id]

    async def _fetch_unlocked(self, user_id: str, reset_zero: bool = True) -> CreditBalance:
        balance = await self.ledger.get(user_id)
        # A spent-down balance of zero is treated like a new user, except
        # while deducting, where it stays zero.
        if balance is None or (reset_zero and balance.credits == 0):
            balance = await self.ledger.set(user_id, self.default_start_credits)
            logger.info(
                "Initialized credits for user %s to %d", user_id, self.default_start_credits
            )
        return balance

    async def fetch_balance(self, user_id: str) -> CreditBalance:
        """Return the user's balance, initializing it on first access.

        Raises:
            StoreUnavailable: If the ledger cannot be read or written.
        """
        user_id = str(user_id)
        logger.debug("Fetching credits for user %s", user_id)
        async with self._user_lock(user_id):
            return await self._fetch_unlocked(user_id)

    async def deduct(self, user_id: str, amount: int = 1) -> bool:
        """Deduct ``amount`` if the balance covers it.

        A missing record is created at the default first. A drained balance
        of zero is not refilled here, so a deduction that races one which
        spent the last credits fails instead of drawing on a fresh default.

        Returns:
            True when the credits were taken, False on insufficient funds.

        Raises:
            InvalidAmount: If ``amount`` is negative or not an integer.
            StoreUnavailable: If the ledger cannot be read or written.
        """
        if not _is_int(amount) or amount < 0:
            raise InvalidAmount(amount)

        user_id = str(user_id)
        async with self._user_lock(user_id):
            balance = await self._fetch_unlocked(user_id, reset_zero=False)
            if balance.credits < amount:
                logger.warning(
                    "Failed to deduct %d credits from user %s. Insufficient credits (%d).",
                    amount,
                    user_id,
                    balance.credits,
                )
                return False

            updated = await self.ledger.try_decrement(user_id, amount)
            if updated is None:
                logger.warning(
                    "Deduction of %d credits for user %s lost a race; balance unchanged",
                    amount,
                    user_id,
                )
                return False

            logger.info(
                "Deducted %d credits from user %s (balance %d)",
                amount,
                user_id,
                updated.credits,
            )
            return True

    async def deduct_render(self, user_id: str) -> bool:
        return await self.deduct(user_id, self.render_cost)

    async def deduct_ask(self, user_id: str) -> bool:
        return await self.deduct(user_id, self.ask_cost)

    async def add(self, user_id: str, amount: int) -> CreditBalance:
        """Add ``amount`` credits to the user's balance.

        Raises:
            InvalidAmount: If ``amount`` is not a positive integer.
            StoreUnavailable: If the ledger cannot be read or written.
        """
        user_id = str(user_id)
        if not _is_positive_int(amount):
            logger.error("Invalid credit amount: %r for user %s", amount, user_id)
            raise InvalidAmount(amount)

        async with self._user_lock(user_id):
            await self._fetch_unlocked(user_id)
            updated = await self.ledger.increment(user_id, amount)

        logger.info("Added %d credits to user %s (balance %d)", amount, user_id, updated.credits)
        return updated
