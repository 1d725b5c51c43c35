"""Tests for the SQL credit ledger."""

import asyncio

import pytest

from galbot.exceptions import StoreUnavailable
from galbot.services.ledger import CreditBalance, SQLCreditLedger


class TestLedgerLifecycle:
    """Tests for opening and closing the ledger."""

    @pytest.mark.asyncio
    async def test_operations_before_open_raise(self):
        ledger = SQLCreditLedger.in_memory()
        with pytest.raises(StoreUnavailable):
            await ledger.get("1")

    @pytest.mark.asyncio
    async def test_operations_after_close_raise(self):
        ledger = SQLCreditLedger.in_memory()
        await ledger.open()
        await ledger.close()
        with pytest.raises(StoreUnavailable):
            await ledger.set("1", 10)

    @pytest.mark.asyncio
    async def test_file_ledger_persists_across_reopen(self, tmp_path):
        path = tmp_path / "nested" / "credits.db"

        async with SQLCreditLedger.from_path(str(path)) as ledger:
            await ledger.set("1", 42)

        assert path.exists()
        async with SQLCreditLedger.from_path(str(path)) as ledger:
            balance = await ledger.get("1")
        assert balance.credits == 42


class TestLedgerOperations:
    """Tests for get/set/try_decrement/increment."""

    @pytest.mark.asyncio
    async def test_get_missing_returns_none(self, ledger):
        assert await ledger.get("nobody") is None

    @pytest.mark.asyncio
    async def test_set_creates_and_overwrites(self, ledger):
        created = await ledger.set("1", 250)
        assert isinstance(created, CreditBalance)
        assert created.credits == 250

        await ledger.set("1", 5)
        assert (await ledger.get("1")).credits == 5

    @pytest.mark.asyncio
    async def test_user_ids_are_stored_as_strings(self, ledger):
        await ledger.set(12345, 7)
        balance = await ledger.get("12345")
        assert balance.user_id == "12345"
        assert balance.credits == 7

    @pytest.mark.asyncio
    async def test_try_decrement_success(self, ledger):
        await ledger.set("1", 20)
        updated = await ledger.try_decrement("1", 10)
        assert updated.credits == 10

    @pytest.mark.asyncio
    async def test_try_decrement_to_exactly_zero(self, ledger):
        await ledger.set("1", 10)
        updated = await ledger.try_decrement("1", 10)
        assert updated.credits == 0

    @pytest.mark.asyncio
    async def test_try_decrement_insufficient_leaves_balance(self, ledger):
        await ledger.set("1", 5)
        assert await ledger.try_decrement("1", 10) is None
        assert (await ledger.get("1")).credits == 5

    @pytest.mark.asyncio
    async def test_try_decrement_missing_record(self, ledger):
        assert await ledger.try_decrement("nobody", 1) is None

    @pytest.mark.asyncio
    async def test_increment(self, ledger):
        await ledger.set("1", 5)
        updated = await ledger.increment("1", 20)
        assert updated.credits == 25

    @pytest.mark.asyncio
    async def test_increment_missing_record_raises(self, ledger):
        with pytest.raises(StoreUnavailable):
            await ledger.increment("nobody", 5)

    @pytest.mark.asyncio
    async def test_concurrent_decrements_never_go_negative(self, ledger):
        """Racing conditional decrements settle on exactly the affordable count."""
        await ledger.set("1", 25)

        results = await asyncio.gather(*(ledger.try_decrement("1", 10) for _ in range(5)))

        successes = [r for r in results if r is not None]
        assert len(successes) == 2
        assert (await ledger.get("1")).credits == 5
