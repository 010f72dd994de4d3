"""
Tests for LedgerStore.

Uses a mocked AsyncSession; statements are compiled with the PostgreSQL
dialect to check the atomic forms that are sent to the database.
"""

from datetime import date
from unittest.mock import AsyncMock

import pytest
from sqlalchemy.dialects import postgresql
from sqlalchemy.exc import OperationalError

from photobot.exceptions import (
    AccountNotRegisteredError,
    DailyQuotaExhaustedError,
    OutOfCreditsError,
    StorageError,
)
from photobot.models.domain import AccountData, DebitResult
from photobot.services.ledger import LedgerStore
from tests.factories import make_result, make_user


def compiled(session: AsyncMock, call_index: int = 0) -> str:
    """SQL text of the statement passed to session.execute."""
    stmt = session.execute.call_args_list[call_index].args[0]
    return str(stmt.compile(dialect=postgresql.dialect())).lower()


class TestGet:
    async def test_unknown_user_returns_none(self, ledger_store, db_session):
        db_session.get.return_value = None
        assert await ledger_store.get(42) is None

    async def test_returns_domain_model(self, ledger_store, db_session):
        db_session.get.return_value = make_user(user_id=42, credits=17, daily_used=3)

        account = await ledger_store.get(42)

        assert isinstance(account, AccountData)
        assert account.user_id == 42
        assert account.credits == 17
        assert account.daily_used == 3

    async def test_database_failure_becomes_storage_error(self, ledger_store, db_session):
        db_session.get.side_effect = OperationalError("SELECT", {}, Exception("connection lost"))

        with pytest.raises(StorageError) as exc_info:
            await ledger_store.get(42)

        assert exc_info.value.operation == "get"

    async def test_connection_refused_becomes_storage_error(self, ledger_store, db_session):
        db_session.get.side_effect = ConnectionRefusedError("refused")

        with pytest.raises(StorageError):
            await ledger_store.get(42)


class TestCreate:
    async def test_new_account_inserted(self, ledger_store, db_session):
        db_session.execute.return_value = make_result(scalar=42)

        assert await ledger_store.create(42) is True
        db_session.commit.assert_awaited_once()

    async def test_existing_account_untouched(self, ledger_store, db_session):
        db_session.execute.return_value = make_result(scalar=None)

        assert await ledger_store.create(42, referred_by=7) is False

    async def test_uses_insert_on_conflict_do_nothing(self, ledger_store, db_session):
        db_session.execute.return_value = make_result(scalar=42)

        await ledger_store.create(42, referred_by=7)

        sql = compiled(db_session)
        assert "insert into users" in sql
        assert "on conflict (id) do nothing" in sql
        assert "returning users.id" in sql

    async def test_initial_credits_used(self, session_factory, db_session):
        store = LedgerStore(session_factory, initial_credits=75)
        db_session.execute.return_value = make_result(scalar=42)

        await store.create(42)

        stmt = db_session.execute.call_args.args[0]
        params = stmt.compile(dialect=postgresql.dialect()).params
        assert params["credits"] == 75
        assert params["daily_used"] == 0

    async def test_self_referral_rejected(self, ledger_store, db_session):
        with pytest.raises(ValueError):
            await ledger_store.create(42, referred_by=42)
        db_session.execute.assert_not_awaited()


class TestSetters:
    async def test_set_credits(self, ledger_store, db_session):
        await ledger_store.set_credits(42, 10)
        assert "update users set credits" in compiled(db_session)
        db_session.commit.assert_awaited_once()

    async def test_set_daily_used(self, ledger_store, db_session):
        await ledger_store.set_daily_used(42, 3)
        assert "update users set daily_used" in compiled(db_session)

    @pytest.mark.parametrize("method", ["set_credits", "set_daily_used"])
    async def test_negative_values_rejected(self, ledger_store, db_session, method):
        with pytest.raises(ValueError):
            await getattr(ledger_store, method)(42, -1)
        db_session.execute.assert_not_awaited()


class TestAddCredits:
    async def test_returns_new_balance(self, ledger_store, db_session):
        db_session.execute.return_value = make_result(scalar=80)
        assert await ledger_store.add_credits(42, 30) == 80

    async def test_unknown_account_returns_none(self, ledger_store, db_session):
        db_session.execute.return_value = make_result(scalar=None)
        assert await ledger_store.add_credits(42, 30) is None

    async def test_single_clamped_update(self, ledger_store, db_session):
        db_session.execute.return_value = make_result(scalar=0)

        await ledger_store.add_credits(42, -50)

        sql = compiled(db_session)
        assert "greatest(users.credits +" in sql
        assert "returning users.credits" in sql
        assert db_session.execute.await_count == 1


class TestDebitForEnhancement:
    async def test_success(self, ledger_store, db_session):
        db_session.execute.return_value = make_result(row=(49, 1))

        debit = await ledger_store.debit_for_enhancement(42, daily_limit=50)

        assert debit == DebitResult(user_id=42, credits=49, daily_used=1)
        db_session.commit.assert_awaited_once()
        db_session.rollback.assert_not_awaited()

    async def test_conditional_update(self, ledger_store, db_session):
        db_session.execute.return_value = make_result(row=(49, 1))

        await ledger_store.debit_for_enhancement(42, daily_limit=50)

        sql = compiled(db_session)
        assert "users.credits > " in sql
        assert "users.daily_used < " in sql
        assert "returning users.credits, users.daily_used" in sql

    async def test_unregistered(self, ledger_store, db_session):
        db_session.execute.return_value = make_result(row=None)
        db_session.get.return_value = None

        with pytest.raises(AccountNotRegisteredError):
            await ledger_store.debit_for_enhancement(42, daily_limit=50)
        db_session.rollback.assert_awaited_once()
        db_session.commit.assert_not_awaited()

    async def test_out_of_credits(self, ledger_store, db_session):
        db_session.execute.return_value = make_result(row=None)
        db_session.get.return_value = make_user(user_id=42, credits=0, daily_used=0)

        with pytest.raises(OutOfCreditsError) as exc_info:
            await ledger_store.debit_for_enhancement(42, daily_limit=50)
        assert exc_info.value.credits == 0

    async def test_out_of_credits_takes_precedence(self, ledger_store, db_session):
        db_session.execute.return_value = make_result(row=None)
        db_session.get.return_value = make_user(user_id=42, credits=0, daily_used=50)

        with pytest.raises(OutOfCreditsError):
            await ledger_store.debit_for_enhancement(42, daily_limit=50)

    async def test_daily_quota_exhausted(self, ledger_store, db_session):
        db_session.execute.return_value = make_result(row=None)
        db_session.get.return_value = make_user(user_id=42, credits=10, daily_used=50)

        with pytest.raises(DailyQuotaExhaustedError) as exc_info:
            await ledger_store.debit_for_enhancement(42, daily_limit=50)
        assert exc_info.value.daily_limit == 50


class TestCounts:
    async def test_count_accounts(self, ledger_store, db_session):
        db_session.execute.return_value = make_result(scalar=3)
        assert await ledger_store.count_accounts() == 3

    async def test_list_account_ids(self, ledger_store, db_session):
        db_session.execute.return_value = make_result(scalars=[1, 2, 3])
        assert await ledger_store.list_account_ids() == [1, 2, 3]
        assert "order by users.id" in compiled(db_session)


class TestDailyReset:
    async def test_reset_all_daily_usage(self, ledger_store, db_session):
        db_session.execute.return_value = make_result(rowcount=4)

        assert await ledger_store.reset_all_daily_usage() == 4
        assert "update users set daily_used" in compiled(db_session)

    async def test_claim_performs_reset(self, ledger_store, db_session):
        db_session.execute.side_effect = [
            make_result(scalar="daily_usage_reset"),
            make_result(rowcount=2),
        ]

        assert await ledger_store.claim_daily_reset(date(2026, 10, 18)) is True

        claim_sql = compiled(db_session, 0)
        assert "insert into maintenance_runs" in claim_sql
        assert "on conflict (task) do update" in claim_sql
        assert "maintenance_runs.last_run_on < excluded.last_run_on" in claim_sql
        assert "update users set daily_used" in compiled(db_session, 1)
        db_session.commit.assert_awaited_once()

    async def test_claim_already_done(self, ledger_store, db_session):
        db_session.execute.return_value = make_result(scalar=None)

        assert await ledger_store.claim_daily_reset(date(2026, 10, 18)) is False

        assert db_session.execute.await_count == 1
        db_session.rollback.assert_awaited_once()
        db_session.commit.assert_not_awaited()
