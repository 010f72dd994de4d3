"""
Ledger Store - Persistent credit balances, daily usage and referral origin.

NO DICTIONARIES - All operations return strongly typed domain models.

Balance and usage changes are expressed as single conditional/additive
UPDATE statements so concurrent handlers never lose an update.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import date

from sqlalchemy import func, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from structlog import get_logger

from photobot.db.models import MaintenanceRun, User, utc_now
from photobot.exceptions import (
    AccountNotRegisteredError,
    DailyQuotaExhaustedError,
    OutOfCreditsError,
    StorageError,
)
from photobot.models.domain import AccountData, DebitResult

logger = get_logger(__name__)

DAILY_RESET_TASK = "daily_usage_reset"


class LedgerStore:
    """
    Account ledger backed by the users table.

    Every public method opens its own session and commits before returning.
    Database failures surface as StorageError.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        initial_credits: int = 50,
    ) -> None:
        """Initialize ledger with a session factory."""
        self._session_factory = session_factory
        self.initial_credits = initial_credits

    # ========================================================================
    # Reads
    # ========================================================================

    async def get(self, user_id: int) -> AccountData | None:
        """Fetch an account snapshot, or None if the user is unknown."""
        async with self._session_scope("get") as session:
            user = await session.get(User, user_id)
            return _to_domain(user) if user is not None else None

    async def count_accounts(self) -> int:
        """Total number of accounts."""
        async with self._session_scope("count_accounts") as session:
            result = await session.execute(select(func.count()).select_from(User))
            return int(result.scalar_one())

    async def list_account_ids(self) -> list[int]:
        """All account ids, oldest id first."""
        async with self._session_scope("list_account_ids") as session:
            result = await session.execute(select(User.id).order_by(User.id))
            return list(result.scalars().all())

    # ========================================================================
    # Writes
    # ========================================================================

    async def create(self, user_id: int, referred_by: int | None = None) -> bool:
        """
        Create an account if absent.

        Returns True when a new row was inserted, False when the account
        already existed (the existing row is left untouched).
        """
        if referred_by is not None and referred_by == user_id:
            raise ValueError(f"Account {user_id} cannot refer itself")

        stmt = (
            pg_insert(User)
            .values(
                id=user_id,
                credits=self.initial_credits,
                daily_used=0,
                referred_by=referred_by,
                created_at=utc_now(),
            )
            .on_conflict_do_nothing(index_elements=[User.id])
            .returning(User.id)
        )

        async with self._session_scope("create") as session:
            result = await session.execute(stmt)
            inserted = result.scalar_one_or_none() is not None
            await session.commit()

        if inserted:
            logger.info("account_created", user_id=user_id, referred_by=referred_by)
        return inserted

    async def set_credits(self, user_id: int, value: int) -> None:
        """Overwrite the credit balance."""
        if value < 0:
            raise ValueError(f"Credits cannot be negative: {value}")
        async with self._session_scope("set_credits") as session:
            await session.execute(update(User).where(User.id == user_id).values(credits=value))
            await session.commit()

    async def set_daily_used(self, user_id: int, value: int) -> None:
        """Overwrite the daily usage counter."""
        if value < 0:
            raise ValueError(f"Daily usage cannot be negative: {value}")
        async with self._session_scope("set_daily_used") as session:
            await session.execute(
                update(User).where(User.id == user_id).values(daily_used=value)
            )
            await session.commit()

    async def add_credits(self, user_id: int, delta: int) -> int | None:
        """
        Add (or with a negative delta, remove) credits in one statement.

        The balance is clamped at zero. Returns the new balance, or None if
        the account does not exist.
        """
        stmt = (
            update(User)
            .where(User.id == user_id)
            .values(credits=func.greatest(User.credits + delta, 0))
            .returning(User.credits)
        )

        async with self._session_scope("add_credits") as session:
            result = await session.execute(stmt)
            new_balance = result.scalar_one_or_none()
            await session.commit()

        if new_balance is None:
            logger.warning("add_credits_no_account", user_id=user_id, delta=delta)
            return None

        logger.info("credits_adjusted", user_id=user_id, delta=delta, credits=new_balance)
        return int(new_balance)

    async def debit_for_enhancement(self, user_id: int, daily_limit: int) -> DebitResult:
        """
        Spend one credit and one unit of daily quota atomically.

        The UPDATE only matches when the account has credits left and is
        under the daily limit. When nothing matches, the account is re-read
        to report why.

        Raises:
            AccountNotRegisteredError: Account doesn't exist
            OutOfCreditsError: Balance is zero
            DailyQuotaExhaustedError: Daily limit reached
        """
        stmt = (
            update(User)
            .where(
                User.id == user_id,
                User.credits > 0,
                User.daily_used < daily_limit,
            )
            .values(credits=User.credits - 1, daily_used=User.daily_used + 1)
            .returning(User.credits, User.daily_used)
        )

        async with self._session_scope("debit_for_enhancement") as session:
            result = await session.execute(stmt)
            row = result.one_or_none()

            if row is not None:
                await session.commit()
                return DebitResult(user_id=user_id, credits=row[0], daily_used=row[1])

            await session.rollback()
            user = await session.get(User, user_id)

        if user is None:
            raise AccountNotRegisteredError(user_id)
        if user.credits <= 0:
            raise OutOfCreditsError(user_id, user.credits)
        raise DailyQuotaExhaustedError(user_id, user.daily_used, daily_limit)

    async def reset_all_daily_usage(self) -> int:
        """Set daily_used to 0 for every account. Returns rows touched."""
        async with self._session_scope("reset_all_daily_usage") as session:
            result = await session.execute(update(User).values(daily_used=0))
            await session.commit()
            return int(result.rowcount or 0)

    async def claim_daily_reset(self, run_on: date) -> bool:
        """
        Reset all daily usage once for the given date.

        The maintenance_runs row is advanced to run_on only if it holds an
        earlier date; the reset happens in the same transaction. Returns
        False when the reset for run_on (or a later date) already happened.
        """
        insert_stmt = pg_insert(MaintenanceRun).values(
            task=DAILY_RESET_TASK, last_run_on=run_on, updated_at=utc_now()
        )
        claim_stmt = insert_stmt.on_conflict_do_update(
            index_elements=[MaintenanceRun.task],
            set_={
                "last_run_on": insert_stmt.excluded.last_run_on,
                "updated_at": insert_stmt.excluded.updated_at,
            },
            where=MaintenanceRun.last_run_on < insert_stmt.excluded.last_run_on,
        ).returning(MaintenanceRun.task)

        async with self._session_scope("claim_daily_reset") as session:
            result = await session.execute(claim_stmt)
            if result.scalar_one_or_none() is None:
                await session.rollback()
                return False

            reset = await session.execute(update(User).values(daily_used=0))
            await session.commit()

        logger.info("daily_usage_reset", run_on=run_on.isoformat(), accounts=reset.rowcount)
        return True

    # ========================================================================
    # Private Helper Methods
    # ========================================================================

    @asynccontextmanager
    async def _session_scope(self, operation: str) -> AsyncIterator[AsyncSession]:
        """Open a session and translate driver failures into StorageError."""
        try:
            async with self._session_factory() as session:
                yield session
        except (SQLAlchemyError, OSError) as e:
            logger.error("ledger_storage_error", operation=operation, error=str(e))
            raise StorageError(operation, str(e)) from e


def _to_domain(user: User) -> AccountData:
    """Convert ORM user to domain model."""
    return AccountData(
        user_id=user.id,
        credits=user.credits,
        daily_used=user.daily_used,
        referred_by=user.referred_by,
        created_at=user.created_at,
    )
