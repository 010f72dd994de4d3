"""
Database Models - SQLAlchemy ORM models with strict typing.

NO DICTIONARIES - All columns use Mapped[] type annotations.
"""

from datetime import UTC, date, datetime

from sqlalchemy import BigInteger, CheckConstraint, Date, DateTime, Integer, String, text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


def utc_now() -> datetime:
    """Get current UTC timestamp."""
    return datetime.now(UTC)


class User(Base):
    """
    ORM model for users table.

    One row per chat participant: credit balance, daily usage counter and
    referral origin.
    """

    __tablename__ = "users"

    # Telegram user id
    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)

    # Balance and usage
    credits: Mapped[int] = mapped_column(
        Integer, nullable=False, default=50, server_default=text("50")
    )
    daily_used: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default=text("0")
    )

    # Referral origin (set once at creation)
    referred_by: Mapped[int | None] = mapped_column(BigInteger, nullable=True)

    # Audit timestamp
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now, server_default=text("now()")
    )

    __table_args__ = (
        CheckConstraint("credits >= 0", name="ck_users_credits_non_negative"),
        CheckConstraint("daily_used >= 0", name="ck_users_daily_used_non_negative"),
        CheckConstraint(
            "referred_by IS NULL OR referred_by <> id", name="ck_users_no_self_referral"
        ),
    )

    def __repr__(self) -> str:
        """String representation for debugging."""
        return (
            f"<User(id={self.id}, credits={self.credits}, "
            f"daily_used={self.daily_used}, referred_by={self.referred_by})>"
        )


class MaintenanceRun(Base):
    """
    ORM model for maintenance_runs table.

    Remembers the last date a recurring maintenance task ran so it fires
    once per day across restarts.
    """

    __tablename__ = "maintenance_runs"

    task: Mapped[str] = mapped_column(String(64), primary_key=True)
    last_run_on: Mapped[date] = mapped_column(Date, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now
    )

    def __repr__(self) -> str:
        """String representation for debugging."""
        return f"<MaintenanceRun(task={self.task}, last_run_on={self.last_run_on})>"
