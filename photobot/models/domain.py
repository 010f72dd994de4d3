"""
Domain Models - Internal business logic models using dataclasses.

NO DICTIONARIES - All data structures are strongly typed immutable dataclasses.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class PipelineStage(str, Enum):
    """Stages a photo submission moves through."""

    RECEIVED = "received"
    AUTHORIZED = "authorized"
    UPLOADED = "uploaded"
    RELAYED = "relayed"
    ENHANCED = "enhanced"
    DELIVERED = "delivered"
    FAILED = "failed"


class PendingActionKind(str, Enum):
    """Admin prompts waiting for the operator's next message."""

    BROADCAST = "broadcast"
    ADD_CREDIT = "addcredit"
    REMOVE_CREDIT = "remcredit"


@dataclass(frozen=True)
class AccountData:
    """Immutable account snapshot."""

    user_id: int
    credits: int
    daily_used: int
    referred_by: int | None
    created_at: datetime | None = None

    def __post_init__(self) -> None:
        """Validate ledger invariants."""
        if self.credits < 0:
            raise ValueError(f"Credits cannot be negative: {self.credits}")
        if self.daily_used < 0:
            raise ValueError(f"Daily usage cannot be negative: {self.daily_used}")
        if self.referred_by is not None and self.referred_by == self.user_id:
            raise ValueError(f"Account {self.user_id} cannot refer itself")


@dataclass(frozen=True)
class DebitResult:
    """Balance and usage after a successful enhancement debit."""

    user_id: int
    credits: int
    daily_used: int


@dataclass(frozen=True)
class ReferralOutcome:
    """Result of onboarding a user through /start."""

    account: AccountData
    created: bool
    referrer_id: int | None
    bonus_granted: bool
    referrer_credits: int | None = None


@dataclass(frozen=True)
class PhotoSubmission:
    """A photo received from a user."""

    user_id: int
    display_name: str
    file_id: str

    @property
    def user_hash(self) -> str:
        """Opaque per-user handle attached to uploads and relays."""
        return f"user_{self.user_id}"


@dataclass(frozen=True)
class EnhancementResult:
    """A delivered-ready enhancement."""

    user_id: int
    original_url: str
    enhanced_url: str
    link_token: str


@dataclass(frozen=True)
class PendingAction:
    """Single-slot admin prompt awaiting a follow-up message."""

    admin_id: int
    kind: PendingActionKind
    created_at: float


@dataclass(frozen=True)
class CreditAdjustment:
    """Parsed '<id> <amount>' admin command."""

    user_id: int
    amount: int

    def __post_init__(self) -> None:
        """Validate adjustment amount."""
        if self.amount <= 0:
            raise ValueError(f"Adjustment amount must be positive: {self.amount}")


@dataclass(frozen=True)
class BroadcastReport:
    """Delivery summary of a broadcast."""

    sent: int
    failed: int

    @property
    def total(self) -> int:
        """Number of recipients attempted."""
        return self.sent + self.failed
