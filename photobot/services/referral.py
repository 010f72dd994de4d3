"""
Referral Service - First-contact onboarding and referral bonuses.
"""

import re

from structlog import get_logger

from photobot.exceptions import StorageError
from photobot.models.domain import ReferralOutcome
from photobot.services.ledger import LedgerStore

logger = get_logger(__name__)

# users.id is a PostgreSQL BIGINT
MAX_USER_ID = 2**63 - 1


def parse_referral_code(payload: str | None, prefix: str = "ref_") -> int | None:
    """
    Extract the referrer id from a /start payload.

    Only '<prefix><digits>' is accepted; anything else means no referral.
    """
    if not payload:
        return None
    match = re.fullmatch(re.escape(prefix) + r"(\d{1,19})", payload.strip())
    if match is None:
        return None
    referrer_id = int(match.group(1))
    return referrer_id if 0 < referrer_id <= MAX_USER_ID else None


def build_referral_link(bot_username: str, user_id: int, prefix: str = "ref_") -> str:
    """Personal deep link that starts the bot with the user's referral code."""
    return f"https://t.me/{bot_username}?start={prefix}{user_id}"


class ReferralService:
    """
    Onboards users on /start and pays referral bonuses.

    A bonus is paid only when this call actually created the account, so
    repeated /start commands never pay twice.
    """

    def __init__(self, ledger: LedgerStore, bonus: int = 30, prefix: str = "ref_") -> None:
        self.ledger = ledger
        self.bonus = bonus
        self.prefix = prefix

    async def register(self, user_id: int, payload: str | None) -> ReferralOutcome:
        """Create the account if needed and credit the referrer once."""
        referrer_id = parse_referral_code(payload, self.prefix)

        if referrer_id == user_id:
            logger.info("self_referral_rejected", user_id=user_id)
            referrer_id = None

        created = await self.ledger.create(user_id, referred_by=referrer_id)

        bonus_granted = False
        referrer_credits: int | None = None
        if created and referrer_id is not None:
            referrer_credits = await self.ledger.add_credits(referrer_id, self.bonus)
            bonus_granted = referrer_credits is not None
            if not bonus_granted:
                logger.info("referrer_not_found", user_id=user_id, referrer_id=referrer_id)
            else:
                logger.info(
                    "referral_bonus_granted",
                    user_id=user_id,
                    referrer_id=referrer_id,
                    bonus=self.bonus,
                    referrer_credits=referrer_credits,
                )

        account = await self.ledger.get(user_id)
        if account is None:
            raise StorageError("register", f"account {user_id} missing after create")

        return ReferralOutcome(
            account=account,
            created=created,
            referrer_id=referrer_id if created else account.referred_by,
            bonus_granted=bonus_granted,
            referrer_credits=referrer_credits,
        )
