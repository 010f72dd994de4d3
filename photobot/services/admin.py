"""
Admin Console - Operator-only stats, broadcast and credit adjustment.

Prompts that wait for the operator's next message are tracked per admin in
a PendingActionRegistry (one active prompt per admin, with expiry).
"""

import time
from collections.abc import Awaitable, Callable
from typing import Any

from structlog import get_logger
from telegram.error import TelegramError

from photobot.exceptions import (
    AccountNotFoundError,
    InvalidCreditCommandError,
    PermissionDeniedError,
)
from photobot.models.domain import (
    BroadcastReport,
    CreditAdjustment,
    PendingAction,
    PendingActionKind,
)
from photobot.observability.metrics import metrics
from photobot.services.ledger import LedgerStore

logger = get_logger(__name__)

SendText = Callable[[int, str], Awaitable[Any]]


def parse_credit_command(text: str | None) -> CreditAdjustment:
    """
    Parse '<user id> <amount>'.

    Raises:
        InvalidCreditCommandError: Not two integers, or amount not positive
    """
    parts = (text or "").split()
    if len(parts) != 2:
        raise InvalidCreditCommandError(text or "")
    try:
        return CreditAdjustment(user_id=int(parts[0]), amount=int(parts[1]))
    except ValueError as e:
        raise InvalidCreditCommandError(text or "") from e


class PendingActionRegistry:
    """
    Single-slot pending prompt per admin.

    Starting a new prompt replaces the previous one; a prompt is consumed by
    the first follow-up and ignored once older than ttl_seconds.
    """

    def __init__(self, ttl_seconds: int, clock: Callable[[], float] = time.time) -> None:
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._pending: dict[int, PendingAction] = {}

    def start(self, admin_id: int, kind: PendingActionKind) -> PendingAction:
        """Register kind as the admin's active prompt."""
        action = PendingAction(admin_id=admin_id, kind=kind, created_at=self._clock())
        replaced = self._pending.get(admin_id)
        self._pending[admin_id] = action
        if replaced is not None:
            logger.info(
                "pending_action_replaced",
                admin_id=admin_id,
                old_kind=replaced.kind.value,
                new_kind=kind.value,
            )
        return action

    def pop(self, admin_id: int) -> PendingAction | None:
        """Consume the admin's active prompt, if any and not expired."""
        action = self._pending.pop(admin_id, None)
        if action is None:
            return None
        if self._clock() - action.created_at > self.ttl_seconds:
            logger.info("pending_action_expired", admin_id=admin_id, kind=action.kind.value)
            return None
        return action

    def cancel(self, admin_id: int) -> bool:
        """Drop the admin's prompt. Returns True if one was pending."""
        return self._pending.pop(admin_id, None) is not None


class AdminService:
    """Operator-only actions. Every entry point checks the requester first."""

    def __init__(
        self,
        ledger: LedgerStore,
        operator_id: int,
        pending: PendingActionRegistry,
    ) -> None:
        self.ledger = ledger
        self.operator_id = operator_id
        self.pending = pending

    def is_operator(self, user_id: int) -> bool:
        """True if user_id is the configured operator."""
        return user_id == self.operator_id

    def require_operator(self, user_id: int, action: str) -> None:
        """
        Raises:
            PermissionDeniedError: user_id is not the operator
        """
        if not self.is_operator(user_id):
            logger.warning("admin_permission_denied", user_id=user_id, action=action)
            metrics.record_admin_action(action, "denied")
            raise PermissionDeniedError(user_id, action)

    async def stats(self, requester_id: int) -> int:
        """Total number of accounts."""
        self.require_operator(requester_id, "stats")
        count = await self.ledger.count_accounts()
        metrics.record_admin_action("stats", "ok")
        return count

    def begin(self, requester_id: int, kind: PendingActionKind) -> PendingAction:
        """Open a prompt that the operator's next message will answer."""
        self.require_operator(requester_id, kind.value)
        return self.pending.start(requester_id, kind)

    def take_pending(self, requester_id: int) -> PendingAction | None:
        """Consume the requester's prompt. Non-operators never have one."""
        if not self.is_operator(requester_id):
            return None
        return self.pending.pop(requester_id)

    async def broadcast(self, requester_id: int, text: str, send: SendText) -> BroadcastReport:
        """
        Send text to every account, one at a time.

        Delivery failures (blocked bot, deleted account) are skipped.
        """
        self.require_operator(requester_id, "broadcast")
        sent = 0
        failed = 0
        for user_id in await self.ledger.list_account_ids():
            try:
                await send(user_id, text)
            except TelegramError as e:
                failed += 1
                metrics.record_broadcast_delivery(False)
                logger.debug("broadcast_delivery_failed", user_id=user_id, error=str(e))
            else:
                sent += 1
                metrics.record_broadcast_delivery(True)

        report = BroadcastReport(sent=sent, failed=failed)
        metrics.record_admin_action("broadcast", "ok")
        logger.info("broadcast_completed", sent=report.sent, failed=report.failed)
        return report

    async def adjust_credits(
        self, requester_id: int, kind: PendingActionKind, text: str | None
    ) -> tuple[CreditAdjustment, int]:
        """
        Apply an ADD_CREDIT / REMOVE_CREDIT reply.

        Removal is clamped so the balance never drops below zero.
        Returns the parsed command and the new balance.

        Raises:
            PermissionDeniedError: requester is not the operator
            InvalidCreditCommandError: reply is not '<id> <amount>'
            AccountNotFoundError: target account doesn't exist
        """
        self.require_operator(requester_id, kind.value)
        if kind not in (PendingActionKind.ADD_CREDIT, PendingActionKind.REMOVE_CREDIT):
            raise ValueError(f"Not a credit adjustment: {kind}")

        adjustment = parse_credit_command(text)
        delta = adjustment.amount if kind == PendingActionKind.ADD_CREDIT else -adjustment.amount

        new_balance = await self.ledger.add_credits(adjustment.user_id, delta)
        if new_balance is None:
            metrics.record_admin_action(kind.value, "not_found")
            raise AccountNotFoundError(adjustment.user_id)

        metrics.record_admin_action(kind.value, "ok")
        logger.info(
            "admin_credit_adjusted",
            admin_id=requester_id,
            user_id=adjustment.user_id,
            delta=delta,
            credits=new_balance,
        )
        return adjustment, new_balance
