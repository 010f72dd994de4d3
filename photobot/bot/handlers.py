"""
Telegram update handlers.

Each handler is the error boundary for its update: failures are logged and
turned into a reply, never propagated to the polling loop.
"""

import time

from telegram import Update
from telegram.error import TelegramError
from telegram.ext import ApplicationHandlerStop, ContextTypes

from photobot.bot import keyboards, messages
from photobot.exceptions import (
    AccountNotFoundError,
    AccountNotRegisteredError,
    AuthorizationError,
    DailyQuotaExhaustedError,
    InvalidCreditCommandError,
    OutOfCreditsError,
    PermissionDeniedError,
    StorageError,
    UpstreamError,
)
from photobot.models.domain import PendingActionKind, PhotoSubmission, PipelineStage
from photobot.observability import get_logger, log_context, metrics
from photobot.services.admin import AdminService
from photobot.services.enhancer import EnhancementClient
from photobot.services.file_host import FileHostClient
from photobot.services.ledger import LedgerStore
from photobot.services.pipeline import EnhancementPipeline
from photobot.services.referral import ReferralService, build_referral_link
from photobot.services.result_links import ResultLinkStore

logger = get_logger(__name__)

RESULT_FILENAME = "Enhanced_Photo.jpg"


class BotHandlers:
    """Binds the services to python-telegram-bot callbacks."""

    def __init__(
        self,
        ledger: LedgerStore,
        referral: ReferralService,
        pipeline: EnhancementPipeline,
        admin: AdminService,
        file_host: FileHostClient,
        enhancer: EnhancementClient,
        result_links: ResultLinkStore,
    ) -> None:
        self.ledger = ledger
        self.referral = referral
        self.pipeline = pipeline
        self.admin = admin
        self.file_host = file_host
        self.enhancer = enhancer
        self.result_links = result_links

    # ========================================================================
    # Onboarding
    # ========================================================================

    async def start(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        """/start [ref_<id>]: register the user and pay the referrer."""
        user = update.effective_user
        message = update.effective_message
        payload = context.args[0] if context.args else None
        metrics.record_update("start")

        with log_context(update_id=update.update_id, user_id=user.id):
            try:
                outcome = await self.referral.register(user.id, payload)
            except StorageError:
                await message.reply_text(messages.GENERIC_ERROR)
                return

            if not outcome.created:
                metrics.record_referral("existing")
            elif outcome.bonus_granted:
                metrics.record_referral("referred")
            else:
                metrics.record_referral("organic")

            if outcome.bonus_granted and outcome.referrer_id is not None:
                await self._notify_referrer(context, outcome.referrer_id)

            referral_link = build_referral_link(
                context.bot.username, user.id, self.referral.prefix
            )
            await message.reply_text(
                messages.WELCOME.format(
                    first_name=user.first_name,
                    credits=outcome.account.credits,
                    daily_limit=self.pipeline.daily_limit,
                    referral_link=referral_link,
                ),
                reply_markup=keyboards.my_credits_keyboard(),
            )

    async def my_credits(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        """'My credits' button."""
        query = update.callback_query
        user = update.effective_user
        metrics.record_update("my_credits")
        await query.answer()

        try:
            account = await self.ledger.get(user.id)
        except StorageError:
            await update.effective_message.reply_text(messages.GENERIC_ERROR)
            return

        if account is None:
            await update.effective_message.reply_text(messages.NOT_REGISTERED)
            return
        await update.effective_message.reply_text(
            messages.MY_CREDITS.format(credits=account.credits)
        )

    async def _notify_referrer(self, context: ContextTypes.DEFAULT_TYPE, referrer_id: int) -> None:
        try:
            await context.bot.send_message(
                chat_id=referrer_id,
                text=messages.REFERRAL_BONUS.format(bonus=self.referral.bonus),
            )
        except TelegramError as e:
            logger.warning("referrer_notification_failed", referrer_id=referrer_id, error=str(e))

    # ========================================================================
    # Enhancement
    # ========================================================================

    async def photo(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        """Photo message: debit, enhance, reply with the result and actions."""
        user = update.effective_user
        message = update.effective_message
        metrics.record_update("photo")

        submission = PhotoSubmission(
            user_id=user.id,
            display_name=user.username or user.first_name,
            file_id=message.photo[-1].file_id,
        )

        with log_context(update_id=update.update_id, user_id=user.id):
            try:
                await self.pipeline.authorize(user.id)
            except AuthorizationError as e:
                metrics.record_enhancement("refused")
                logger.info("enhancement_refused", reason=e.reason)
                await message.reply_text(self._refusal_text(e))
                return
            except StorageError:
                metrics.record_enhancement("storage_error")
                await message.reply_text(messages.GENERIC_ERROR)
                return

            started = time.time()
            try:
                result = await self.pipeline.process(submission, context.bot)
                await message.reply_photo(
                    photo=result.enhanced_url,
                    caption=messages.ENHANCED_CAPTION,
                    reply_markup=keyboards.result_keyboard(result.link_token),
                )
            except UpstreamError as e:
                metrics.record_enhancement("failed")
                metrics.record_upstream_error(e.stage.value, type(e).__name__)
                logger.error(
                    "enhancement_failed",
                    stage=e.stage.value,
                    error_type=type(e).__name__,
                    error=e.message,
                )
                await message.reply_text(messages.GENERIC_ERROR)
                return
            except Exception as e:
                metrics.record_enhancement("failed")
                metrics.record_upstream_error(PipelineStage.FAILED.value, type(e).__name__)
                logger.error("enhancement_failed", error=str(e), exc_info=True)
                await message.reply_text(messages.GENERIC_ERROR)
                return

            metrics.record_stage(PipelineStage.DELIVERED.value, time.time() - started)
            metrics.record_enhancement("delivered")
            logger.info("enhancement_delivered", enhanced_url=result.enhanced_url)

    def _refusal_text(self, error: AuthorizationError) -> str:
        if isinstance(error, AccountNotRegisteredError):
            return messages.NOT_REGISTERED
        if isinstance(error, OutOfCreditsError):
            return messages.OUT_OF_CREDITS
        if isinstance(error, DailyQuotaExhaustedError):
            return messages.DAILY_QUOTA_EXHAUSTED.format(daily_limit=error.daily_limit)
        return messages.GENERIC_ERROR

    async def download(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        """'Download' button: send the enhanced image as a named document."""
        query = update.callback_query
        metrics.record_update("download")
        url = self.result_links.resolve(query.data.split("_", 1)[1])
        if url is None:
            await query.answer(messages.RESULT_EXPIRED, show_alert=True)
            return

        await query.answer(messages.DOWNLOAD_PREPARING)
        try:
            content = await self.enhancer.download(url)
        except UpstreamError:
            await update.effective_message.reply_text(messages.GENERIC_ERROR)
            return
        await update.effective_message.reply_document(document=content, filename=RESULT_FILENAME)

    async def get_link(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        """'Get Link' button: re-host the enhanced image and send a direct URL."""
        query = update.callback_query
        metrics.record_update("get_link")
        url = self.result_links.resolve(query.data.split("_", 1)[1])
        if url is None:
            await query.answer(messages.RESULT_EXPIRED, show_alert=True)
            return

        await query.answer(messages.LINK_PREPARING)
        try:
            hosted_url = await self.file_host.upload_url(url)
        except UpstreamError:
            await update.effective_message.reply_text(messages.GENERIC_ERROR)
            return
        await update.effective_message.reply_text(
            messages.DIRECT_LINK.format(url=hosted_url),
            reply_markup=keyboards.open_link_keyboard(hosted_url),
        )

    # ========================================================================
    # Admin console
    # ========================================================================

    async def admin_command(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        """/admin: show the admin panel to the operator only."""
        user = update.effective_user
        metrics.record_update("admin")
        if not self.admin.is_operator(user.id):
            metrics.record_admin_action("panel", "denied")
            await update.effective_message.reply_text(messages.PERMISSION_DENIED)
            return
        await update.effective_message.reply_text(
            messages.ADMIN_PANEL, reply_markup=keyboards.admin_keyboard()
        )

    async def admin_action(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        """Admin panel buttons. Non-operators are ignored."""
        query = update.callback_query
        user = update.effective_user
        metrics.record_update("admin_action")
        await query.answer()

        try:
            if query.data == keyboards.STATS:
                count = await self.admin.stats(user.id)
                await update.effective_message.reply_text(messages.STATS.format(count=count))
                return

            kind = PendingActionKind(query.data)
            self.admin.begin(user.id, kind)
        except PermissionDeniedError:
            return
        except StorageError:
            await update.effective_message.reply_text(messages.GENERIC_ERROR)
            return

        if kind == PendingActionKind.BROADCAST:
            prompt = messages.BROADCAST_PROMPT
        else:
            example = 50 if kind == PendingActionKind.ADD_CREDIT else 20
            prompt = messages.CREDIT_PROMPT.format(example=example)
        await update.effective_message.reply_text(prompt)

    async def admin_reply(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        """
        Operator follow-up to a pending prompt.

        Runs before the regular handlers; when it consumes a prompt it stops
        further handling of the message.
        """
        user = update.effective_user
        if user is None:
            return
        action = self.admin.take_pending(user.id)
        if action is None:
            return

        message = update.effective_message
        text = message.text or message.caption

        with log_context(update_id=update.update_id, admin_id=user.id, action=action.kind.value):
            try:
                if action.kind == PendingActionKind.BROADCAST:
                    await self._run_broadcast(user.id, text, update, context)
                else:
                    adjustment, balance = await self.admin.adjust_credits(
                        user.id, action.kind, text
                    )
                    template = (
                        messages.CREDITS_ADDED
                        if action.kind == PendingActionKind.ADD_CREDIT
                        else messages.CREDITS_REMOVED
                    )
                    await message.reply_text(
                        template.format(
                            amount=adjustment.amount,
                            user_id=adjustment.user_id,
                            credits=balance,
                        )
                    )
            except InvalidCreditCommandError:
                await message.reply_text(messages.CREDIT_USAGE)
            except AccountNotFoundError:
                await message.reply_text(messages.USER_NOT_FOUND)
            except StorageError:
                await message.reply_text(messages.GENERIC_ERROR)

        raise ApplicationHandlerStop

    async def _run_broadcast(
        self,
        admin_id: int,
        text: str | None,
        update: Update,
        context: ContextTypes.DEFAULT_TYPE,
    ) -> None:
        if not text:
            await update.effective_message.reply_text(messages.BROADCAST_EMPTY)
            return

        async def send(chat_id: int, body: str) -> None:
            await context.bot.send_message(chat_id=chat_id, text=body)

        report = await self.admin.broadcast(admin_id, text, send)
        await update.effective_message.reply_text(
            messages.BROADCAST_DONE.format(sent=report.sent, failed=report.failed)
        )

    # ========================================================================
    # Errors
    # ========================================================================

    async def error(self, update: object, context: ContextTypes.DEFAULT_TYPE) -> None:
        """Last-resort handler for exceptions that escaped a callback."""
        error = context.error
        metrics.record_error(type(error).__name__, "update")
        logger.error(
            "unhandled_update_error",
            error=str(error),
            update_id=update.update_id if isinstance(update, Update) else None,
            exc_info=error,
        )
