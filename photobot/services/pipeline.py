"""
Enhancement Pipeline - From photo receipt to an enhanced, deliverable image.

Stages: RECEIVED -> AUTHORIZED -> UPLOADED -> RELAYED -> ENHANCED -> DELIVERED.
Delivery itself (the reply with action buttons) is done by the bot handler.

The debit taken at AUTHORIZED is final: later failures are not refunded.
"""

import time

from structlog import get_logger
from telegram import Bot
from telegram.error import TelegramError

from photobot.exceptions import FileHostError, RelayError
from photobot.models.domain import (
    DebitResult,
    EnhancementResult,
    PhotoSubmission,
    PipelineStage,
)
from photobot.observability.metrics import metrics
from photobot.services.enhancer import EnhancementClient
from photobot.services.file_host import FileHostClient
from photobot.services.ledger import LedgerStore
from photobot.services.result_links import ResultLinkStore

logger = get_logger(__name__)


def relay_caption(submission: PhotoSubmission) -> str:
    """Caption attached to the original photo in the archive channel."""
    return (
        f"🆔 User: {submission.display_name} ({submission.user_id})\n"
        f"📦 Userhash: {submission.user_hash}"
    )


class EnhancementPipeline:
    """
    Runs one photo submission through authorization and the remote services.

    Usage:
        debit = await pipeline.authorize(user_id)
        result = await pipeline.process(submission, bot)
    """

    def __init__(
        self,
        ledger: LedgerStore,
        file_host: FileHostClient,
        enhancer: EnhancementClient,
        result_links: ResultLinkStore,
        channel_id: str | int,
        daily_limit: int = 50,
    ) -> None:
        self.ledger = ledger
        self.file_host = file_host
        self.enhancer = enhancer
        self.result_links = result_links
        self.channel_id = channel_id
        self.daily_limit = daily_limit

    async def authorize(self, user_id: int) -> DebitResult:
        """
        RECEIVED -> AUTHORIZED: spend one credit and one daily use.

        Raises:
            AccountNotRegisteredError: Account doesn't exist
            OutOfCreditsError: Balance is zero
            DailyQuotaExhaustedError: Daily limit reached
        """
        debit = await self.ledger.debit_for_enhancement(user_id, self.daily_limit)
        logger.info(
            "enhancement_authorized",
            user_id=user_id,
            credits=debit.credits,
            daily_used=debit.daily_used,
        )
        return debit

    async def process(self, submission: PhotoSubmission, bot: Bot) -> EnhancementResult:
        """
        AUTHORIZED -> ENHANCED for an already authorized submission.

        Raises:
            FileHostError: Photo could not be resolved or re-hosted
            RelayError: Archive channel rejected the photo
            EnhancementAPIError: Enhancement API failed or returned no result
        """
        started = time.time()

        source_url = await self._resolve_photo_url(submission, bot)
        original_url = await self.file_host.upload_url(source_url, user_hash=submission.user_hash)
        self._stage_reached(submission, PipelineStage.UPLOADED, started)

        await self._relay(submission, bot)
        self._stage_reached(submission, PipelineStage.RELAYED, started)

        enhanced_url = await self.enhancer.enhance(original_url)
        self._stage_reached(submission, PipelineStage.ENHANCED, started)

        return EnhancementResult(
            user_id=submission.user_id,
            original_url=original_url,
            enhanced_url=enhanced_url,
            link_token=self.result_links.issue(enhanced_url),
        )

    async def run(self, submission: PhotoSubmission, bot: Bot) -> EnhancementResult:
        """Authorize and process a submission."""
        await self.authorize(submission.user_id)
        return await self.process(submission, bot)

    async def _resolve_photo_url(self, submission: PhotoSubmission, bot: Bot) -> str:
        try:
            telegram_file = await bot.get_file(submission.file_id)
        except TelegramError as e:
            logger.error("photo_resolve_failed", user_id=submission.user_id, error=str(e))
            raise FileHostError(f"could not resolve Telegram file: {e}") from e
        if not telegram_file.file_path:
            raise FileHostError("Telegram returned a file without a download path")
        return telegram_file.file_path

    async def _relay(self, submission: PhotoSubmission, bot: Bot) -> None:
        try:
            await bot.send_photo(
                chat_id=self.channel_id,
                photo=submission.file_id,
                caption=relay_caption(submission),
            )
        except TelegramError as e:
            logger.error(
                "relay_to_channel_failed",
                user_id=submission.user_id,
                channel_id=self.channel_id,
                error=str(e),
            )
            raise RelayError(str(e)) from e

    def _stage_reached(
        self, submission: PhotoSubmission, stage: PipelineStage, started: float
    ) -> None:
        elapsed = time.time() - started
        metrics.record_stage(stage.value, elapsed)
        logger.debug(
            "pipeline_stage_reached",
            user_id=submission.user_id,
            stage=stage.value,
            elapsed_seconds=round(elapsed, 3),
        )
