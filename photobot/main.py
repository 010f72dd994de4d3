"""
Main Application - Telegram bot setup.
"""

from telegram import Update
from telegram.ext import (
    Application,
    CallbackQueryHandler,
    CommandHandler,
    MessageHandler,
    filters,
)

from photobot.bot import keyboards
from photobot.bot.handlers import BotHandlers
from photobot.config import settings
from photobot.db.migration_runner import run_migrations
from photobot.db.session import close_engine, get_session_factory
from photobot.observability import get_logger, setup_logging, start_metrics_server
from photobot.services.admin import AdminService, PendingActionRegistry
from photobot.services.daily_reset import DailyResetTask
from photobot.services.enhancer import EnhancementClient
from photobot.services.file_host import FileHostClient
from photobot.services.ledger import LedgerStore
from photobot.services.pipeline import EnhancementPipeline
from photobot.services.referral import ReferralService
from photobot.services.result_links import ResultLinkStore

logger = get_logger(__name__)


def register_handlers(application: Application, handlers: BotHandlers) -> None:
    """Attach every callback to the application."""
    # Operator follow-ups to pending prompts run first and stop propagation
    application.add_handler(
        MessageHandler((filters.TEXT | filters.CAPTION) & ~filters.COMMAND, handlers.admin_reply),
        group=-1,
    )

    application.add_handler(CommandHandler("start", handlers.start))
    application.add_handler(CommandHandler("admin", handlers.admin_command))
    application.add_handler(
        CallbackQueryHandler(handlers.my_credits, pattern=f"^{keyboards.MY_CREDITS}$")
    )
    application.add_handler(
        CallbackQueryHandler(handlers.admin_action, pattern=keyboards.ADMIN_ACTIONS_PATTERN)
    )
    application.add_handler(
        CallbackQueryHandler(handlers.download, pattern=keyboards.DOWNLOAD_PATTERN)
    )
    application.add_handler(
        CallbackQueryHandler(handlers.get_link, pattern=keyboards.GET_LINK_PATTERN)
    )
    application.add_handler(MessageHandler(filters.PHOTO, handlers.photo))
    application.add_error_handler(handlers.error)


def build_application() -> Application:
    """Wire services and handlers into a python-telegram-bot Application."""
    ledger = LedgerStore(get_session_factory(), initial_credits=settings.initial_credits)
    file_host = FileHostClient(settings.file_host_url, timeout=settings.http_timeout_seconds)
    enhancer = EnhancementClient(settings.enhance_api_url, timeout=settings.http_timeout_seconds)
    result_links = ResultLinkStore(ttl_seconds=settings.result_link_ttl_seconds)

    pipeline = EnhancementPipeline(
        ledger=ledger,
        file_host=file_host,
        enhancer=enhancer,
        result_links=result_links,
        channel_id=settings.channel_id,
        daily_limit=settings.daily_limit,
    )
    referral = ReferralService(
        ledger, bonus=settings.referral_bonus, prefix=settings.referral_prefix
    )
    admin = AdminService(
        ledger,
        operator_id=settings.admin_id,
        pending=PendingActionRegistry(ttl_seconds=settings.pending_action_ttl_seconds),
    )
    reset_task = DailyResetTask(
        ledger,
        zone=settings.reset_zone,
        hour=settings.reset_hour,
        minute=settings.reset_minute,
        interval_seconds=settings.reset_check_interval_seconds,
    )

    async def post_init(application: Application) -> None:
        reset_task.start()
        logger.info("bot_started", username=application.bot.username)

    async def post_shutdown(application: Application) -> None:
        await reset_task.stop()
        await file_host.close()
        await enhancer.close()
        await close_engine()
        logger.info("bot_stopped")

    application = (
        Application.builder()
        .token(settings.bot_token)
        .concurrent_updates(True)
        .post_init(post_init)
        .post_shutdown(post_shutdown)
        .build()
    )

    register_handlers(
        application,
        BotHandlers(
            ledger=ledger,
            referral=referral,
            pipeline=pipeline,
            admin=admin,
            file_host=file_host,
            enhancer=enhancer,
            result_links=result_links,
        ),
    )
    return application


def main() -> None:
    """Entry point: migrate, expose metrics, poll Telegram."""
    setup_logging()
    logger.info(
        "application_starting",
        service=settings.service_name,
        version=settings.service_version,
        metrics_enabled=settings.metrics_enabled,
    )

    if settings.run_migrations:
        run_migrations()

    start_metrics_server()
    build_application().run_polling(allowed_updates=Update.ALL_TYPES)


if __name__ == "__main__":
    main()
