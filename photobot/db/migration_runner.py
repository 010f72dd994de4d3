"""
Migration Runner - Brings the users and maintenance_runs tables to head.

Called once from main() before polling starts. Alembic's command API is
synchronous, so this runs on the psycopg2 driver rather than asyncpg.
"""

from pathlib import Path

from sqlalchemy import Engine, create_engine
from structlog import get_logger

from alembic import command
from alembic.config import Config
from alembic.runtime.migration import MigrationContext
from alembic.script import ScriptDirectory
from photobot.config import settings

logger = get_logger(__name__)

ALEMBIC_INI_PATH = Path(__file__).parent.parent.parent / "alembic.ini"


def _get_sync_database_url() -> str:
    return settings.async_database_url.replace("+asyncpg", "+psycopg2")


def _build_config() -> Config:
    alembic_cfg = Config(str(ALEMBIC_INI_PATH))
    # ConfigParser treats '%' as interpolation
    alembic_cfg.set_main_option("sqlalchemy.url", _get_sync_database_url().replace("%", "%%"))
    return alembic_cfg


def _get_current_revision(engine: Engine) -> str | None:
    with engine.connect() as conn:
        return MigrationContext.configure(conn).get_current_revision()


def _get_head_revision(alembic_cfg: Config) -> str | None:
    return ScriptDirectory.from_config(alembic_cfg).get_current_head()


def run_migrations() -> str | None:
    """
    Upgrade the schema to the newest revision if it is behind.

    Returns:
        Revision the database is at afterwards, or None when no alembic.ini
        ships with the deployment.

    Raises:
        RuntimeError: The upgrade could not be applied
    """
    if not ALEMBIC_INI_PATH.exists():
        logger.warning("alembic_config_missing", path=str(ALEMBIC_INI_PATH))
        return None

    try:
        alembic_cfg = _build_config()
        engine = create_engine(_get_sync_database_url())
        try:
            current = _get_current_revision(engine)
            head = _get_head_revision(alembic_cfg)
            if current == head:
                logger.info("schema_up_to_date", revision=current)
                return current

            logger.info("schema_upgrade_started", from_revision=current, to_revision=head)
            command.upgrade(alembic_cfg, "head")
            applied = _get_current_revision(engine)
            logger.info("schema_upgrade_finished", revision=applied)
            return applied
        finally:
            engine.dispose()
    except Exception as e:
        logger.error("schema_upgrade_failed", error=str(e), error_type=type(e).__name__)
        raise RuntimeError(f"Database migration failed: {e}") from e
