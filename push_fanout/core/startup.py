"""
Startup utilities for the application.
"""
import logging
from sqlalchemy.exc import OperationalError, ProgrammingError

from push_fanout.core.config import settings
from push_fanout.core.database import Base, engine, get_async_session_maker_instance
from push_fanout.core.fanout import FanoutCoordinator
from push_fanout.core.firebase_client import FirebaseTransport
from push_fanout.core.history import SqlAlchemyHistoryRecorder
from push_fanout.models.enums import Platform
from push_fanout.models.push_history import PushHistory  # noqa: F401 (registers the table on Base)

logger = logging.getLogger(__name__)


def configure_logging() -> None:
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


async def ensure_push_histories_table(db_engine=None) -> bool:
    """Create push_histories if missing (Alembic remains the source of truth for Postgres)."""
    db_engine = db_engine or engine
    try:
        async with db_engine.begin() as conn:
            # create_all skips tables that already exist
            await conn.run_sync(Base.metadata.create_all)
        return True
    except (OperationalError, ProgrammingError) as e:
        logger.warning(
            f"Database error while ensuring push_histories. Error: {e}. "
            f"Please ensure database is accessible and run 'alembic upgrade head'."
        )
        return False


def build_coordinator(transport=None, session_maker=None) -> FanoutCoordinator:
    """Wire the transport and the history recorder once per process."""
    transport = transport or FirebaseTransport.from_settings()
    recorder = SqlAlchemyHistoryRecorder(session_maker or get_async_session_maker_instance())
    if not transport.is_available():
        logger.warning("Push transport not configured; every send will report DISPATCH_UNAVAILABLE")
    return FanoutCoordinator.from_settings(
        {Platform.ios: transport, Platform.android: transport},
        recorder,
    )
