"""Entry point: load today's context and keep the trade book in sync."""

import asyncio
import signal
import sys

import structlog

from bias_journal.bias_store import BiasStateStore
from bias_journal.config import Settings
from bias_journal.db.bias_backend import SqlBiasBackend
from bias_journal.db.engine import create_db_engine, create_session_factory
from bias_journal.db.repository import TradeRepository, UserSettingsRepository
from bias_journal.entry_rules import EntryRules
from bias_journal.execution_gate import ExecutionContextGate
from bias_journal.local_cache import LocalBiasCache
from bias_journal.models.bias import bias_label, market_state_label
from bias_journal.sessions import display_session, weekend_status
from bias_journal.trade_book import TradeBook
from bias_journal.trade_feed import TradeFeed

logger = structlog.get_logger()


async def main() -> None:
    settings = Settings()

    engine = create_db_engine(settings)
    session_factory = create_session_factory(engine)

    store = BiasStateStore(
        backend=SqlBiasBackend(session_factory),
        cache=LocalBiasCache(settings.LOCAL_CACHE_DIR),
        user_id=settings.JOURNAL_USER_ID,
        read_attempts=settings.READ_RETRY_ATTEMPTS,
    )
    gate = ExecutionContextGate(store, tz_name=settings.JOURNAL_TIMEZONE)

    feed = TradeFeed(redis_url=settings.REDIS_URL, stream=settings.TRADE_STREAM)
    await feed.connect()

    book = TradeBook(
        repo=TradeRepository(session_factory),
        user_id=settings.JOURNAL_USER_ID,
        rules=EntryRules(
            daily_loss_limit=settings.DAILY_LOSS_LIMIT, risk_tiers=settings.RISK_TIER_AMOUNTS
        ),
        feed=feed,
        settings_repo=UserSettingsRepository(session_factory),
        risk_tiers=settings.RISK_TIER_AMOUNTS,
        tz_name=settings.JOURNAL_TIMEZONE,
    )

    snapshot = await gate.load()
    for advisory in store.drain_advisories():
        logger.warning("bias_backend_advisory", tier=advisory.tier.value, message=advisory.message)
    await book.refresh()

    session = display_session()
    logger.info(
        "journal_ready",
        bias=bias_label(snapshot.bias if snapshot else None),
        market_state=market_state_label(snapshot.market_state if snapshot else None),
        session=session.name if session else None,
        weekend_closed=weekend_status().is_closed,
        open_trades=len(book.open_trades),
        daily_losses=book.daily_losses(),
    )

    listener = asyncio.create_task(feed.listen(settings.JOURNAL_USER_ID, book.on_change))
    loop = asyncio.get_running_loop()

    def _signal_handler() -> None:
        logger.info("shutdown_signal_received")
        listener.cancel()

    if sys.platform != "win32":
        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(sig, _signal_handler)
    else:
        signal.signal(signal.SIGINT, lambda *_: _signal_handler())

    try:
        await listener
    except asyncio.CancelledError:
        pass
    finally:
        await feed.disconnect()
        await engine.dispose()
        logger.info("shutdown_complete")


def run() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    run()
