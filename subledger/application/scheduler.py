"""
Background scheduler - runs the daily billing job inside the FastAPI process.

Jobs:
  - Daily billing (BILLING_CRON_HOUR:BILLING_CRON_MINUTE UTC): process(user, UTC date)
    for every user that owns a due subscription

Включается настройкой SCHEDULER_ENABLED; без неё биллинг запускается
только вручную через POST /api/billing/process.
"""
import logging
from datetime import date, datetime, timezone

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from subledger.config import get_settings

logger = logging.getLogger(__name__)

scheduler = BackgroundScheduler(daemon=True)


def run_daily_billing(session_factory=None, today: date | None = None) -> int:
    """
    Run billing for every owner with due subscriptions.

    Each owner gets a separate session; one owner's failure is logged and
    does not stop the others.

    Returns:
        number of owners whose run completed
    """
    from subledger.application.billing import BillingProcessor
    from subledger.application.ledger import LedgerStore
    from subledger.infrastructure.db.session import get_session_factory

    if session_factory is None:
        session_factory = get_session_factory()
    if today is None:
        today = datetime.now(timezone.utc).date()

    db = session_factory()
    try:
        user_ids = LedgerStore(db).list_users_with_due_subscriptions(today)
    finally:
        db.close()

    completed = 0
    for user_id in user_ids:
        db = session_factory()
        try:
            BillingProcessor(db).process(user_id, today)
            completed += 1
        except Exception:
            logger.exception("Daily billing failed for user_id=%d", user_id)
        finally:
            db.close()

    logger.info("Daily billing %s: %d/%d owner(s) processed", today.isoformat(), completed, len(user_ids))
    return completed


def _run_daily_billing():
    try:
        run_daily_billing()
    except Exception:
        logger.exception("Daily billing job failed")


def start_scheduler():
    """Start the background scheduler with the daily billing job."""
    settings = get_settings()
    scheduler.add_job(
        _run_daily_billing,
        CronTrigger(
            hour=settings.BILLING_CRON_HOUR,
            minute=settings.BILLING_CRON_MINUTE,
            timezone="UTC",
        ),
        id="daily_billing",
        replace_existing=True,
    )

    scheduler.start()
    logger.info(
        "Scheduler started: daily_billing (%02d:%02d UTC)",
        settings.BILLING_CRON_HOUR, settings.BILLING_CRON_MINUTE,
    )


def shutdown_scheduler():
    """Gracefully stop the scheduler."""
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped")
