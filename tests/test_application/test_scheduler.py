"""
Tests for the daily billing job
"""
from datetime import date
from decimal import Decimal
from unittest import mock

from subledger.application.billing import BillingProcessor
from subledger.application.ledger import LedgerStore
from subledger.application.scheduler import run_daily_billing


TODAY = date(2026, 3, 1)


def test_bills_every_owner(db_session, session_factory, user, other_user, make_asset, make_subscription):
    mine = make_asset(balance="100.00")
    theirs = make_asset(balance="100.00", user_id=other_user.id)
    make_subscription(TODAY, asset_id=mine, amount="10.00")
    make_subscription(TODAY, asset_id=theirs, amount="20.00", user_id=other_user.id)

    completed = run_daily_billing(session_factory=session_factory, today=TODAY)

    assert completed == 2
    db_session.expire_all()
    store = LedgerStore(db_session)
    assert store.get_asset(user.id, mine).balance == Decimal("90.00")
    assert store.get_asset(other_user.id, theirs).balance == Decimal("80.00")


def test_nothing_due(session_factory, user, make_subscription):
    make_subscription(date(2026, 3, 2))

    assert run_daily_billing(session_factory=session_factory, today=TODAY) == 0


def test_one_owner_failure_isolated(session_factory, user, other_user, make_asset, make_subscription):
    make_subscription(TODAY, asset_id=make_asset())
    make_subscription(TODAY, asset_id=make_asset(user_id=other_user.id), user_id=other_user.id)
    original = BillingProcessor.process

    def process(self, user_id, target_date):
        if user_id == user.id:
            raise RuntimeError("boom")
        return original(self, user_id, target_date)

    with mock.patch.object(BillingProcessor, "process", new=process):
        completed = run_daily_billing(session_factory=session_factory, today=TODAY)

    assert completed == 1


def test_daily_job_scheduled_in_utc():
    import subledger.application.scheduler as scheduler_module

    with mock.patch.object(scheduler_module.scheduler, "start"):
        scheduler_module.start_scheduler()
    try:
        job = scheduler_module.scheduler.get_job("daily_billing")
        assert str(job.trigger.timezone) == "UTC"
        assert "hour='3'" in str(job.trigger)
    finally:
        scheduler_module.scheduler.remove_job("daily_billing")
