"""
Tests des workers (un passage, session de test injectée).
"""

from contextlib import contextmanager
from datetime import date

import pytest

from app.models.enums import BillingChangeStatus, BillingChangeType, OutboxStatus
from app.services.billing import BillingChangeService, ChangeRequest
from app.services.notifications import enqueue_notification
from app.workers import billing_scheduler, notification_worker
from tests.factories import TODAY


@pytest.fixture
def worker_session(db_session, monkeypatch):
    """Les workers ouvrent leur session via db_session() : on y branche la session de test."""

    @contextmanager
    def fake_db_session():
        yield db_session
        db_session.commit()

    monkeypatch.setattr(billing_scheduler, "db_session", fake_db_session)
    monkeypatch.setattr(notification_worker, "db_session", fake_db_session)
    return db_session


class RecordingSender:
    def __init__(self):
        self.sent = []

    def send(self, event_type, tenant_id, payload):
        self.sent.append(event_type)


class TestBillingScheduler:

    def test_run_once_applies_due_changes(self, worker_session, mairie, premium_plan):
        change = BillingChangeService(worker_session).schedule_change(
            mairie.id,
            ChangeRequest(change_type=BillingChangeType.PLAN_CHANGE, to_plan_id=premium_plan.id),
            today=TODAY,
        )

        before = billing_scheduler.run_once(TODAY)
        after = billing_scheduler.run_once(date(2025, 4, 1))

        worker_session.refresh(change)
        assert before.applied == []
        assert after.applied == [change.id]
        assert change.status == BillingChangeStatus.APPLIED


class TestNotificationWorker:

    def test_run_once_delivers_pending(self, worker_session):
        message = enqueue_notification(worker_session, "mandate_order.accepted", 1, {"order_id": 1})
        worker_session.commit()
        sender = RecordingSender()

        report = notification_worker.run_once(sender, batch_size=10)

        worker_session.refresh(message)
        assert report.sent == 1
        assert sender.sent == ["mandate_order.accepted"]
        assert message.status == OutboxStatus.SENT
