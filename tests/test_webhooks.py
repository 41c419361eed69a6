"""Webhook de automação (n8n)."""

import httpx
import pytest
from sqlalchemy import select

from portal.models import SystemSettings, WebhookLog
from portal.services import webhooks, workflow
from tests.conftest import VALID_CPF


@pytest.fixture
async def webhook_enabled(db):
    system = (await db.execute(select(SystemSettings))).scalar_one()
    system.webhook_url = "https://automacao.example.com/webhook/matriculas"
    system.webhook_events = ["enrollment_created", "payment_confirmed", "enrollment_approved"]
    await db.commit()
    return system


async def submit(db, course):
    pre = await workflow.submit_pre_enrollment(db, {
        "course_id": course.id,
        "full_name": "Carla Mendes",
        "cpf": VALID_CPF,
        "email": "carla@example.com",
        "whatsapp": "61988887777",
    })
    await db.commit()
    return pre


async def logs(db):
    result = await db.execute(select(WebhookLog).order_by(WebhookLog.created_at))
    return result.scalars().all()


async def test_no_url_is_a_noop(db, course, webhook_calls):
    await submit(db, course)
    assert webhook_calls == []
    assert await logs(db) == []


async def test_subscribed_events_are_posted_and_logged(db, course, webhook_calls, webhook_enabled):
    pre = await submit(db, course)
    await workflow.confirm_payment(db, pre)
    await db.commit()

    assert [call["event"] for call in webhook_calls] == ["enrollment_created", "payment_confirmed"]
    confirmed = webhook_calls[1]["enrollment"]
    assert confirmed["id"] == pre.id
    assert confirmed["status"] == "payment_confirmed"
    assert confirmed["previous_status"] == "pending_payment"
    assert confirmed["student_whatsapp"] == "61988887777"
    assert confirmed["course_name"] == course.name

    entries = await logs(db)
    assert len(entries) == 2
    assert all(entry.success and entry.response_status == 200 for entry in entries)


async def test_unsubscribed_event_is_skipped(db, course, webhook_calls, webhook_enabled):
    await submit(db, course)
    # submit_with_fee gera status_changed, que não está na lista
    assert [call["event"] for call in webhook_calls] == ["enrollment_created"]


async def test_failure_is_logged_and_never_raised(db, course, monkeypatch, webhook_enabled):
    def handler(request):
        raise httpx.ConnectError("recusado")

    monkeypatch.setattr(webhooks, "http_transport", httpx.MockTransport(handler))

    pre = await submit(db, course)
    await db.commit()

    entries = await logs(db)
    assert pre.status == "pending_payment"
    assert len(entries) == 1
    assert entries[0].success is False
    assert entries[0].response_status == 0


async def test_http_error_status_is_recorded(db, course, monkeypatch, webhook_enabled):
    monkeypatch.setattr(
        webhooks, "http_transport", httpx.MockTransport(lambda request: httpx.Response(500, text="erro"))
    )
    await submit(db, course)
    await db.commit()

    entries = await logs(db)
    assert entries[0].success is False
    assert entries[0].response_status == 500


async def test_trigger_for_missing_pre_enrollment_does_not_raise(db, webhook_calls, webhook_enabled):
    await webhooks.trigger(db, "nao-existe", "payment_confirmed")
    assert webhook_calls == []


async def test_test_webhook_reports_result(webhook_calls):
    result = await webhooks.test_webhook("https://automacao.example.com/webhook")
    assert result["success"] is True
    assert webhook_calls[0]["event"] == "webhook_test"


async def test_test_webhook_reports_http_error(monkeypatch):
    monkeypatch.setattr(
        webhooks, "http_transport", httpx.MockTransport(lambda request: httpx.Response(404))
    )
    result = await webhooks.test_webhook("https://automacao.example.com/webhook")
    assert result == {"success": False, "message": "Erro HTTP: 404"}
