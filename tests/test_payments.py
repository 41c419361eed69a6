"""Soma de pagamentos, checkout PIX e webhook do Asaas."""

from datetime import date, datetime, timedelta

import pytest
from sqlalchemy import event, func, select
from sqlalchemy.exc import IntegrityError

from portal.core.exceptions import (
    DuplicatePaymentError,
    NotFoundError,
    PaymentConfigurationError,
    UnauthorizedError,
)
from portal.models import Payment, PaymentSettings, PaymentStatus, PreEnrollmentStatus
from portal.services import payments, workflow
from tests.conftest import VALID_CPF


async def submit(db, course):
    pre = await workflow.submit_pre_enrollment(db, {
        "course_id": course.id,
        "full_name": "Maria Silva Santos",
        "cpf": VALID_CPF,
        "email": "maria@example.com",
        "whatsapp": "61999998888",
    })
    await db.commit()
    return pre


async def count_payments(db, pre_id):
    result = await db.execute(select(func.count(Payment.id)).where(Payment.pre_enrollment_id == pre_id))
    return result.scalar()


async def test_sum_counts_only_paid_records(db, course):
    pre = await submit(db, course)
    for amount, status in ((57.0, "confirmed"), (10.0, "pending"), (20.0, "received"), (8.0, "overdue")):
        db.add(Payment(pre_enrollment_id=pre.id, kind="pre_enrollment", amount=amount, status=status))
    db.add(Payment(pre_enrollment_id=pre.id, kind="enrollment", amount=100.0, status="confirmed"))
    await db.commit()

    assert await payments.sum_confirmed_payments(db, pre.id) == 77.0


def test_discounted_checkout_never_below_minimum():
    assert payments.compute_discounted_checkout(294.0, 57.0) == 237.0
    assert payments.compute_discounted_checkout(60.0, 57.0) == 5.0
    assert payments.compute_discounted_checkout(0.0, 57.0) == 5.0


async def test_manual_payment_record_is_idempotent(db, course):
    pre = await submit(db, course)

    assert await payments.ensure_manual_payment_record(db, pre, "pre_enrollment", 57.0) is None
    assert await payments.ensure_manual_payment_record(db, pre, "pre_enrollment", 57.0) is None
    await db.commit()

    assert await count_payments(db, pre.id) == 1
    assert await payments.sum_confirmed_payments(db, pre.id) == 57.0


async def test_manual_confirmation_with_existing_gateway_payment(db, course):
    pre = await submit(db, course)
    db.add(Payment(pre_enrollment_id=pre.id, kind="pre_enrollment", amount=57.0, status="received"))
    await db.commit()

    warnings = await workflow.confirm_payment_manually(db, pre, course)
    await db.commit()

    assert warnings == []
    assert pre.status == PreEnrollmentStatus.PAYMENT_CONFIRMED.value
    assert await count_payments(db, pre.id) == 1


async def test_checkout_requires_enabled_settings(db, course, gateway):
    pre = await submit(db, course)
    with pytest.raises(PaymentConfigurationError):
        await payments.checkout(db, pre, gateway=gateway)
    assert gateway.charges == []


async def test_checkout_creates_pix_and_moves_to_pending_payment(db, course, gateway, payment_settings):
    pre = await submit(db, course)

    result = await payments.checkout(db, pre, gateway=gateway)
    await db.commit()

    payment = result["payment"]
    assert result["is_existing"] is False
    assert result["error"] is None
    assert payment["amount"] == 57.0
    assert payment["pix_payload"].endswith("pay_1")
    assert pre.status == PreEnrollmentStatus.PENDING_PAYMENT.value
    assert gateway.customers[0]["cpf"] == VALID_CPF


async def test_checkout_reuses_valid_pending_charge(db, course, gateway, payment_settings):
    pre = await submit(db, course)
    first = await payments.checkout(db, pre, gateway=gateway)
    second = await payments.checkout(db, pre, gateway=gateway)

    assert second["is_existing"] is True
    assert second["payment"]["id"] == first["payment"]["id"]
    assert len(gateway.charges) == 1


async def test_expired_pix_is_replaced(db, course, gateway, payment_settings):
    pre = await submit(db, course)
    first = await payments.checkout(db, pre, gateway=gateway)
    old = await db.get(Payment, first["payment"]["id"])
    old.pix_expiration_date = datetime.utcnow() - timedelta(minutes=1)
    await db.commit()

    second = await payments.checkout(db, pre, gateway=gateway)
    await db.commit()
    await db.refresh(old)

    assert second["is_existing"] is False
    assert second["payment"]["id"] != old.id
    assert old.status == PaymentStatus.OVERDUE.value
    assert len(gateway.charges) == 2


async def test_qr_code_failure_keeps_payment_with_error(db, course, gateway, payment_settings):
    pre = await submit(db, course)
    gateway.fail_qr_code = True

    result = await payments.checkout(db, pre, gateway=gateway)

    assert result["error"] == payments.QR_CODE_ERROR
    assert result["payment"]["pix_qr_code"] is None
    assert result["payment"]["error_message"] == payments.QR_CODE_ERROR


async def test_paid_pre_enrollment_cannot_checkout_again(db, course, gateway, payment_settings):
    pre = await submit(db, course)
    result = await payments.checkout(db, pre, gateway=gateway)
    await payments.handle_gateway_event(db, "PAYMENT_RECEIVED", {"id": result["payment"]["asaas_payment_id"]})
    await db.commit()

    with pytest.raises(DuplicatePaymentError):
        await payments.checkout(db, pre, gateway=gateway)


async def test_gateway_event_confirms_pre_enrollment(db, course, gateway, payment_settings):
    pre = await submit(db, course)
    result = await payments.checkout(db, pre, gateway=gateway)
    charge_id = result["payment"]["asaas_payment_id"]

    response = await payments.handle_gateway_event(db, "PAYMENT_CONFIRMED", {"id": charge_id})
    await db.commit()

    assert response["status"] == PaymentStatus.CONFIRMED.value
    assert pre.status == PreEnrollmentStatus.PAYMENT_CONFIRMED.value
    assert await payments.sum_confirmed_payments(db, pre.id) == 57.0


async def test_paid_payment_is_immutable(db, course, gateway, payment_settings):
    pre = await submit(db, course)
    result = await payments.checkout(db, pre, gateway=gateway)
    charge_id = result["payment"]["asaas_payment_id"]
    await payments.handle_gateway_event(db, "PAYMENT_RECEIVED", {"id": charge_id})

    response = await payments.handle_gateway_event(db, "PAYMENT_OVERDUE", {"id": charge_id})
    payment = await db.get(Payment, result["payment"]["id"])

    assert response["ignored"] is True
    assert payment.status == PaymentStatus.RECEIVED.value


async def test_redelivered_event_is_idempotent(db, course, gateway, payment_settings):
    pre = await submit(db, course)
    result = await payments.checkout(db, pre, gateway=gateway)
    charge_id = result["payment"]["asaas_payment_id"]

    await payments.handle_gateway_event(db, "PAYMENT_CONFIRMED", {"id": charge_id})
    again = await payments.handle_gateway_event(db, "PAYMENT_CONFIRMED", {"id": charge_id})

    assert again["warnings"] == []
    assert pre.status == PreEnrollmentStatus.PAYMENT_CONFIRMED.value


async def test_unknown_charge_raises_not_found(db, payment_settings):
    with pytest.raises(NotFoundError):
        await payments.handle_gateway_event(db, "PAYMENT_CONFIRMED", {"id": "pay_desconhecido"})


async def test_event_without_payment_is_ignored(db):
    response = await payments.handle_gateway_event(db, "PAYMENT_CREATED", None)
    assert response["ignored"] is True


async def test_webhook_token_mismatch(db, payment_settings):
    settings_row = (await db.execute(select(PaymentSettings))).scalar_one()
    settings_row.asaas_webhook_token = "segredo"
    await db.commit()

    with pytest.raises(UnauthorizedError):
        await payments.handle_gateway_event(db, "PAYMENT_CONFIRMED", {"id": "pay_1"}, access_token="errado")


async def test_payment_for_rejected_pre_enrollment_returns_warning(db, course, gateway, payment_settings, admin):
    pre = await submit(db, course)
    result = await payments.checkout(db, pre, gateway=gateway)
    await workflow.reject(db, pre, admin.id, "Documentação incompleta")

    response = await payments.handle_gateway_event(
        db, "PAYMENT_RECEIVED", {"id": result["payment"]["asaas_payment_id"]}
    )

    assert response["warnings"]
    assert pre.status == PreEnrollmentStatus.REJECTED.value
    assert response["status"] == PaymentStatus.RECEIVED.value
    assert response["payment_id"] == result["payment"]["id"]


async def test_webhook_token_accepted_when_it_matches(db, course, gateway, payment_settings):
    settings_row = (await db.execute(select(PaymentSettings))).scalar_one()
    settings_row.asaas_webhook_token = "segredo"
    await db.commit()
    pre = await submit(db, course)
    result = await payments.checkout(db, pre, gateway=gateway)

    with pytest.raises(UnauthorizedError):
        await payments.handle_gateway_event(db, "PAYMENT_CONFIRMED", {"id": "pay_1"})
    response = await payments.handle_gateway_event(
        db, "PAYMENT_CONFIRMED", {"id": result["payment"]["asaas_payment_id"]}, access_token="segredo"
    )
    assert response["status"] == PaymentStatus.CONFIRMED.value


async def test_failed_manual_record_keeps_staff_confirmation(db, course):
    pre = await submit(db, course)

    def reject_insert(mapper, connection, target):
        raise IntegrityError("INSERT INTO payments", {}, Exception("violação forçada"))

    event.listen(Payment, "before_insert", reject_insert)
    try:
        warnings = await workflow.confirm_payment_manually(db, pre, course)
        await db.commit()
    finally:
        event.remove(Payment, "before_insert", reject_insert)

    assert warnings == [payments.MANUAL_RECORD_WARNING]
    await db.refresh(pre)
    assert pre.status == PreEnrollmentStatus.PAYMENT_CONFIRMED.value
    assert await count_payments(db, pre.id) == 0


async def enrollment_paid(db, course, name, email, credit, amount, paid_at):
    pre = await workflow.submit_pre_enrollment(db, {
        "course_id": course.id, "full_name": name, "cpf": VALID_CPF, "email": email,
    })
    if credit:
        db.add(Payment(pre_enrollment_id=pre.id, kind="pre_enrollment", amount=credit, status="received"))
    db.add(Payment(pre_enrollment_id=pre.id, kind="enrollment", amount=amount, status="confirmed", paid_at=paid_at))
    await db.commit()
    return pre


async def test_discounts_report(db, course):
    jan = datetime(2025, 1, 10, 14, 30)
    feb = datetime(2025, 2, 3, 9, 0)
    maria = await enrollment_paid(db, course, "Maria Silva", "maria@example.com", 57.0, 237.0, jan)
    await enrollment_paid(db, course, "João Lima", "joao@example.com", 100.0, 194.0, feb)
    await enrollment_paid(db, course, "Sem Desconto", "cheio@example.com", 0, 294.0, feb)
    db.add(Payment(pre_enrollment_id=maria.id, kind="enrollment", amount=200.0, status="pending"))
    await db.commit()

    report = await payments.discounts_report(db)
    assert [item["student_name"] for item in report["items"]] == ["João Lima", "Maria Silva"]
    assert report["items"][1] == {
        **report["items"][1],
        "original_fee": 294.0,
        "pre_enrollment_paid": 57.0,
        "final_amount": 237.0,
        "discount": 57.0,
    }
    assert report["total"] == 2
    assert report["total_discount"] == 157.0
    assert report["average_discount"] == 78.5


async def test_discounts_report_filters(db, course):
    await enrollment_paid(db, course, "Maria Silva", "maria@example.com", 57.0, 237.0, datetime(2025, 1, 10, 23, 59))
    await enrollment_paid(db, course, "João Lima", "joao@example.com", 57.0, 237.0, datetime(2025, 1, 11, 8, 0))

    same_day = await payments.discounts_report(db, date_from=date(2025, 1, 10))
    assert [item["student_name"] for item in same_day["items"]] == ["Maria Silva"]

    by_email = await payments.discounts_report(db, search="JOAO@")
    assert [item["student_name"] for item in by_email["items"]] == ["João Lima"]

    other_course = await payments.discounts_report(db, course_id="outro-curso")
    assert other_course == {"items": [], "total": 0, "total_discount": 0.0, "average_discount": 0.0}
