"""
Portal de Matrículas - Payment Reconciliation
Soma de pagamentos, desconto da matrícula, checkout PIX e webhook do Asaas
"""
import asyncio
import logging
import secrets
from datetime import date, datetime, time, timedelta
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from portal.core.config import settings
from portal.core.exceptions import (
    DuplicatePaymentError,
    InvalidTransitionError,
    NotFoundError,
    PaymentConfigurationError,
    PaymentGatewayError,
    PaymentValidationError,
    UnauthorizedError,
)
from portal.models import (
    Course,
    Enrollment,
    PAID_STATUSES,
    Payment,
    PaymentKind,
    PaymentSettings,
    PaymentStatus,
    PreEnrollment,
    PreEnrollmentStatus,
)
from portal.services import workflow
from portal.services.asaas import AsaasClient, clean_cpf, clean_phone, parse_expiration
from portal.services.fees import apply_minimum_charge

logger = logging.getLogger(__name__)

MANUAL_RECORD_WARNING = (
    "Não foi possível registrar o pagamento manual; "
    "o desconto pode não aparecer corretamente para o aluno"
)
QR_CODE_ERROR = "QR Code não gerado automaticamente. Solicite um novo pagamento ou contate o suporte."

# Eventos do Asaas -> status do pagamento
GATEWAY_EVENTS = {
    "PAYMENT_RECEIVED": PaymentStatus.RECEIVED.value,
    "PAYMENT_CONFIRMED": PaymentStatus.CONFIRMED.value,
    "PAYMENT_OVERDUE": PaymentStatus.OVERDUE.value,
}


# ============================================
# CONCILIAÇÃO
# ============================================

async def sum_confirmed_payments(
    db: AsyncSession,
    pre_enrollment_id: str,
    kind: str = PaymentKind.PRE_ENROLLMENT.value,
) -> float:
    """Soma de todos os pagamentos confirmados/recebidos (não só o último)"""
    result = await db.execute(
        select(func.coalesce(func.sum(Payment.amount), 0.0)).where(
            Payment.pre_enrollment_id == pre_enrollment_id,
            Payment.kind == kind,
            Payment.status.in_(PAID_STATUSES),
        )
    )
    return round(float(result.scalar() or 0.0), 2)


def compute_discounted_checkout(original_fee: float, total_paid: float) -> float:
    """Valor da matrícula descontado do que já foi pago, respeitando o mínimo do gateway"""
    return apply_minimum_charge(original_fee - total_paid)


async def find_paid_payment(db: AsyncSession, pre_enrollment_id: str, kind: str) -> Optional[Payment]:
    result = await db.execute(
        select(Payment)
        .where(
            Payment.pre_enrollment_id == pre_enrollment_id,
            Payment.kind == kind,
            Payment.status.in_(PAID_STATUSES),
        )
        .limit(1)
    )
    return result.scalar_one_or_none()


async def ensure_manual_payment_record(
    db: AsyncSession,
    pre: PreEnrollment,
    kind: str,
    amount: float,
) -> Optional[str]:
    """
    Registra um pagamento confirmado criado pela equipe, se ainda não houver.

    Falhas não desfazem a ação da equipe: retorna um aviso para a resposta.
    """
    if await find_paid_payment(db, pre.id, kind):
        logger.info(f"Pré-matrícula {pre.id}: pagamento {kind} já registrado, nada a criar")
        return None

    try:
        async with db.begin_nested():
            db.add(Payment(
                pre_enrollment_id=pre.id,
                kind=kind,
                amount=round(amount or 0.0, 2),
                status=PaymentStatus.CONFIRMED.value,
                paid_at=datetime.utcnow(),
                is_manual=True,
            ))
    except SQLAlchemyError as e:
        logger.warning(f"Pré-matrícula {pre.id}: falha ao criar pagamento manual: {e}")
        return MANUAL_RECORD_WARNING

    logger.info(f"Pré-matrícula {pre.id}: pagamento manual {kind} de R$ {amount:.2f} registrado")
    return None


async def discounts_report(
    db: AsyncSession,
    course_id: Optional[str] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    search: Optional[str] = None,
) -> dict:
    """
    Relatório de descontos: matrículas pagas com abatimento da pré-matrícula.

    Cada item traz a taxa original do curso, o crédito pago na pré-matrícula,
    o valor final cobrado e o desconto. Matrículas sem desconto ficam de fora.
    Sem `date_to`, o filtro de data cobre apenas o dia `date_from`.
    """
    credit = (
        select(
            Payment.pre_enrollment_id.label("pre_enrollment_id"),
            func.sum(Payment.amount).label("paid"),
        )
        .where(
            Payment.kind == PaymentKind.PRE_ENROLLMENT.value,
            Payment.status.in_(PAID_STATUSES),
        )
        .group_by(Payment.pre_enrollment_id)
        .subquery()
    )

    query = (
        select(Payment, PreEnrollment, Course, credit.c.paid)
        .join(PreEnrollment, Payment.pre_enrollment_id == PreEnrollment.id)
        .join(Course, PreEnrollment.course_id == Course.id)
        .outerjoin(credit, credit.c.pre_enrollment_id == PreEnrollment.id)
        .where(
            Payment.kind == PaymentKind.ENROLLMENT.value,
            Payment.status.in_(PAID_STATUSES),
        )
        .order_by(Payment.paid_at.desc())
    )
    if course_id:
        query = query.where(Course.id == course_id)
    if date_from:
        end = (date_to or date_from) + timedelta(days=1)
        query = query.where(
            Payment.paid_at >= datetime.combine(date_from, time.min),
            Payment.paid_at < datetime.combine(end, time.min),
        )
    if search:
        pattern = f"%{search}%"
        query = query.where(PreEnrollment.full_name.ilike(pattern) | PreEnrollment.email.ilike(pattern))

    items = []
    for payment, pre, course, paid in (await db.execute(query)).all():
        original_fee = course.enrollment_fee or 0.0
        final_amount = payment.amount or 0.0
        discount = round(original_fee - final_amount, 2)
        if discount <= 0:
            continue
        items.append({
            "payment_id": payment.id,
            "pre_enrollment_id": pre.id,
            "student_name": pre.full_name,
            "email": pre.email,
            "course_id": course.id,
            "course_name": course.name,
            "pre_enrollment_paid": round(float(paid or 0.0), 2),
            "original_fee": original_fee,
            "final_amount": final_amount,
            "discount": discount,
            "paid_at": payment.paid_at.isoformat() if payment.paid_at else None,
        })

    total_discount = round(sum(item["discount"] for item in items), 2)
    return {
        "items": items,
        "total": len(items),
        "total_discount": total_discount,
        "average_discount": round(total_discount / len(items), 2) if items else 0.0,
    }


async def get_payment_settings(db: AsyncSession) -> PaymentSettings:
    result = await db.execute(select(PaymentSettings).limit(1))
    payment_settings = result.scalar_one_or_none()
    if not payment_settings or not payment_settings.enabled:
        raise PaymentConfigurationError("Pagamentos online não estão habilitados")
    if not payment_settings.api_key:
        raise PaymentConfigurationError(
            f"Chave da API do Asaas ({payment_settings.environment}) não configurada"
        )
    return payment_settings


# ============================================
# CHECKOUT
# ============================================

async def _latest_open_payment(db: AsyncSession, pre_enrollment_id: str, kind: str) -> Optional[Payment]:
    result = await db.execute(
        select(Payment)
        .where(
            Payment.pre_enrollment_id == pre_enrollment_id,
            Payment.kind == kind,
            Payment.status.in_((PaymentStatus.PENDING.value,) + PAID_STATUSES),
        )
        .order_by(Payment.created_at.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def checkout_amount(db: AsyncSession, pre: PreEnrollment, course: Course, kind: str) -> float:
    if kind == PaymentKind.ENROLLMENT.value:
        total_paid = await sum_confirmed_payments(db, pre.id, PaymentKind.PRE_ENROLLMENT.value)
        return compute_discounted_checkout(course.enrollment_fee or 0.0, total_paid)
    return round(course.pre_enrollment_fee or 0.0, 2)


async def checkout(
    db: AsyncSession,
    pre: PreEnrollment,
    kind: str = PaymentKind.PRE_ENROLLMENT.value,
    enrollment: Enrollment = None,
    gateway=None,
) -> dict:
    """
    Cria (ou reaproveita) a cobrança PIX da pré-matrícula ou da matrícula.

    Retorna {"payment", "is_existing", "error"}.
    """
    kind = PaymentKind(kind).value
    if kind == PaymentKind.ENROLLMENT.value and enrollment is None:
        raise PaymentValidationError("Matrícula não informada para o pagamento")

    existing = await _latest_open_payment(db, pre.id, kind)
    if existing and existing.is_paid:
        raise DuplicatePaymentError("Pagamento já confirmado para esta etapa")

    if existing:
        if not existing.is_expired() and existing.pix_payload and existing.pix_qr_code:
            logger.info(f"Reaproveitando cobrança {existing.id} (expira em {existing.pix_expiration_date})")
            return {"payment": existing.to_dict(), "is_existing": True, "error": None}

        existing.status = PaymentStatus.OVERDUE.value
        existing.error_message = "PIX expirado ou sem QR Code; substituído por nova cobrança"
        await db.flush()
        logger.info(f"Cobrança {existing.id} expirada, gerando nova")

    if kind == PaymentKind.PRE_ENROLLMENT.value and pre.status not in (
        PreEnrollmentStatus.PENDING.value,
        PreEnrollmentStatus.PENDING_PAYMENT.value,
    ):
        raise InvalidTransitionError(f"Pré-matrícula com status {pre.status} não aceita pagamento")

    payment_settings = await get_payment_settings(db)

    course = await workflow.get_course(db, pre.course_id)
    amount = await checkout_amount(db, pre, course, kind)
    if amount <= 0 or amount < settings.MINIMUM_CHARGE_AMOUNT:
        raise PaymentValidationError(
            f"Valor mínimo para cobrança é R$ {settings.MINIMUM_CHARGE_AMOUNT:.2f}"
        )

    cpf = clean_cpf(pre.cpf)
    if len(cpf) != 11:
        raise PaymentValidationError("CPF deve ter 11 dígitos")

    gateway = gateway or AsaasClient.from_settings(payment_settings)
    customer_id = await gateway.create_customer(
        pre.full_name, pre.email, cpf, clean_phone(pre.phone, pre.whatsapp)
    )
    charge = await gateway.create_pix_charge(customer_id, amount)

    payment = Payment(
        pre_enrollment_id=pre.id,
        enrollment_id=enrollment.id if enrollment else None,
        kind=kind,
        amount=amount,
        status=PaymentStatus.PENDING.value,
        asaas_payment_id=charge["id"],
    )

    if settings.PIX_QR_CODE_DELAY_SECONDS > 0:
        # O Asaas leva alguns instantes para liberar o QR Code
        await asyncio.sleep(settings.PIX_QR_CODE_DELAY_SECONDS)

    error = None
    try:
        qr = await gateway.get_pix_qr_code(charge["id"])
        payment.pix_qr_code = qr.get("encodedImage")
        payment.pix_payload = qr.get("payload")
        payment.pix_expiration_date = parse_expiration(qr.get("expirationDate"))
    except PaymentGatewayError as e:
        logger.warning(f"QR Code da cobrança {charge['id']} não gerado: {e.message}")
        payment.error_message = QR_CODE_ERROR
        error = QR_CODE_ERROR

    db.add(payment)
    await db.flush()
    logger.info(f"Pagamento {payment.id} criado ({kind}, R$ {amount:.2f})")

    if kind == PaymentKind.PRE_ENROLLMENT.value:
        await workflow.apply_transition(db, pre, workflow.WorkflowEvent.CHARGE_CREATED, payment_id=payment.id)
    else:
        enrollment.enrollment_payment_id = payment.id
        enrollment.enrollment_amount = amount
        await db.flush()

    return {"payment": payment.to_dict(), "is_existing": False, "error": error}


# ============================================
# WEBHOOK DO ASAAS
# ============================================

async def handle_gateway_event(
    db: AsyncSession,
    event: str,
    payment_payload: Optional[dict],
    access_token: Optional[str] = None,
) -> dict:
    """
    Processa uma notificação do Asaas.

    Pagamentos confirmados/recebidos são imutáveis: eventos posteriores para
    a mesma cobrança são registrados em log e ignorados. Reentregas são
    idempotentes.
    """
    result = await db.execute(select(PaymentSettings).limit(1))
    payment_settings = result.scalar_one_or_none()
    stored_token = payment_settings.asaas_webhook_token if payment_settings else None
    if stored_token:
        if not secrets.compare_digest((access_token or "").encode(), stored_token.encode()):
            logger.error("Webhook do Asaas com token ausente ou inválido")
            raise UnauthorizedError("Token do webhook inválido")
    else:
        logger.warning("Token do webhook do Asaas não configurado; aceitando sem autenticação")

    if not payment_payload or not payment_payload.get("id"):
        logger.info(f"Evento {event} sem pagamento, ignorado")
        return {"received": True, "ignored": True}

    charge_id = payment_payload["id"]
    result = await db.execute(select(Payment).where(Payment.asaas_payment_id == charge_id))
    payment = result.scalar_one_or_none()
    if not payment:
        raise NotFoundError(f"Pagamento {charge_id} não encontrado")

    new_status = GATEWAY_EVENTS.get(event)
    if not new_status:
        logger.info(f"Evento {event} não tratado para {charge_id}")
        return {"received": True, "ignored": True, "payment_id": payment.id}

    if payment.is_paid:
        if new_status not in PAID_STATUSES:
            logger.warning(
                f"Evento {event} ignorado: pagamento {payment.id} já está {payment.status}"
            )
            return {"received": True, "ignored": True, "payment_id": payment.id}
    else:
        payment.status = new_status
        if new_status in PAID_STATUSES:
            payment.paid_at = datetime.utcnow()
        await db.flush()
        logger.info(f"Pagamento {payment.id}: {event} -> {new_status}")

    warnings = []
    if payment.is_paid:
        warnings = await _apply_paid_payment(db, payment)

    return {
        "received": True,
        "ignored": False,
        "payment_id": payment.id,
        "status": payment.status,
        "warnings": warnings,
    }


async def _apply_paid_payment(db: AsyncSession, payment: Payment) -> list:
    """Efeitos do pagamento confirmado na pré-matrícula ou na matrícula"""
    if payment.kind == PaymentKind.ENROLLMENT.value:
        enrollment = await db.get(Enrollment, payment.enrollment_id) if payment.enrollment_id else None
        if not enrollment:
            logger.error(f"Pagamento {payment.id} de matrícula sem matrícula vinculada")
            return ["Pagamento sem matrícula vinculada"]
        try:
            await workflow.activate_enrollment(db, enrollment)
        except InvalidTransitionError as e:
            logger.warning(f"Matrícula {enrollment.id} não ativada: {e.message}")
            return [e.message]
        return []

    pre = await workflow.get_pre_enrollment(db, payment.pre_enrollment_id)
    try:
        await workflow.confirm_payment(db, pre, payment_id=payment.id)
    except InvalidTransitionError as e:
        # Ex.: pré-matrícula rejeitada que recebeu o PIX depois; fica para a equipe
        logger.warning(f"Pré-matrícula {pre.id} não atualizada após pagamento: {e.message}")
        return [e.message]
    return []
