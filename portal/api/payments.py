"""
Portal de Matrículas - Payments API
Checkout PIX da pré-matrícula, webhook do Asaas e relatório de descontos
"""
import logging
from datetime import date
from typing import Optional
from fastapi import APIRouter, Depends, Header, Query
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from portal.database import get_db
from portal.models import AdminUser, Payment, PaymentKind
from portal.schemas import CheckoutRequest, AsaasWebhookPayload, PaymentResponse
from portal.api.auth import get_current_admin, get_optional_admin, ensure_student_access
from portal.services import payments, workflow

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/payments", tags=["Payments"])


def get_payment_gateway():
    """
    Cliente do gateway usado no checkout. None = AsaasClient montado a partir
    de payment_settings (substituído nos testes).
    """
    return None


@router.post("/checkout", response_model=PaymentResponse)
async def checkout(
    request: CheckoutRequest,
    db: AsyncSession = Depends(get_db),
    gateway=Depends(get_payment_gateway)
):
    """Gera (ou reaproveita) o PIX da taxa de pré-matrícula"""
    pre = await workflow.get_pre_enrollment(db, request.pre_enrollment_id)
    ensure_student_access(pre, request.cpf, None)

    result = await payments.checkout(db, pre, PaymentKind.PRE_ENROLLMENT.value, gateway=gateway)
    await db.commit()
    return result


@router.post("/webhook/asaas")
async def asaas_webhook(
    payload: AsaasWebhookPayload,
    asaas_access_token: Optional[str] = Header(None),
    db: AsyncSession = Depends(get_db)
):
    """Notificações de pagamento do Asaas"""
    logger.info(f"Webhook Asaas recebido: {payload.event}")
    result = await payments.handle_gateway_event(
        db, payload.event, payload.payment, access_token=asaas_access_token
    )
    await db.commit()
    return result


@router.get("/pre-enrollment/{pre_enrollment_id}")
async def list_payments(
    pre_enrollment_id: str,
    cpf: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
    admin: Optional[AdminUser] = Depends(get_optional_admin)
):
    """Pagamentos da pré-matrícula e total já pago"""
    pre = await workflow.get_pre_enrollment(db, pre_enrollment_id)
    ensure_student_access(pre, cpf, admin)

    result = await db.execute(
        select(Payment)
        .where(Payment.pre_enrollment_id == pre.id)
        .order_by(Payment.created_at.desc())
    )
    return {
        "payments": [payment.to_dict() for payment in result.scalars().all()],
        "total_paid": await payments.sum_confirmed_payments(db, pre.id, PaymentKind.PRE_ENROLLMENT.value),
    }


@router.get("/discounts")
async def discounts_report(
    course_id: Optional[str] = Query(None),
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    search: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
    admin: AdminUser = Depends(get_current_admin)
):
    """Relatório de descontos concedidos nas matrículas (equipe)"""
    return await payments.discounts_report(
        db, course_id=course_id, date_from=date_from, date_to=date_to, search=search
    )
