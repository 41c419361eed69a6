"""
Portal de Matrículas - Automation Webhook
Notifica a automação externa (n8n) sobre mudanças nas pré-matrículas
"""
import logging
from datetime import datetime
from typing import Optional

import httpx
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from portal.core.config import settings
from portal.models import Course, Payment, PreEnrollment, SystemSettings, WebhookLog

logger = logging.getLogger(__name__)

EVENT_TYPES = (
    "enrollment_created",
    "payment_confirmed",
    "enrollment_approved",
    "status_changed",
)

# Substituído nos testes por httpx.MockTransport
http_transport: Optional[httpx.AsyncBaseTransport] = None


def build_payload(
    event: str,
    pre: PreEnrollment,
    course_name: str,
    previous_status: str = None,
    payment: Payment = None,
) -> dict:
    payload = {
        "event": event,
        "timestamp": datetime.utcnow().isoformat(),
        "enrollment": {
            "id": pre.id,
            "student_name": pre.full_name,
            "student_email": pre.email,
            "student_phone": pre.phone or pre.whatsapp,
            "student_whatsapp": pre.whatsapp,
            "course_name": course_name,
            "status": pre.status,
            "previous_status": previous_status,
            "created_at": pre.created_at.isoformat() if pre.created_at else None,
            "updated_at": pre.updated_at.isoformat() if pre.updated_at else None,
        },
    }
    if payment:
        payload["payment"] = {
            "id": payment.id,
            "kind": payment.kind,
            "amount": payment.amount,
            "status": payment.status,
            "paid_at": payment.paid_at.isoformat() if payment.paid_at else None,
        }
    return payload


async def _post(url: str, payload: dict) -> httpx.Response:
    async with httpx.AsyncClient(timeout=settings.WEBHOOK_TIMEOUT_SECONDS, transport=http_transport) as client:
        return await client.post(url, json=payload, headers={"Content-Type": "application/json"})


async def send(db: AsyncSession, url: str, payload: dict, pre_enrollment_id: str = None) -> bool:
    """Envia o payload e registra a tentativa em webhook_logs"""
    log = WebhookLog(
        webhook_url=url,
        event_type=payload["event"],
        payload=payload,
        pre_enrollment_id=pre_enrollment_id,
    )
    try:
        response = await _post(url, payload)
        log.response_status = response.status_code
        log.response_body = response.text[:2000]
        log.success = response.is_success
    except httpx.HTTPError as e:
        logger.warning(f"Webhook {payload['event']} falhou ({url}): {e}")
        log.response_status = 0
        log.response_body = str(e)
        log.success = False

    db.add(log)
    if log.success:
        logger.info(f"Webhook {payload['event']} enviado para {url}")
    else:
        logger.warning(f"Webhook {payload['event']} recusado: HTTP {log.response_status}")
    return log.success


async def trigger(
    db: AsyncSession,
    pre_enrollment_id: str,
    event_type: str,
    previous_status: str = None,
    payment_id: str = None,
) -> None:
    """
    Dispara o webhook de automação se o evento estiver habilitado.
    Nunca propaga erros para quem chamou.
    """
    try:
        result = await db.execute(select(SystemSettings).limit(1))
        system = result.scalar_one_or_none()
        if not system or not system.webhook_url or event_type not in (system.webhook_events or []):
            logger.debug(f"Webhook não configurado ou evento desabilitado: {event_type}")
            return

        pre = await db.get(PreEnrollment, pre_enrollment_id)
        if not pre:
            logger.error(f"Webhook {event_type}: pré-matrícula {pre_enrollment_id} não encontrada")
            return

        course = await db.get(Course, pre.course_id)
        payment = await db.get(Payment, payment_id) if payment_id else None

        payload = build_payload(
            event_type,
            pre,
            course.name if course else "Curso desconhecido",
            previous_status=previous_status,
            payment=payment,
        )
        await send(db, system.webhook_url, payload, pre.id)
    except Exception as e:
        logger.error(f"Erro ao disparar webhook {event_type} ({pre_enrollment_id}): {e}")


async def test_webhook(url: str) -> dict:
    """Envia um evento de teste (botão "testar webhook" do painel)"""
    now = datetime.utcnow().isoformat()
    payload = {
        "event": "webhook_test",
        "timestamp": now,
        "enrollment": {
            "id": "test-id",
            "student_name": "Teste Webhook",
            "student_email": "teste@exemplo.com",
            "course_name": "Curso de Teste",
            "status": "test",
            "created_at": now,
            "updated_at": now,
        },
    }
    try:
        response = await _post(url, payload)
    except httpx.HTTPError as e:
        return {"success": False, "message": str(e) or "Erro desconhecido"}

    if response.is_success:
        return {"success": True, "message": "Webhook testado com sucesso!"}
    return {"success": False, "message": f"Erro HTTP: {response.status_code}"}
