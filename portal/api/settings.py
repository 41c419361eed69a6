"""
Portal de Matrículas - Settings API
Dados da instituição, webhook de automação e credenciais do Asaas
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from portal.database import get_db, ensure_settings_rows
from portal.models import AdminUser, PaymentSettings, SystemSettings, WebhookLog
from portal.schemas import SystemSettingsUpdate, PaymentSettingsUpdate, WebhookTestRequest
from portal.api.auth import get_current_admin
from portal.services import webhooks

router = APIRouter(prefix="/settings", tags=["Settings"])


async def _single_row(db: AsyncSession, model):
    result = await db.execute(select(model).limit(1))
    row = result.scalar_one_or_none()
    if row is None:
        await ensure_settings_rows(db)
        result = await db.execute(select(model).limit(1))
        row = result.scalar_one()
    return row


@router.get("/system")
async def get_system_settings(
    db: AsyncSession = Depends(get_db),
    admin: AdminUser = Depends(get_current_admin)
):
    return (await _single_row(db, SystemSettings)).to_dict()


@router.put("/system")
async def update_system_settings(
    request: SystemSettingsUpdate,
    db: AsyncSession = Depends(get_db),
    admin: AdminUser = Depends(get_current_admin)
):
    system = await _single_row(db, SystemSettings)
    for field, value in request.model_dump(exclude_unset=True).items():
        setattr(system, field, value)

    await db.commit()
    await db.refresh(system)
    return system.to_dict()


@router.get("/payment")
async def get_payment_settings(
    db: AsyncSession = Depends(get_db),
    admin: AdminUser = Depends(get_current_admin)
):
    return (await _single_row(db, PaymentSettings)).to_dict()


@router.put("/payment")
async def update_payment_settings(
    request: PaymentSettingsUpdate,
    db: AsyncSession = Depends(get_db),
    admin: AdminUser = Depends(get_current_admin)
):
    """Chaves vazias não sobrescrevem as existentes"""
    payment_settings = await _single_row(db, PaymentSettings)
    for field, value in request.model_dump(exclude_unset=True).items():
        if value is None or value == "":
            continue
        setattr(payment_settings, field, value)

    await db.commit()
    await db.refresh(payment_settings)
    return payment_settings.to_dict()


@router.post("/webhook/test")
async def test_webhook(
    request: WebhookTestRequest,
    admin: AdminUser = Depends(get_current_admin)
):
    return await webhooks.test_webhook(request.url)


@router.get("/webhook/logs")
async def list_webhook_logs(
    limit: int = Query(50, ge=1, le=200),
    db: AsyncSession = Depends(get_db),
    admin: AdminUser = Depends(get_current_admin)
):
    """Últimos disparos do webhook de automação"""
    result = await db.execute(
        select(WebhookLog).order_by(WebhookLog.created_at.desc()).limit(limit)
    )
    return [log.to_dict() for log in result.scalars().all()]
