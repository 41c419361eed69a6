"""
Portal de Matrículas - Certificates API
Emissão e verificação pública de certificados
"""
from typing import Optional
from fastapi import APIRouter, Depends, Request, Query
from sqlalchemy.ext.asyncio import AsyncSession

from portal.database import get_db
from portal.models import AdminUser
from portal.schemas import CertificateIssueRequest
from portal.api.auth import get_current_admin, get_optional_admin, ensure_student_access
from portal.api.limiter import limiter
from portal.services import certificates, workflow

router = APIRouter(prefix="/certificates", tags=["Certificates"])


@router.get("/verify")
@limiter.limit("30/minute")
async def verify_by_query(
    request: Request,
    code: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db)
):
    """Verificação pública (?code=)"""
    return await certificates.verify_certificate(db, code)


@router.get("/verify/{code}")
@limiter.limit("30/minute")
async def verify(request: Request, code: str, db: AsyncSession = Depends(get_db)):
    """Verificação pública pelo código"""
    return await certificates.verify_certificate(db, code)


@router.get("/availability/{pre_enrollment_id}")
async def availability(
    pre_enrollment_id: str,
    cpf: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
    admin: Optional[AdminUser] = Depends(get_optional_admin)
):
    pre = await workflow.get_pre_enrollment(db, pre_enrollment_id)
    ensure_student_access(pre, cpf, admin)
    return await certificates.check_certificate_availability(db, pre)


@router.post("")
async def issue(
    request: CertificateIssueRequest,
    db: AsyncSession = Depends(get_db),
    admin: Optional[AdminUser] = Depends(get_optional_admin)
):
    """Emite o certificado (aluno após a liberação, equipe a qualquer momento)"""
    pre = await workflow.get_pre_enrollment(db, request.pre_enrollment_id)
    ensure_student_access(pre, request.cpf, admin)

    certificate = await certificates.issue_certificate(db, pre, by_staff=admin is not None)
    await db.commit()
    return certificate.to_dict()


@router.post("/{code}/deactivate")
async def deactivate(
    code: str,
    db: AsyncSession = Depends(get_db),
    admin: AdminUser = Depends(get_current_admin)
):
    certificate = await certificates.deactivate_certificate(db, code)
    await db.commit()
    return certificate.to_dict()
