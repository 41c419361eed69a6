"""
Portal de Matrículas - Pre-Enrollments API
Formulário público, ações do aluno e decisões da equipe
"""
from typing import Optional
from fastapi import APIRouter, Depends, Request, status, Query
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, or_

from portal.database import get_db
from portal.models import AdminUser, PreEnrollment
from portal.schemas import (
    PreEnrollmentCreate,
    StudentRequest,
    OrganApprovalReport,
    StaffActionRequest,
    OrganApprovalDecision
)
from portal.api.auth import get_current_admin, get_optional_admin, ensure_student_access
from portal.api.limiter import limiter
from portal.services import workflow
from portal.services.fees import resolve_fees

router = APIRouter(prefix="/pre-enrollments", tags=["Pre-Enrollments"])


def _response(pre: PreEnrollment, previous_status: str = None, warnings: list = None) -> dict:
    return {
        "pre_enrollment": pre.to_dict(),
        "previous_status": previous_status,
        "warnings": warnings or [],
    }


@router.post("", status_code=status.HTTP_201_CREATED)
@limiter.limit("10/minute")
async def submit(
    request: Request,
    data: PreEnrollmentCreate,
    db: AsyncSession = Depends(get_db)
):
    """Envio do formulário de pré-matrícula"""
    pre = await workflow.submit_pre_enrollment(db, data.model_dump())
    course = await workflow.get_course(db, pre.course_id)
    await db.commit()
    await db.refresh(pre)
    return {
        "pre_enrollment": pre.to_dict(),
        "fees": resolve_fees(course.duration_days).model_dump(),
    }


@router.get("")
async def list_pre_enrollments(
    status_filter: Optional[str] = Query(None, alias="status"),
    course_id: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
    admin: AdminUser = Depends(get_current_admin)
):
    """Lista de pré-matrículas (equipe)"""
    query = select(PreEnrollment)

    if status_filter:
        query = query.where(PreEnrollment.status == status_filter)
    if course_id:
        query = query.where(PreEnrollment.course_id == course_id)
    if search:
        query = query.where(
            or_(
                PreEnrollment.full_name.ilike(f"%{search}%"),
                PreEnrollment.email.ilike(f"%{search}%"),
                PreEnrollment.cpf.ilike(f"%{search}%")
            )
        )

    query = query.order_by(PreEnrollment.created_at.desc()).offset(skip).limit(limit)
    result = await db.execute(query)
    return [pre.to_dict() for pre in result.scalars().all()]


@router.get("/{pre_enrollment_id}")
async def get_pre_enrollment(
    pre_enrollment_id: str,
    cpf: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
    admin: Optional[AdminUser] = Depends(get_optional_admin)
):
    pre = await workflow.get_pre_enrollment(db, pre_enrollment_id)
    ensure_student_access(pre, cpf, admin)
    return pre.to_dict()


# ============================================
# APROVAÇÃO DO ÓRGÃO (ALUNO)
# ============================================

@router.post("/{pre_enrollment_id}/organ-approval/report")
async def report_organ_approval(
    pre_enrollment_id: str,
    request: OrganApprovalReport,
    db: AsyncSession = Depends(get_db)
):
    """Aluno informa que o órgão aprovou"""
    pre = await workflow.get_pre_enrollment(db, pre_enrollment_id)
    ensure_student_access(pre, request.cpf, None)
    await workflow.report_organ_approval(db, pre, request.notes)
    await db.commit()
    return _response(pre)


@router.post("/{pre_enrollment_id}/organ-approval/confirm")
async def confirm_organ_approval(
    pre_enrollment_id: str,
    request: StudentRequest,
    db: AsyncSession = Depends(get_db)
):
    """Aluno confirma a aprovação e libera a matrícula"""
    pre = await workflow.get_pre_enrollment(db, pre_enrollment_id)
    ensure_student_access(pre, request.cpf, None)
    await workflow.confirm_organ_approval(db, pre)
    await db.commit()
    return _response(pre)


# ============================================
# EQUIPE
# ============================================

@router.post("/{pre_enrollment_id}/approve")
async def approve(
    pre_enrollment_id: str,
    request: StaffActionRequest,
    db: AsyncSession = Depends(get_db),
    admin: AdminUser = Depends(get_current_admin)
):
    pre = await workflow.get_pre_enrollment(db, pre_enrollment_id)
    previous = await workflow.approve(db, pre, admin.id, request.notes)
    await db.commit()
    return _response(pre, previous)


@router.post("/{pre_enrollment_id}/reject")
async def reject(
    pre_enrollment_id: str,
    request: StaffActionRequest,
    db: AsyncSession = Depends(get_db),
    admin: AdminUser = Depends(get_current_admin)
):
    pre = await workflow.get_pre_enrollment(db, pre_enrollment_id)
    previous = await workflow.reject(db, pre, admin.id, request.notes)
    await db.commit()
    return _response(pre, previous)


@router.post("/{pre_enrollment_id}/confirm-payment")
async def confirm_payment(
    pre_enrollment_id: str,
    db: AsyncSession = Depends(get_db),
    admin: AdminUser = Depends(get_current_admin)
):
    """Confirmação manual do pagamento da pré-matrícula"""
    pre = await workflow.get_pre_enrollment(db, pre_enrollment_id)
    course = await workflow.get_course(db, pre.course_id)
    previous = pre.status
    warnings = await workflow.confirm_payment_manually(db, pre, course)
    await db.commit()
    return _response(pre, previous, warnings)


@router.post("/{pre_enrollment_id}/manual-approval")
async def manual_approval(
    pre_enrollment_id: str,
    request: StaffActionRequest,
    db: AsyncSession = Depends(get_db),
    admin: AdminUser = Depends(get_current_admin)
):
    """Aprovação manual (cortesia ou erro de pagamento)"""
    pre = await workflow.get_pre_enrollment(db, pre_enrollment_id)
    course = await workflow.get_course(db, pre.course_id)
    previous = pre.status
    warnings = await workflow.manual_override(db, pre, course, admin.id, request.notes)
    await db.commit()
    return _response(pre, previous, warnings)


@router.post("/{pre_enrollment_id}/organ-approval")
async def set_organ_approval(
    pre_enrollment_id: str,
    request: OrganApprovalDecision,
    db: AsyncSession = Depends(get_db),
    admin: AdminUser = Depends(get_current_admin)
):
    """Equipe registra a decisão do órgão"""
    pre = await workflow.get_pre_enrollment(db, pre_enrollment_id)
    previous = await workflow.set_organ_approval(
        db, pre, request.status, admin.id, request.notes, override=request.override
    )
    await db.commit()
    return _response(pre, previous)
