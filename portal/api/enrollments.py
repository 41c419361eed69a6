"""
Portal de Matrículas - Enrollments API
Checkout da matrícula (com desconto da pré-matrícula) e consulta
"""
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.ext.asyncio import AsyncSession

from portal.database import get_db
from portal.models import AdminUser, Course, Enrollment, PaymentKind, PreEnrollment
from portal.schemas import CheckoutRequest, PaymentResponse
from portal.api.auth import get_optional_admin, ensure_student_access
from portal.api.payments import get_payment_gateway
from portal.services import payments, workflow

router = APIRouter(prefix="/enrollments", tags=["Enrollments"])


@router.post("/checkout", response_model=PaymentResponse)
async def checkout(
    request: CheckoutRequest,
    db: AsyncSession = Depends(get_db),
    gateway=Depends(get_payment_gateway)
):
    """
    Cobrança da matrícula: taxa do curso menos o que já foi pago na
    pré-matrícula (mínimo R$ 5,00).
    """
    pre = await workflow.get_pre_enrollment(db, request.pre_enrollment_id)
    ensure_student_access(pre, request.cpf, None)

    enrollment = await workflow.get_or_create_enrollment(db, pre)
    result = await payments.checkout(
        db, pre, PaymentKind.ENROLLMENT.value, enrollment=enrollment, gateway=gateway
    )
    await db.commit()
    return result


@router.get("/{enrollment_id}")
async def get_enrollment(
    enrollment_id: str,
    cpf: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
    admin: Optional[AdminUser] = Depends(get_optional_admin)
):
    enrollment = await db.get(Enrollment, enrollment_id)
    if not enrollment:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Matrícula não encontrada"
        )

    pre = await db.get(PreEnrollment, enrollment.pre_enrollment_id)
    ensure_student_access(pre, cpf, admin)

    course = await db.get(Course, enrollment.course_id)
    return enrollment.to_dict(duration_days=course.duration_days if course else None)
