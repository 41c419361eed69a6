"""
Portal de Matrículas - Certificates
Emissão, liberação e verificação pública de certificados
"""
import json
import logging
import secrets
import string
import time
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from portal.core.config import settings
from portal.core.exceptions import CertificateNotEligibleError, NotFoundError
from portal.models import (
    Certificate,
    CertificateStatus,
    Course,
    Enrollment,
    EnrollmentStatus,
    PreEnrollment,
)

logger = logging.getLogger(__name__)

BASE36_ALPHABET = string.digits + string.ascii_uppercase
MAX_CODE_ATTEMPTS = 10


def _to_base36(number: int) -> str:
    if number == 0:
        return "0"
    digits = []
    while number:
        number, remainder = divmod(number, 36)
        digits.append(BASE36_ALPHABET[remainder])
    return "".join(reversed(digits))


def generate_certificate_code() -> str:
    """CERT-<timestamp base36>-<6 aleatórios>, em maiúsculas"""
    timestamp = _to_base36(int(time.time() * 1000))
    random_part = "".join(secrets.choice(BASE36_ALPHABET) for _ in range(6))
    return f"CERT-{timestamp}-{random_part}"


def verification_url(code: str) -> str:
    return f"{settings.PUBLIC_APP_URL.rstrip('/')}/verify-certificate/{code}"


async def _active_enrollment(db: AsyncSession, pre_enrollment_id: str) -> Optional[Enrollment]:
    result = await db.execute(
        select(Enrollment)
        .where(
            Enrollment.pre_enrollment_id == pre_enrollment_id,
            Enrollment.status == EnrollmentStatus.ACTIVE.value,
        )
        .order_by(Enrollment.enrollment_date.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def check_certificate_availability(db: AsyncSession, pre: PreEnrollment, now: datetime = None) -> dict:
    """
    O certificado é liberado no dia seguinte ao fim do curso
    (data da matrícula + duração em dias + 1).
    """
    now = now or datetime.utcnow()
    if not pre.organ_approval_confirmed:
        return {"available": False, "reason": "Aprovação do órgão não confirmada", "available_from": None}

    enrollment = await _active_enrollment(db, pre.id)
    if not enrollment or not enrollment.enrollment_date:
        return {"available": False, "reason": "Matrícula não está ativa", "available_from": None}

    course = await db.get(Course, enrollment.course_id)
    duration_days = course.duration_days if course else 0
    available_from = enrollment.enrollment_date + timedelta(days=(duration_days or 0) + 1)

    if now < available_from:
        return {
            "available": False,
            "reason": "Curso ainda em andamento",
            "available_from": available_from.isoformat(),
        }
    return {"available": True, "reason": None, "available_from": available_from.isoformat()}


async def _code_in_use(db: AsyncSession, code: str) -> bool:
    result = await db.execute(select(Certificate.id).where(Certificate.certificate_code == code))
    return result.scalar_one_or_none() is not None


async def _unused_code(db: AsyncSession) -> str:
    for _ in range(MAX_CODE_ATTEMPTS):
        code = generate_certificate_code()
        if not await _code_in_use(db, code):
            return code
        logger.warning(f"Código de certificado repetido ({code}), gerando outro")
    raise RuntimeError("Não foi possível gerar um código de certificado único")


async def issue_certificate(db: AsyncSession, pre: PreEnrollment, by_staff: bool = False) -> Certificate:
    """
    Emite o certificado da pré-matrícula.

    A equipe pode emitir a qualquer momento; o aluno só após a liberação.
    Se já existir certificado ativo ele é retornado.
    """
    result = await db.execute(
        select(Certificate).where(
            Certificate.pre_enrollment_id == pre.id,
            Certificate.status == CertificateStatus.ACTIVE.value,
        )
    )
    existing = result.scalar_one_or_none()
    if existing:
        return existing

    if not by_staff:
        availability = await check_certificate_availability(db, pre)
        if not availability["available"]:
            raise CertificateNotEligibleError(availability["reason"])

    course = await db.get(Course, pre.course_id)
    if not course:
        raise NotFoundError("Curso não encontrado")

    enrollment = await _active_enrollment(db, pre.id)
    if enrollment and enrollment.enrollment_date:
        completion = enrollment.end_date(course.duration_days) or datetime.utcnow()
    else:
        completion = datetime.utcnow()

    code = await _unused_code(db)
    url = verification_url(code)
    certificate = Certificate(
        certificate_code=code,
        enrollment_id=enrollment.id if enrollment else None,
        pre_enrollment_id=pre.id,
        student_name=pre.full_name,
        student_cpf=pre.cpf,
        course_name=course.name,
        course_hours=pre.custom_hours or course.duration_hours,
        completion_date=completion.date(),
        status=CertificateStatus.ACTIVE.value,
        verification_url=url,
        qr_code_data=json.dumps({
            "code": code,
            "url": url,
            "student": pre.full_name,
            "course": course.name,
            "date": completion.date().isoformat(),
        }),
    )
    db.add(certificate)
    await db.flush()
    logger.info(f"Certificado {code} emitido para pré-matrícula {pre.id}")
    return certificate


async def verify_certificate(db: AsyncSession, code: Optional[str]) -> dict:
    """Consulta pública; código vazio ou inexistente retorna found=False"""
    code = (code or "").strip().upper()
    if not code:
        return {"found": False, "certificate": None}

    result = await db.execute(
        select(Certificate).where(
            Certificate.certificate_code == code,
            Certificate.status == CertificateStatus.ACTIVE.value,
        )
    )
    certificate = result.scalar_one_or_none()
    if not certificate:
        return {"found": False, "certificate": None}
    return {"found": True, "certificate": certificate.to_dict()}


async def deactivate_certificate(db: AsyncSession, code: str) -> Certificate:
    result = await db.execute(select(Certificate).where(Certificate.certificate_code == code))
    certificate = result.scalar_one_or_none()
    if not certificate:
        raise NotFoundError("Certificado não encontrado")

    certificate.status = CertificateStatus.INACTIVE.value
    await db.flush()
    logger.info(f"Certificado {code} desativado")
    return certificate
