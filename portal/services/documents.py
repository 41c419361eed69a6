"""
Portal de Matrículas - Documents
Monta as variáveis de cada pré-matrícula e gera os PDFs a partir dos modelos
"""
import logging
from datetime import date, datetime, timedelta
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from portal.core.exceptions import CertificateNotEligibleError, NotFoundError
from portal.models import (
    Certificate,
    CertificateStatus,
    Course,
    DocumentTemplate,
    DocumentType,
    Enrollment,
    OrganType,
    PaymentKind,
    PreEnrollment,
    SystemSettings,
)
from portal.services.payments import compute_discounted_checkout, sum_confirmed_payments
from portal.utils.document_renderer import DEFAULT_MARGINS, MOCK_MODULES, render_document, resolve_modules
from portal.utils.document_templates import default_blocks

logger = logging.getLogger(__name__)

MONTHS = (
    "janeiro", "fevereiro", "março", "abril", "maio", "junho",
    "julho", "agosto", "setembro", "outubro", "novembro", "dezembro",
)

FEDERAL_WEEKLY_HOURS = 20
DEFAULT_WEEKLY_HOURS = 30

MOCK_PREVIEW_DATA = {
    "student_name": "MARIA SILVA SANTOS",
    "student_cpf": "123.456.789-00",
    "organization": "Prefeitura Municipal de São Paulo",
    "course_name": "Gestão Pública Municipal",
    "course_hours": 390,
    "effective_hours": 195,
    "duration_days": 90,
    "start_date": "01/02/2025",
    "end_date": "01/05/2025",
    "current_date": "São Paulo, 14 de janeiro de 2025.",
    "enrollment_fee": "679,00",
    "pre_enrollment_credit": "57,00",
    "final_amount": "622,00",
    "pix_key": "12.345.678/0001-90",
    "pix_holder_name": "JMR Empreendimentos Digitais",
    "certificate_code": "CERT-2025-ABC123",
    "completion_date": "01/05/2025",
    "verification_url": "https://exemplo.com/verify-certificate/CERT-2025-ABC123",
    "course_content": (
        "O curso de Gestão Pública Municipal aborda os fundamentos da administração pública, "
        "incluindo planejamento estratégico, gestão de recursos humanos, finanças públicas, "
        "licitações e contratos administrativos."
    ),
    "modules": MOCK_MODULES,
    "weekly_hours": DEFAULT_WEEKLY_HOURS,
}


def format_brl(value: float) -> str:
    """1234.5 -> '1.234,50'"""
    text = f"{value or 0:,.2f}"
    return text.replace(",", "_").replace(".", ",").replace("_", ".")


def format_cpf(cpf: str) -> str:
    digits = "".join(ch for ch in (cpf or "") if ch.isdigit())
    if len(digits) != 11:
        return cpf or ""
    return f"{digits[:3]}.{digits[3:6]}.{digits[6:9]}-{digits[9:]}"


def format_date(value) -> str:
    if not value:
        return ""
    return value.strftime("%d/%m/%Y")


def date_in_words(city: str, today: date = None) -> str:
    today = today or date.today()
    text = f"{today.day} de {MONTHS[today.month - 1]} de {today.year}."
    return f"{city}, {text}" if city else text


async def _system_settings(db: AsyncSession) -> dict:
    result = await db.execute(select(SystemSettings).limit(1))
    system = result.scalar_one_or_none()
    return system.to_dict() if system else {}


async def _latest_enrollment(db: AsyncSession, pre_enrollment_id: str) -> Optional[Enrollment]:
    result = await db.execute(
        select(Enrollment)
        .where(Enrollment.pre_enrollment_id == pre_enrollment_id)
        .order_by(Enrollment.created_at.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def _active_certificate(db: AsyncSession, pre_enrollment_id: str) -> Optional[Certificate]:
    result = await db.execute(
        select(Certificate).where(
            Certificate.pre_enrollment_id == pre_enrollment_id,
            Certificate.status == CertificateStatus.ACTIVE.value,
        )
    )
    return result.scalar_one_or_none()


def _course_period(pre: PreEnrollment, course: Course, enrollment: Optional[Enrollment]):
    """Início/fim: datas da licença, senão a matrícula, senão hoje + duração"""
    duration = pre.license_duration or course.duration_days or 0
    if pre.license_start_date:
        start = pre.license_start_date
        end = pre.license_end_date or start + timedelta(days=duration)
    elif enrollment and enrollment.enrollment_date:
        start = enrollment.enrollment_date.date()
        end = start + timedelta(days=course.duration_days or 0)
    else:
        start = date.today()
        end = start + timedelta(days=duration)
    return start, end


async def build_document_data(db: AsyncSession, pre: PreEnrollment, course: Course, system: dict) -> dict:
    """Variáveis disponíveis para os blocos ({{student_name}}, {{final_amount}} ...)"""
    organ_type = await db.get(OrganType, pre.organ_type_id) if pre.organ_type_id else None
    enrollment = await _latest_enrollment(db, pre.id)
    certificate = await _active_certificate(db, pre.id)

    base_hours = course.duration_hours or 0
    effective_hours = pre.custom_hours or base_hours
    start, end = _course_period(pre, course, enrollment)

    paid = await sum_confirmed_payments(db, pre.id, PaymentKind.PRE_ENROLLMENT.value)
    credit = paid or (course.pre_enrollment_fee or 0)
    enrollment_fee = course.enrollment_fee or 0

    modules = resolve_modules(course.modules or "[]", effective_hours, base_hours)

    data = {
        "student_name": (pre.full_name or "").upper(),
        "student_cpf": format_cpf(pre.cpf),
        "organization": pre.organization or "",
        "course_name": course.name,
        "course_hours": base_hours,
        "effective_hours": effective_hours,
        "duration_days": pre.license_duration or course.duration_days,
        "start_date": format_date(start),
        "end_date": format_date(end),
        "current_date": date_in_words(system.get("institution_city") or ""),
        "enrollment_fee": format_brl(enrollment_fee),
        "pre_enrollment_credit": format_brl(credit),
        "final_amount": format_brl(compute_discounted_checkout(enrollment_fee, credit)),
        "pix_key": system.get("pix_key") or "",
        "pix_holder_name": system.get("pix_holder_name") or "",
        "course_content": course.description or "",
        "modules": modules,
        "weekly_hours": FEDERAL_WEEKLY_HOURS if organ_type and organ_type.is_federal else DEFAULT_WEEKLY_HOURS,
    }
    if certificate:
        data.update({
            "certificate_code": certificate.certificate_code,
            "completion_date": format_date(certificate.completion_date),
            "verification_url": certificate.verification_url,
        })
    return data


async def get_template(db: AsyncSession, document_type: str) -> dict:
    """
    Modelo ativo marcado como padrão; senão qualquer ativo do tipo;
    senão os blocos padrão embutidos.
    """
    result = await db.execute(
        select(DocumentTemplate)
        .where(DocumentTemplate.type == document_type, DocumentTemplate.is_active.is_(True))
        .order_by(DocumentTemplate.is_default.desc(), DocumentTemplate.updated_at.desc())
        .limit(1)
    )
    template = result.scalar_one_or_none()
    if template and template.content_blocks:
        return template.to_dict()

    logger.debug(f"Nenhum modelo ativo para {document_type}, usando padrão")
    return {
        "type": document_type,
        "page_orientation": "portrait",
        "page_format": "a4",
        "margins": dict(DEFAULT_MARGINS),
        "content_blocks": default_blocks(document_type),
    }


def render_template(template: dict, data: dict, system: dict) -> bytes:
    return render_document(
        template.get("content_blocks") or [],
        data,
        system,
        margins=template.get("margins") or None,
        orientation=template.get("page_orientation") or "portrait",
        page_format=template.get("page_format") or "a4",
    )


async def build_document(db: AsyncSession, pre_enrollment_id: str, document_type: str) -> bytes:
    """Gera o PDF do tipo pedido para a pré-matrícula"""
    if document_type not in {t.value for t in DocumentType}:
        raise NotFoundError(f"Tipo de documento inválido: {document_type}")

    pre = await db.get(PreEnrollment, pre_enrollment_id)
    if not pre:
        raise NotFoundError("Pré-matrícula não encontrada")
    course = await db.get(Course, pre.course_id)
    if not course:
        raise NotFoundError("Curso não encontrado")

    system = await _system_settings(db)
    data = await build_document_data(db, pre, course, system)
    if document_type == DocumentType.CERTIFICATE.value and "certificate_code" not in data:
        raise CertificateNotEligibleError("Certificado ainda não emitido para esta pré-matrícula")

    template = await get_template(db, document_type)
    pdf_bytes = render_template(template, data, system)
    logger.info(f"Documento {document_type} gerado para pré-matrícula {pre.id}")
    return pdf_bytes


async def preview_template(db: AsyncSession, template: dict) -> bytes:
    """Pré-visualização do modelo com dados de exemplo"""
    system = await _system_settings(db)
    return render_template(template, dict(MOCK_PREVIEW_DATA), system)
