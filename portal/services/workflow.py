"""
Portal de Matrículas - Enrollment Workflow
Máquina de estados da pré-matrícula e aprovação do órgão

Toda transição é gravada com um UPDATE condicional (WHERE status = esperado).
Se outra requisição alterou o registro no meio do caminho nenhuma linha é
afetada e a operação falha com ConcurrentUpdateError.
"""
import logging
from datetime import datetime
from enum import Enum
from typing import List, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from portal.core.exceptions import (
    ConcurrentUpdateError,
    InvalidTransitionError,
    NotFoundError,
)
from portal.models import (
    Course,
    Enrollment,
    EnrollmentPaymentStatus,
    EnrollmentStatus,
    OrganApprovalStatus,
    OrganType,
    PaymentKind,
    PreEnrollment,
    PreEnrollmentStatus,
)
from portal.services import webhooks
from portal.services.fees import resolve_fees

logger = logging.getLogger(__name__)


class WorkflowEvent(str, Enum):
    SUBMIT_WITH_FEE = "submit_with_fee"
    CHARGE_CREATED = "charge_created"
    PAYMENT_CONFIRMED = "payment_confirmed"
    STAFF_APPROVE = "staff_approve"
    STAFF_REJECT = "staff_reject"
    MANUAL_OVERRIDE = "manual_override"


S = PreEnrollmentStatus
E = WorkflowEvent

TRANSITIONS = {
    (S.PENDING, E.SUBMIT_WITH_FEE): S.PENDING_PAYMENT,
    (S.PENDING, E.CHARGE_CREATED): S.PENDING_PAYMENT,
    (S.PENDING_PAYMENT, E.CHARGE_CREATED): S.PENDING_PAYMENT,
    (S.PENDING, E.PAYMENT_CONFIRMED): S.PAYMENT_CONFIRMED,
    (S.PENDING_PAYMENT, E.PAYMENT_CONFIRMED): S.PAYMENT_CONFIRMED,
    # reentrega do webhook
    (S.PAYMENT_CONFIRMED, E.PAYMENT_CONFIRMED): S.PAYMENT_CONFIRMED,
    (S.APPROVED, E.PAYMENT_CONFIRMED): S.APPROVED,
    (S.PAYMENT_CONFIRMED, E.STAFF_APPROVE): S.APPROVED,
    (S.PENDING, E.STAFF_REJECT): S.REJECTED,
    (S.PENDING_PAYMENT, E.STAFF_REJECT): S.REJECTED,
    (S.PAYMENT_CONFIRMED, E.STAFF_REJECT): S.REJECTED,
}
# Aprovação manual (cortesia / erro de pagamento) vale a partir de qualquer status
TRANSITIONS.update({(status, E.MANUAL_OVERRIDE): S.APPROVED for status in S})

# Evento do webhook de automação disparado por cada transição
WEBHOOK_EVENTS = {
    E.PAYMENT_CONFIRMED: "payment_confirmed",
    E.STAFF_APPROVE: "enrollment_approved",
    E.MANUAL_OVERRIDE: "enrollment_approved",
}

# Status em que o aluno pode informar a aprovação do órgão
ORGAN_REPORT_STATUSES = (S.PAYMENT_CONFIRMED.value, S.APPROVED.value)


def next_status(status, event) -> PreEnrollmentStatus:
    """Próximo status; pares fora da tabela levantam InvalidTransitionError"""
    try:
        key = (PreEnrollmentStatus(status), WorkflowEvent(event))
    except ValueError:
        raise InvalidTransitionError(f"Status ou evento desconhecido: {status} / {event}")

    if key not in TRANSITIONS:
        raise InvalidTransitionError(
            f"Transição não permitida: {key[0].value} -> {key[1].value}"
        )
    return TRANSITIONS[key]


async def _guarded_update(db: AsyncSession, model, obj, expected: dict, values: dict):
    """UPDATE condicional: só grava se as colunas ainda têm os valores lidos"""
    values = dict(values)
    values["updated_at"] = datetime.utcnow()

    stmt = update(model).where(model.id == obj.id)
    for column, value in expected.items():
        stmt = stmt.where(getattr(model, column) == value)
    stmt = stmt.values(**values).execution_options(synchronize_session=False)

    result = await db.execute(stmt)
    if result.rowcount == 0:
        logger.warning(f"Atualização concorrente detectada em {model.__tablename__} {obj.id}")
        raise ConcurrentUpdateError(
            "O registro foi alterado por outra operação. Recarregue e tente novamente."
        )
    await db.refresh(obj)


async def apply_transition(
    db: AsyncSession,
    pre: PreEnrollment,
    event: WorkflowEvent,
    values: Optional[dict] = None,
    payment_id: Optional[str] = None,
) -> str:
    """
    Aplica um evento à pré-matrícula e retorna o status anterior.

    Reentregas que não mudam o status (e sem campos extras) não gravam nada.
    """
    previous = pre.status
    new = next_status(previous, event)
    values = dict(values or {})

    if new.value != previous:
        values["status"] = new.value
    if not values:
        logger.info(f"Pré-matrícula {pre.id}: {event.value} sem efeito (já em {previous})")
        return previous

    await _guarded_update(db, PreEnrollment, pre, {"status": previous}, values)
    logger.info(f"Pré-matrícula {pre.id}: {previous} -> {pre.status} ({event.value})")

    if pre.status != previous:
        await webhooks.trigger(
            db,
            pre.id,
            WEBHOOK_EVENTS.get(event, "status_changed"),
            previous_status=previous,
            payment_id=payment_id,
        )
    return previous


# ============================================
# PRÉ-MATRÍCULA
# ============================================

async def get_pre_enrollment(db: AsyncSession, pre_enrollment_id: str) -> PreEnrollment:
    pre = await db.get(PreEnrollment, pre_enrollment_id)
    if not pre:
        raise NotFoundError("Pré-matrícula não encontrada")
    return pre


async def get_course(db: AsyncSession, course_id: str) -> Course:
    course = await db.get(Course, course_id)
    if not course:
        raise NotFoundError("Curso não encontrado")
    return course


async def submit_pre_enrollment(db: AsyncSession, data: dict) -> PreEnrollment:
    """
    Registra a pré-matrícula.

    A duração do curso precisa estar na tabela de taxas. Com taxa de
    pré-matrícula maior que zero o registro já nasce aguardando pagamento.
    """
    course = await get_course(db, data["course_id"])
    if not course.published:
        raise NotFoundError("Curso não encontrado")

    fees = resolve_fees(course.duration_days, strict=True)

    custom_hours = course.duration_hours
    if data.get("organ_type_id"):
        organ_type = await db.get(OrganType, data["organ_type_id"])
        if not organ_type:
            raise NotFoundError("Tipo de órgão não encontrado")
        custom_hours = organ_type.effective_hours(course.duration_hours)

    pre = PreEnrollment(
        **data,
        custom_hours=custom_hours,
        status=S.PENDING.value,
        organ_approval_status=OrganApprovalStatus.PENDING.value,
    )
    db.add(pre)
    await db.flush()
    logger.info(f"Pré-matrícula criada: {pre.id} (curso {course.slug})")

    await webhooks.trigger(db, pre.id, "enrollment_created")

    if fees.pre_enrollment_fee > 0:
        await apply_transition(db, pre, E.SUBMIT_WITH_FEE)
    return pre


async def confirm_payment(db: AsyncSession, pre: PreEnrollment, payment_id: str = None) -> str:
    """Pagamento da pré-matrícula confirmado (webhook do gateway)"""
    return await apply_transition(db, pre, E.PAYMENT_CONFIRMED, payment_id=payment_id)


async def confirm_payment_manually(db: AsyncSession, pre: PreEnrollment, course: Course) -> List[str]:
    """
    Confirmação de pagamento feita pela equipe.
    Cria também o registro de pagamento para o desconto da matrícula.
    """
    from portal.services.payments import ensure_manual_payment_record

    await apply_transition(db, pre, E.PAYMENT_CONFIRMED)
    warning = await ensure_manual_payment_record(
        db, pre, PaymentKind.PRE_ENROLLMENT.value, course.pre_enrollment_fee
    )
    return [warning] if warning else []


async def approve(db: AsyncSession, pre: PreEnrollment, staff_id: str, notes: str = None) -> str:
    values = {"approved_at": datetime.utcnow(), "approved_by": staff_id}
    if notes:
        values["admin_notes"] = notes
    return await apply_transition(db, pre, E.STAFF_APPROVE, values)


async def reject(db: AsyncSession, pre: PreEnrollment, staff_id: str, notes: str = None) -> str:
    values = {}
    if notes:
        values["admin_notes"] = notes
    return await apply_transition(db, pre, E.STAFF_REJECT, values)


async def manual_override(
    db: AsyncSession,
    pre: PreEnrollment,
    course: Course,
    staff_id: str,
    notes: str = None,
) -> List[str]:
    """
    Aprovação manual (cortesia ou erro de pagamento).
    Única saída do status rejeitado.
    """
    from portal.services.payments import ensure_manual_payment_record

    values = {
        "manual_approval": True,
        "approved_at": datetime.utcnow(),
        "approved_by": staff_id,
    }
    if notes:
        values["admin_notes"] = notes
    await apply_transition(db, pre, E.MANUAL_OVERRIDE, values)

    warning = await ensure_manual_payment_record(
        db, pre, PaymentKind.PRE_ENROLLMENT.value, course.pre_enrollment_fee
    )
    return [warning] if warning else []


# ============================================
# APROVAÇÃO DO ÓRGÃO
# ============================================

async def report_organ_approval(db: AsyncSession, pre: PreEnrollment, notes: str = None):
    """Aluno informa que o órgão aprovou a licença"""
    if pre.status not in ORGAN_REPORT_STATUSES:
        raise InvalidTransitionError(
            "A aprovação do órgão só pode ser informada após a confirmação do pagamento"
        )
    if pre.organ_approval_status != OrganApprovalStatus.PENDING.value:
        raise InvalidTransitionError(
            f"Aprovação do órgão já está como {pre.organ_approval_status}"
        )

    values = {
        "organ_approval_status": OrganApprovalStatus.APPROVED.value,
        "organ_approval_date": datetime.utcnow(),
    }
    if notes:
        values["organ_approval_notes"] = notes

    await _guarded_update(
        db, PreEnrollment, pre,
        {"status": pre.status, "organ_approval_status": OrganApprovalStatus.PENDING.value},
        values,
    )
    logger.info(f"Pré-matrícula {pre.id}: aprovação do órgão informada pelo aluno")


async def confirm_organ_approval(db: AsyncSession, pre: PreEnrollment):
    """Aluno confirma a aprovação (libera a matrícula)"""
    if pre.organ_approval_status != OrganApprovalStatus.APPROVED.value:
        raise InvalidTransitionError("O órgão ainda não aprovou esta pré-matrícula")
    if pre.organ_approval_confirmed:
        return

    await _guarded_update(
        db, PreEnrollment, pre,
        {"organ_approval_status": OrganApprovalStatus.APPROVED.value, "organ_approval_confirmed": False},
        {"organ_approval_confirmed": True},
    )
    logger.info(f"Pré-matrícula {pre.id}: aprovação do órgão confirmada")


async def set_organ_approval(
    db: AsyncSession,
    pre: PreEnrollment,
    new_status: str,
    staff_id: str,
    notes: str = None,
    override: bool = False,
) -> str:
    """
    Equipe registra a decisão do órgão.

    Aprovação do órgão com pagamento confirmado também aprova a
    pré-matrícula. Só a aprovação manual (override) altera uma decisão já
    registrada.
    """
    new_status = OrganApprovalStatus(new_status)
    if new_status == OrganApprovalStatus.PENDING and not override:
        raise InvalidTransitionError("Informe aprovado ou rejeitado")

    current = pre.organ_approval_status
    if current != OrganApprovalStatus.PENDING.value and not override:
        raise InvalidTransitionError(
            f"Aprovação do órgão já está como {current}; use a aprovação manual para alterar"
        )

    values = {
        "organ_approval_status": new_status.value,
        "organ_approval_date": datetime.utcnow(),
        "organ_approval_confirmed": False,
    }
    if notes:
        values["organ_approval_notes"] = notes

    event = None
    if new_status == OrganApprovalStatus.APPROVED:
        values.pop("organ_approval_confirmed")
        if pre.status == S.PAYMENT_CONFIRMED.value:
            event = E.STAFF_APPROVE
            values["status"] = next_status(pre.status, event).value
            values["approved_at"] = datetime.utcnow()
            values["approved_by"] = staff_id

    previous = pre.status
    await _guarded_update(
        db, PreEnrollment, pre,
        {"status": previous, "organ_approval_status": current},
        values,
    )
    logger.info(f"Pré-matrícula {pre.id}: órgão {current} -> {new_status.value}")

    if event and pre.status != previous:
        await webhooks.trigger(db, pre.id, WEBHOOK_EVENTS[event], previous_status=previous)
    return previous


# ============================================
# MATRÍCULA
# ============================================

async def get_or_create_enrollment(db: AsyncSession, pre: PreEnrollment) -> Enrollment:
    """A matrícula só é liberada após a confirmação da aprovação do órgão"""
    if not pre.organ_approval_confirmed:
        raise InvalidTransitionError("A aprovação do órgão ainda não foi confirmada")
    if pre.status not in ORGAN_REPORT_STATUSES:
        raise InvalidTransitionError(f"Pré-matrícula com status {pre.status} não pode ser matriculada")

    result = await db.execute(
        select(Enrollment)
        .where(
            Enrollment.pre_enrollment_id == pre.id,
            Enrollment.status != EnrollmentStatus.CANCELLED.value,
        )
        .order_by(Enrollment.created_at.desc())
        .limit(1)
    )
    enrollment = result.scalar_one_or_none()
    if enrollment:
        return enrollment

    enrollment = Enrollment(
        user_id=pre.user_id,
        course_id=pre.course_id,
        pre_enrollment_id=pre.id,
        status=EnrollmentStatus.AWAITING_PAYMENT.value,
        payment_status=EnrollmentPaymentStatus.PENDING.value,
    )
    db.add(enrollment)
    await db.flush()
    logger.info(f"Matrícula criada: {enrollment.id} (pré-matrícula {pre.id})")
    return enrollment


async def activate_enrollment(db: AsyncSession, enrollment: Enrollment) -> bool:
    """Pagamento da matrícula recebido; retorna False se já estava ativa"""
    if enrollment.status == EnrollmentStatus.ACTIVE.value:
        return False
    if enrollment.status != EnrollmentStatus.AWAITING_PAYMENT.value:
        raise InvalidTransitionError(f"Matrícula com status {enrollment.status} não pode ser ativada")

    await _guarded_update(
        db, Enrollment, enrollment,
        {"status": EnrollmentStatus.AWAITING_PAYMENT.value},
        {
            "status": EnrollmentStatus.ACTIVE.value,
            "payment_status": EnrollmentPaymentStatus.PAID.value,
            "enrollment_date": datetime.utcnow(),
        },
    )
    logger.info(f"Matrícula {enrollment.id} ativada")
    return True
