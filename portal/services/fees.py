"""
Portal de Matrículas - Fee Schedule
Tabela de taxas por duração do curso (em dias)
"""
from pydantic import BaseModel

from portal.core.config import settings
from portal.core.exceptions import FeeScheduleError


# duração (dias) -> (taxa de matrícula, taxa de pré-matrícula)
FEE_TABLE = {
    15: (197.00, 57.00),
    30: (294.00, 57.00),
    45: (397.00, 57.00),
    60: (497.00, 57.00),
    90: (679.00, 57.00),
}


class FeeSchedule(BaseModel):
    """Taxas resolvidas para uma duração"""
    duration_days: int
    enrollment_fee: float
    pre_enrollment_fee: float
    discounted_enrollment_fee: float

    class Config:
        frozen = True


def apply_minimum_charge(amount: float) -> float:
    """O Asaas não aceita cobranças abaixo do valor mínimo"""
    return round(max(amount, settings.MINIMUM_CHARGE_AMOUNT), 2)


def resolve_fees(duration_days: int, strict: bool = False) -> FeeSchedule:
    """
    Resolve as taxas para uma duração.

    Durações fora da tabela resultam em taxa de matrícula zero; com
    strict=True levantam FeeScheduleError.
    """
    if duration_days in FEE_TABLE:
        enrollment_fee, pre_enrollment_fee = FEE_TABLE[duration_days]
    elif strict:
        raise FeeScheduleError(
            f"Não há taxa definida para cursos de {duration_days} dias"
        )
    else:
        enrollment_fee, pre_enrollment_fee = 0.0, settings.DEFAULT_PRE_ENROLLMENT_FEE

    return FeeSchedule(
        duration_days=duration_days,
        enrollment_fee=enrollment_fee,
        pre_enrollment_fee=pre_enrollment_fee,
        discounted_enrollment_fee=apply_minimum_charge(enrollment_fee - pre_enrollment_fee),
    )
