"""Tabela de taxas por duração."""

import pytest

from portal.core.exceptions import FeeScheduleError
from portal.services.fees import FEE_TABLE, apply_minimum_charge, resolve_fees


@pytest.mark.parametrize("duration_days, enrollment_fee", [
    (15, 197.00),
    (30, 294.00),
    (45, 397.00),
    (60, 497.00),
    (90, 679.00),
])
def test_known_durations_use_table_amounts(duration_days, enrollment_fee):
    fees = resolve_fees(duration_days)
    assert fees.enrollment_fee == enrollment_fee
    assert fees.pre_enrollment_fee == 57.00
    assert fees.discounted_enrollment_fee == round(enrollment_fee - 57.00, 2)


def test_thirty_days_discount():
    fees = resolve_fees(30)
    assert (fees.enrollment_fee, fees.pre_enrollment_fee, fees.discounted_enrollment_fee) == (294.00, 57.00, 237.00)


def test_unknown_duration_has_no_enrollment_fee():
    fees = resolve_fees(120)
    assert fees.enrollment_fee == 0
    assert fees.discounted_enrollment_fee == 5.00


def test_unknown_duration_strict_raises():
    with pytest.raises(FeeScheduleError) as exc:
        resolve_fees(120, strict=True)
    assert exc.value.status_code == 422


def test_resolution_is_deterministic():
    assert all(resolve_fees(days) == resolve_fees(days) for days in FEE_TABLE)


@pytest.mark.parametrize("amount, expected", [(-52.0, 5.00), (0, 5.00), (4.99, 5.00), (237.004, 237.00)])
def test_minimum_charge_floor(amount, expected):
    assert apply_minimum_charge(amount) == expected
