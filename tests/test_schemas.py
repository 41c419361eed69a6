"""Validação do formulário de pré-matrícula."""

import pytest
from pydantic import ValidationError

from portal.schemas import PreEnrollmentCreate, validate_cpf

BASE = {
    "course_id": "c1",
    "full_name": "Maria Silva",
    "cpf": "529.982.247-25",
    "email": "maria@example.com",
}


def test_valid_cpf_check_digits():
    assert validate_cpf("52998224725")
    assert not validate_cpf("52998224724")
    assert not validate_cpf("11111111111")
    assert not validate_cpf("123")


def test_form_normalizes_masked_fields():
    data = PreEnrollmentCreate(**BASE, phone="(61) 3333-4444", postal_code="70040-020", state="df")
    assert data.cpf == "52998224725"
    assert data.phone == "6133334444"
    assert data.postal_code == "70040020"
    assert data.state == "DF"


@pytest.mark.parametrize("field, value", [
    ("cpf", "111.111.111-11"),
    ("phone", "12345"),
    ("postal_code", "7004"),
    ("state", "XX"),
    ("email", "nao-e-email"),
])
def test_invalid_fields_rejected(field, value):
    with pytest.raises(ValidationError):
        PreEnrollmentCreate(**{**BASE, field: value})


def test_license_end_before_start_rejected():
    with pytest.raises(ValidationError):
        PreEnrollmentCreate(**BASE, license_start_date="2025-03-01", license_end_date="2025-02-01")
