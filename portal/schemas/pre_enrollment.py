"""
Portal de Matrículas - Pre-Enrollment Schemas
"""
from pydantic import BaseModel, Field, EmailStr, field_validator
from typing import Optional
from datetime import date
import re

BRAZIL_STATES = {
    "AC", "AL", "AP", "AM", "BA", "CE", "DF", "ES", "GO", "MA", "MT", "MS", "MG", "PA",
    "PB", "PR", "PE", "PI", "RJ", "RN", "RS", "RO", "RR", "SC", "SP", "SE", "TO",
}


def validate_cpf(cpf: str) -> bool:
    """Valida os dígitos verificadores do CPF"""
    if len(cpf) != 11 or not cpf.isdigit() or cpf == cpf[0] * 11:
        return False

    def calc_digit(cpf, factor):
        total = sum(int(digit) * (factor - i) for i, digit in enumerate(cpf[:factor - 1]))
        remainder = total % 11
        return 0 if remainder < 2 else 11 - remainder

    return calc_digit(cpf, 10) == int(cpf[9]) and calc_digit(cpf, 11) == int(cpf[10])


def clean_cpf_field(v: str) -> str:
    numbers = re.sub(r'\D', '', v or '')
    if not validate_cpf(numbers):
        raise ValueError('CPF inválido')
    return numbers


class PreEnrollmentCreate(BaseModel):
    """Formulário público de pré-matrícula"""
    course_id: str
    full_name: str = Field(..., min_length=3, max_length=255)
    cpf: str = Field(..., description="CPF (com ou sem máscara)")
    email: EmailStr
    phone: Optional[str] = None
    whatsapp: Optional[str] = None
    birth_date: Optional[date] = None
    organization: Optional[str] = Field(None, max_length=255)

    postal_code: Optional[str] = None
    address: Optional[str] = Field(None, max_length=255)
    address_number: Optional[str] = Field(None, max_length=20)
    complement: Optional[str] = Field(None, max_length=100)
    city: Optional[str] = Field(None, max_length=100)
    state: Optional[str] = None

    organ_type_id: Optional[str] = None
    license_duration: Optional[int] = Field(None, gt=0)
    license_start_date: Optional[date] = None
    license_end_date: Optional[date] = None
    additional_info: Optional[str] = None

    @field_validator('cpf')
    @classmethod
    def validate_cpf(cls, v):
        return clean_cpf_field(v)

    @field_validator('phone', 'whatsapp')
    @classmethod
    def validate_phone(cls, v):
        if not v:
            return None
        numbers = re.sub(r'\D', '', v)
        if len(numbers) < 10 or len(numbers) > 11:
            raise ValueError('Telefone deve ter 10 ou 11 dígitos')
        return numbers

    @field_validator('postal_code')
    @classmethod
    def validate_postal_code(cls, v):
        if not v:
            return None
        numbers = re.sub(r'\D', '', v)
        if len(numbers) != 8:
            raise ValueError('CEP deve ter 8 dígitos')
        return numbers

    @field_validator('state')
    @classmethod
    def validate_state(cls, v):
        if not v:
            return None
        v = v.strip().upper()
        if v not in BRAZIL_STATES:
            raise ValueError('UF inválida')
        return v

    @field_validator('license_end_date')
    @classmethod
    def validate_license_period(cls, v, info):
        start = info.data.get('license_start_date')
        if v and start and v < start:
            raise ValueError('Fim da licença anterior ao início')
        return v


class StudentRequest(BaseModel):
    """Ações do aluno: identificação pelo CPF da pré-matrícula"""
    cpf: str

    @field_validator('cpf')
    @classmethod
    def validate_cpf(cls, v):
        return clean_cpf_field(v)


class OrganApprovalReport(StudentRequest):
    notes: Optional[str] = Field(None, max_length=2000)


class StaffActionRequest(BaseModel):
    notes: Optional[str] = Field(None, max_length=2000)


class OrganApprovalDecision(BaseModel):
    """Decisão do órgão registrada pela equipe"""
    status: str = Field(..., pattern=r'^(pending|approved|rejected)$')
    notes: Optional[str] = Field(None, max_length=2000)
    override: bool = False
