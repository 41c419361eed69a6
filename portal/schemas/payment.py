"""
Portal de Matrículas - Payment Schemas
"""
from pydantic import BaseModel, Field, field_validator
from typing import Optional

from portal.schemas.pre_enrollment import clean_cpf_field


class CheckoutRequest(BaseModel):
    """Geração (ou reaproveitamento) da cobrança PIX pelo aluno"""
    pre_enrollment_id: str
    cpf: str

    @field_validator('cpf')
    @classmethod
    def validate_cpf(cls, v):
        return clean_cpf_field(v)


class AsaasWebhookPayload(BaseModel):
    """Notificação do Asaas (somente os campos usados)"""
    event: str
    payment: Optional[dict] = Field(default_factory=dict)

    class Config:
        extra = "allow"


class PaymentResponse(BaseModel):
    payment: dict
    is_existing: bool = False
    error: Optional[str] = None
