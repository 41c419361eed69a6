"""
Portal de Matrículas - Settings Schemas
"""
from pydantic import BaseModel, Field, field_validator
from typing import Optional, List

from portal.services.webhooks import EVENT_TYPES


class SystemSettingsUpdate(BaseModel):
    institution_name: Optional[str] = Field(None, max_length=255)
    institution_cnpj: Optional[str] = Field(None, max_length=20)
    institution_address: Optional[str] = Field(None, max_length=255)
    institution_cep: Optional[str] = Field(None, max_length=10)
    institution_city: Optional[str] = Field(None, max_length=100)
    institution_phone: Optional[str] = Field(None, max_length=20)
    institution_email: Optional[str] = Field(None, max_length=255)
    institution_website: Optional[str] = Field(None, max_length=255)
    logo_url: Optional[str] = Field(None, max_length=500)
    director_name: Optional[str] = Field(None, max_length=255)
    director_title: Optional[str] = Field(None, max_length=255)
    director_signature_url: Optional[str] = Field(None, max_length=500)
    pix_key: Optional[str] = Field(None, max_length=100)
    pix_holder_name: Optional[str] = Field(None, max_length=255)
    webhook_url: Optional[str] = Field(None, max_length=500)
    webhook_events: Optional[List[str]] = None

    @field_validator('webhook_events')
    @classmethod
    def validate_events(cls, v):
        if v is None:
            return v
        unknown = [event for event in v if event not in EVENT_TYPES]
        if unknown:
            raise ValueError(f'Eventos desconhecidos: {", ".join(unknown)}')
        return v

    @field_validator('webhook_url')
    @classmethod
    def validate_url(cls, v):
        if v and not v.startswith(('http://', 'https://')):
            raise ValueError('URL do webhook deve começar com http:// ou https://')
        return v


class PaymentSettingsUpdate(BaseModel):
    environment: Optional[str] = Field(None, pattern=r'^(sandbox|production)$')
    asaas_api_key_sandbox: Optional[str] = None
    asaas_api_key_production: Optional[str] = None
    asaas_webhook_token: Optional[str] = None
    enabled: Optional[bool] = None


class WebhookTestRequest(BaseModel):
    url: str = Field(..., pattern=r'^https?://')
