"""
Portal de Matrículas - Settings Models
Configurações institucionais (marca dos documentos, webhook) e do gateway de pagamento
"""
import uuid
from datetime import datetime
from sqlalchemy import Column, String, Boolean, DateTime, JSON

from portal.database import Base


class SystemSettings(Base):
    """Configurações da instituição (linha única)"""
    __tablename__ = "system_settings"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    institution_name = Column(String(255), default="")
    institution_cnpj = Column(String(20), default="")
    institution_address = Column(String(255), default="")
    institution_cep = Column(String(10), default="")
    institution_city = Column(String(100), default="")
    institution_phone = Column(String(20), default="")
    institution_email = Column(String(255), default="")
    institution_website = Column(String(255), default="")
    logo_url = Column(String(500))

    director_name = Column(String(255), default="")
    director_title = Column(String(255), default="")
    director_signature_url = Column(String(500))

    pix_key = Column(String(100))
    pix_holder_name = Column(String(255))

    # Webhook de automação (n8n)
    webhook_url = Column(String(500))
    webhook_events = Column(JSON, default=list)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "institution_name": self.institution_name,
            "institution_cnpj": self.institution_cnpj,
            "institution_address": self.institution_address,
            "institution_cep": self.institution_cep,
            "institution_city": self.institution_city,
            "institution_phone": self.institution_phone,
            "institution_email": self.institution_email,
            "institution_website": self.institution_website,
            "logo_url": self.logo_url,
            "director_name": self.director_name,
            "director_title": self.director_title,
            "director_signature_url": self.director_signature_url,
            "pix_key": self.pix_key,
            "pix_holder_name": self.pix_holder_name,
            "webhook_url": self.webhook_url,
            "webhook_events": self.webhook_events or [],
        }


class PaymentSettings(Base):
    """Credenciais do Asaas (linha única)"""
    __tablename__ = "payment_settings"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    environment = Column(String(20), default="sandbox")  # sandbox | production
    asaas_api_key_sandbox = Column(String(255))
    asaas_api_key_production = Column(String(255))
    asaas_webhook_token = Column(String(255))
    enabled = Column(Boolean, default=False)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    @property
    def api_key(self):
        if self.environment == "production":
            return self.asaas_api_key_production
        return self.asaas_api_key_sandbox

    def to_dict(self):
        # Chaves nunca são devolvidas em claro
        return {
            "id": self.id,
            "environment": self.environment,
            "enabled": self.enabled,
            "has_sandbox_key": bool(self.asaas_api_key_sandbox),
            "has_production_key": bool(self.asaas_api_key_production),
            "has_webhook_token": bool(self.asaas_webhook_token),
        }
