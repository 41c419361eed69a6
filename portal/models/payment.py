"""
Portal de Matrículas - Payment Model
Cobranças PIX do Asaas vinculadas a uma pré-matrícula ou matrícula
"""
import uuid
from datetime import datetime
from enum import Enum
from sqlalchemy import Column, String, Boolean, DateTime, Text, Float, ForeignKey

from portal.database import Base


class PaymentKind(str, Enum):
    """Finalidade da cobrança"""
    PRE_ENROLLMENT = "pre_enrollment"
    ENROLLMENT = "enrollment"


class PaymentStatus(str, Enum):
    """Status do pagamento"""
    PENDING = "pending"       # Aguardando pagamento
    CONFIRMED = "confirmed"   # Confirmado (cartão / manual)
    RECEIVED = "received"     # Recebido (PIX compensado)
    OVERDUE = "overdue"       # Vencido ou substituído por nova cobrança
    FAILED = "failed"         # Falha na criação


# Status que contam como valor efetivamente pago
PAID_STATUSES = (PaymentStatus.CONFIRMED.value, PaymentStatus.RECEIVED.value)


class Payment(Base):
    """Modelo de Pagamento"""
    __tablename__ = "payments"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    pre_enrollment_id = Column(String(36), ForeignKey("pre_enrollments.id"), nullable=False, index=True)
    enrollment_id = Column(String(36), ForeignKey("enrollments.id"), index=True)
    kind = Column(String(20), default=PaymentKind.PRE_ENROLLMENT.value, nullable=False, index=True)

    amount = Column(Float, nullable=False)
    currency = Column(String(3), default="BRL")
    status = Column(String(20), default=PaymentStatus.PENDING.value, nullable=False, index=True)

    # Dados do Asaas
    asaas_payment_id = Column(String(50), unique=True, index=True)
    pix_qr_code = Column(Text)  # imagem base64
    pix_payload = Column(Text)  # copia e cola
    pix_expiration_date = Column(DateTime)

    paid_at = Column(DateTime)
    is_manual = Column(Boolean, default=False)  # registro criado pela equipe (sem cobrança)
    error_message = Column(Text)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    @property
    def is_paid(self) -> bool:
        return self.status in PAID_STATUSES

    def is_expired(self, now: datetime = None) -> bool:
        """PIX sem data de expiração é tratado como expirado"""
        if not self.pix_expiration_date:
            return True
        return self.pix_expiration_date <= (now or datetime.utcnow())

    def to_dict(self):
        return {
            "id": self.id,
            "pre_enrollment_id": self.pre_enrollment_id,
            "enrollment_id": self.enrollment_id,
            "kind": self.kind,
            "amount": self.amount,
            "currency": self.currency,
            "status": self.status,
            "asaas_payment_id": self.asaas_payment_id,
            "pix_qr_code": self.pix_qr_code,
            "pix_payload": self.pix_payload,
            "pix_expiration_date": self.pix_expiration_date.isoformat() if self.pix_expiration_date else None,
            "paid_at": self.paid_at.isoformat() if self.paid_at else None,
            "is_manual": self.is_manual,
            "error_message": self.error_message,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
