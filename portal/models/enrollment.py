"""
Portal de Matrículas - Enrollment Model
Matrícula formal criada após a aprovação do órgão
"""
import uuid
from datetime import datetime, timedelta
from enum import Enum
from sqlalchemy import Column, String, DateTime, Float, ForeignKey

from portal.database import Base


class EnrollmentStatus(str, Enum):
    AWAITING_PAYMENT = "awaiting_payment"
    ACTIVE = "active"
    COMPLETED = "completed"  # inferido na leitura, nunca gravado
    CANCELLED = "cancelled"


class EnrollmentPaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"


class Enrollment(Base):
    """Modelo de Matrícula"""
    __tablename__ = "enrollments"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    user_id = Column(String(36), index=True)
    course_id = Column(String(36), ForeignKey("courses.id"), nullable=False)
    pre_enrollment_id = Column(String(36), ForeignKey("pre_enrollments.id"), nullable=False, index=True)

    status = Column(String(20), default=EnrollmentStatus.AWAITING_PAYMENT.value, nullable=False, index=True)
    payment_status = Column(String(20), default=EnrollmentPaymentStatus.PENDING.value, nullable=False)
    enrollment_date = Column(DateTime)
    enrollment_amount = Column(Float)
    enrollment_payment_id = Column(String(36))

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def end_date(self, duration_days: int):
        if not self.enrollment_date or not duration_days:
            return None
        return self.enrollment_date + timedelta(days=duration_days)

    def effective_status(self, duration_days: int, now: datetime = None) -> str:
        """Matrícula ativa cujo período terminou é exibida como concluída"""
        end = self.end_date(duration_days)
        if self.status == EnrollmentStatus.ACTIVE.value and end and (now or datetime.utcnow()) >= end:
            return EnrollmentStatus.COMPLETED.value
        return self.status

    def to_dict(self, duration_days: int = None):
        return {
            "id": self.id,
            "user_id": self.user_id,
            "course_id": self.course_id,
            "pre_enrollment_id": self.pre_enrollment_id,
            "status": self.effective_status(duration_days) if duration_days else self.status,
            "payment_status": self.payment_status,
            "enrollment_date": self.enrollment_date.isoformat() if self.enrollment_date else None,
            "enrollment_amount": self.enrollment_amount,
            "enrollment_payment_id": self.enrollment_payment_id,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
