"""
Portal de Matrículas - Pre-Enrollment Model
Pré-matrícula: candidatura do aluno antes da matrícula formal
"""
import uuid
from datetime import datetime
from sqlalchemy import Column, String, Boolean, DateTime, Date, Text, Integer, ForeignKey
import enum

from portal.database import Base


class PreEnrollmentStatus(str, enum.Enum):
    """Status principal da pré-matrícula"""
    PENDING = "pending"
    PENDING_PAYMENT = "pending_payment"
    PAYMENT_CONFIRMED = "payment_confirmed"
    APPROVED = "approved"
    REJECTED = "rejected"


class OrganApprovalStatus(str, enum.Enum):
    """Status da aprovação do órgão (externa, informada pelo aluno)"""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class PreEnrollment(Base):
    """Modelo de Pré-Matrícula"""
    __tablename__ = "pre_enrollments"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    # Usuário do provedor de autenticação (externo)
    user_id = Column(String(36), index=True)

    # Identificação
    full_name = Column(String(255), nullable=False)
    cpf = Column(String(11), nullable=False, index=True)
    email = Column(String(255), nullable=False)
    phone = Column(String(20))
    whatsapp = Column(String(20))
    birth_date = Column(Date)
    organization = Column(String(255))

    # Endereço
    postal_code = Column(String(8))
    address = Column(String(255))
    address_number = Column(String(20))
    complement = Column(String(100))
    city = Column(String(100))
    state = Column(String(2))

    # Curso
    course_id = Column(String(36), ForeignKey("courses.id"), nullable=False, index=True)
    organ_type_id = Column(String(36), ForeignKey("organ_types.id"))
    custom_hours = Column(Integer)

    # Licença capacitação
    license_duration = Column(Integer)
    license_start_date = Column(Date)
    license_end_date = Column(Date)
    additional_info = Column(Text)

    # Workflow
    status = Column(String(30), default=PreEnrollmentStatus.PENDING.value, nullable=False, index=True)
    organ_approval_status = Column(String(20), default=OrganApprovalStatus.PENDING.value, nullable=False)
    organ_approval_confirmed = Column(Boolean, default=False, nullable=False)
    organ_approval_date = Column(DateTime)
    organ_approval_notes = Column(Text)
    manual_approval = Column(Boolean, default=False, nullable=False)
    admin_notes = Column(Text)
    approved_at = Column(DateTime)
    approved_by = Column(String(36))

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "user_id": self.user_id,
            "full_name": self.full_name,
            "cpf": self.cpf,
            "email": self.email,
            "phone": self.phone,
            "whatsapp": self.whatsapp,
            "birth_date": self.birth_date.isoformat() if self.birth_date else None,
            "organization": self.organization,
            "postal_code": self.postal_code,
            "address": self.address,
            "address_number": self.address_number,
            "complement": self.complement,
            "city": self.city,
            "state": self.state,
            "course_id": self.course_id,
            "organ_type_id": self.organ_type_id,
            "custom_hours": self.custom_hours,
            "license_duration": self.license_duration,
            "license_start_date": self.license_start_date.isoformat() if self.license_start_date else None,
            "license_end_date": self.license_end_date.isoformat() if self.license_end_date else None,
            "status": self.status,
            "organ_approval_status": self.organ_approval_status,
            "organ_approval_confirmed": self.organ_approval_confirmed,
            "organ_approval_date": self.organ_approval_date.isoformat() if self.organ_approval_date else None,
            "manual_approval": self.manual_approval,
            "admin_notes": self.admin_notes,
            "approved_at": self.approved_at.isoformat() if self.approved_at else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
