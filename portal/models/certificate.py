"""
Portal de Matrículas - Certificate Model
"""
import uuid
from datetime import datetime
from enum import Enum
from sqlalchemy import Column, String, DateTime, Date, Text, Integer, ForeignKey

from portal.database import Base


class CertificateStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class Certificate(Base):
    """Certificado de conclusão verificável pelo código"""
    __tablename__ = "certificates"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    # Código público (única chave de consulta da página de verificação)
    certificate_code = Column(String(40), unique=True, nullable=False, index=True)

    enrollment_id = Column(String(36), ForeignKey("enrollments.id"), index=True)
    pre_enrollment_id = Column(String(36), ForeignKey("pre_enrollments.id"), nullable=False, index=True)

    student_name = Column(String(255), nullable=False)
    student_cpf = Column(String(11))
    course_name = Column(String(255), nullable=False)
    course_hours = Column(Integer)

    issue_date = Column(DateTime, default=datetime.utcnow)
    completion_date = Column(Date)

    status = Column(String(20), default=CertificateStatus.ACTIVE.value, nullable=False)
    verification_url = Column(String(500))
    qr_code_data = Column(Text)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "certificate_code": self.certificate_code,
            "enrollment_id": self.enrollment_id,
            "pre_enrollment_id": self.pre_enrollment_id,
            "student_name": self.student_name,
            "course_name": self.course_name,
            "course_hours": self.course_hours,
            "issue_date": self.issue_date.isoformat() if self.issue_date else None,
            "completion_date": self.completion_date.isoformat() if self.completion_date else None,
            "status": self.status,
            "verification_url": self.verification_url,
        }
