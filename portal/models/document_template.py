"""
Portal de Matrículas - Document Template Model
Modelos de documento (declaração, plano de estudos, orçamento, certificado)
"""
import uuid
from datetime import datetime
from enum import Enum
from sqlalchemy import Column, String, Boolean, DateTime, JSON

from portal.database import Base


class DocumentType(str, Enum):
    DECLARATION = "declaration"
    STUDY_PLAN = "study_plan"
    QUOTE = "quote"
    CERTIFICATE = "certificate"


class DocumentTemplate(Base):
    __tablename__ = "document_templates"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    name = Column(String(255), nullable=False)
    type = Column(String(20), nullable=False, index=True)
    is_default = Column(Boolean, default=False)
    is_active = Column(Boolean, default=True)

    page_orientation = Column(String(10), default="portrait")
    page_format = Column(String(10), default="a4")

    # Margens em milímetros: {"top": 20, "right": 20, "bottom": 20, "left": 20}
    margins = Column(JSON, default=dict)
    # Lista de blocos: [{"id", "type", "order", "config"}]
    content_blocks = Column(JSON, default=list)
    styles = Column(JSON, default=dict)

    created_by = Column(String(36))
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "is_default": self.is_default,
            "is_active": self.is_active,
            "page_orientation": self.page_orientation,
            "page_format": self.page_format,
            "margins": self.margins or {},
            "content_blocks": self.content_blocks or [],
            "styles": self.styles or {},
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
