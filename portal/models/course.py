"""
Portal de Matrículas - Course Models
Cursos, áreas e tipos de órgão (multiplicador de carga horária)
"""
import json
import uuid
from datetime import datetime
from sqlalchemy import Column, String, Boolean, DateTime, Text, Integer, Float, ForeignKey

from portal.database import Base


class Area(Base):
    """Área de conhecimento"""
    __tablename__ = "areas"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String(255), nullable=False)
    description = Column(Text)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_dict(self):
        return {"id": self.id, "name": self.name, "description": self.description}


class OrganType(Base):
    """
    Tipo de órgão do servidor.
    O multiplicador ajusta a carga horária efetiva do curso (ex: 0.5 = 50%).
    """
    __tablename__ = "organ_types"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String(255), nullable=False)
    hours_multiplier = Column(Float, default=1.0, nullable=False)
    is_federal = Column(Boolean, default=False)

    created_at = Column(DateTime, default=datetime.utcnow)

    def effective_hours(self, base_hours: int) -> int:
        return round((base_hours or 0) * (self.hours_multiplier or 1.0))

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "hours_multiplier": self.hours_multiplier,
            "is_federal": self.is_federal,
        }


class Course(Base):
    """Modelo de Curso"""
    __tablename__ = "courses"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    name = Column(String(255), nullable=False)
    slug = Column(String(255), unique=True, index=True)
    area_id = Column(String(36), ForeignKey("areas.id"))
    description = Column(Text)

    # JSON (texto) com a lista de módulos: [{"name": ..., "hours": ...}]
    modules = Column(Text)

    duration_hours = Column(Integer, default=0)
    duration_days = Column(Integer, default=30)

    # Taxas (recalculadas pela tabela de taxas ao salvar o curso)
    pre_enrollment_fee = Column(Float, default=0)
    enrollment_fee = Column(Float, default=0)

    published = Column(Boolean, default=False, index=True)
    asaas_title = Column(String(100))

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def parsed_modules(self):
        """Módulos decodificados; levanta ValueError se o JSON for inválido"""
        if not self.modules:
            return []
        data = json.loads(self.modules)
        if not isinstance(data, list):
            raise ValueError("modules deve ser uma lista")
        return data

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "slug": self.slug,
            "area_id": self.area_id,
            "description": self.description,
            "modules": self.modules,
            "duration_hours": self.duration_hours,
            "duration_days": self.duration_days,
            "pre_enrollment_fee": self.pre_enrollment_fee,
            "enrollment_fee": self.enrollment_fee,
            "published": self.published,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
