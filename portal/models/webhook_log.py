"""
Portal de Matrículas - Webhook Log Model
Histórico de disparos do webhook de automação
"""
import uuid
from datetime import datetime
from sqlalchemy import Column, String, Boolean, DateTime, Text, Integer, JSON

from portal.database import Base


class WebhookLog(Base):
    __tablename__ = "webhook_logs"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    webhook_url = Column(String(500), nullable=False)
    event_type = Column(String(50), nullable=False, index=True)
    payload = Column(JSON)
    response_status = Column(Integer)  # 0 = sem resposta
    response_body = Column(Text)
    success = Column(Boolean, default=False)
    pre_enrollment_id = Column(String(36), index=True)

    created_at = Column(DateTime, default=datetime.utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "webhook_url": self.webhook_url,
            "event_type": self.event_type,
            "response_status": self.response_status,
            "success": self.success,
            "pre_enrollment_id": self.pre_enrollment_id,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
