"""
Portal de Matrículas - Certificate Schemas
"""
from pydantic import BaseModel, field_validator
from typing import Optional

from portal.schemas.pre_enrollment import clean_cpf_field


class CertificateIssueRequest(BaseModel):
    """O aluno informa o CPF; a equipe autenticada não precisa"""
    pre_enrollment_id: str
    cpf: Optional[str] = None

    @field_validator('cpf')
    @classmethod
    def validate_cpf(cls, v):
        return clean_cpf_field(v) if v else None
