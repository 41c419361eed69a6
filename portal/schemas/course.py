"""
Portal de Matrículas - Course Schemas
"""
from pydantic import BaseModel, Field, field_validator
from typing import Optional, List
import re


class CourseModule(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    hours: int = Field(0, ge=0)


class CourseCreate(BaseModel):
    """As taxas são definidas pela duração (tabela de taxas)"""
    name: str = Field(..., min_length=3, max_length=255)
    slug: Optional[str] = Field(None, max_length=255)
    area_id: Optional[str] = None
    description: Optional[str] = None
    modules: List[CourseModule] = []
    duration_hours: int = Field(0, ge=0)
    duration_days: int = Field(30, gt=0)
    published: bool = False
    asaas_title: Optional[str] = Field(None, max_length=100)

    @field_validator('slug')
    @classmethod
    def validate_slug(cls, v):
        if v is None:
            return v
        if not re.fullmatch(r'[a-z0-9]+(?:-[a-z0-9]+)*', v):
            raise ValueError('Slug deve conter apenas letras minúsculas, números e hífens')
        return v


class CourseUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=3, max_length=255)
    area_id: Optional[str] = None
    description: Optional[str] = None
    modules: Optional[List[CourseModule]] = None
    duration_hours: Optional[int] = Field(None, ge=0)
    duration_days: Optional[int] = Field(None, gt=0)
    published: Optional[bool] = None
    asaas_title: Optional[str] = Field(None, max_length=100)


class FeeScheduleResponse(BaseModel):
    duration_days: int
    enrollment_fee: float
    pre_enrollment_fee: float
    discounted_enrollment_fee: float

    class Config:
        from_attributes = True
