"""
Portal de Matrículas - Document Template Schemas
"""
from pydantic import BaseModel, Field, field_validator
from typing import Optional, List

from portal.utils.document_templates import BLOCK_TYPES


class ContentBlock(BaseModel):
    id: str
    type: str
    order: int = 0
    config: dict = {}

    @field_validator('type')
    @classmethod
    def validate_type(cls, v):
        if v not in BLOCK_TYPES:
            raise ValueError(f'Tipo de bloco inválido: {v}')
        return v


class Margins(BaseModel):
    top: float = Field(20, ge=0)
    right: float = Field(20, ge=0)
    bottom: float = Field(20, ge=0)
    left: float = Field(20, ge=0)


class DocumentTemplateCreate(BaseModel):
    name: str = Field(..., min_length=3, max_length=255)
    type: str = Field(..., pattern=r'^(declaration|study_plan|quote|certificate)$')
    is_default: bool = False
    is_active: bool = True
    page_orientation: str = Field("portrait", pattern=r'^(portrait|landscape)$')
    page_format: str = Field("a4", pattern=r'^(a4|letter)$')
    margins: Margins = Margins()
    content_blocks: Optional[List[ContentBlock]] = None
    styles: dict = {}


class DocumentTemplateUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=3, max_length=255)
    is_default: Optional[bool] = None
    is_active: Optional[bool] = None
    page_orientation: Optional[str] = Field(None, pattern=r'^(portrait|landscape)$')
    page_format: Optional[str] = Field(None, pattern=r'^(a4|letter)$')
    margins: Optional[Margins] = None
    content_blocks: Optional[List[ContentBlock]] = None
    styles: Optional[dict] = None


class TemplatePreviewRequest(BaseModel):
    page_orientation: str = Field("portrait", pattern=r'^(portrait|landscape)$')
    page_format: str = Field("a4", pattern=r'^(a4|letter)$')
    margins: Margins = Margins()
    content_blocks: List[ContentBlock]
