"""
Portal de Matrículas - Documents API
PDFs da pré-matrícula e modelos de documento
"""
from datetime import datetime
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Response, status, Query
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update

from portal.database import get_db
from portal.models import AdminUser, DocumentTemplate, DocumentType
from portal.schemas import DocumentTemplateCreate, DocumentTemplateUpdate, TemplatePreviewRequest
from portal.api.auth import get_current_admin, get_optional_admin, ensure_student_access
from portal.services import documents, workflow
from portal.utils.document_templates import default_blocks, normalize_block_order

router = APIRouter(prefix="/documents", tags=["Documents"])


def _pdf_response(pdf_bytes: bytes, filename: str) -> Response:
    return Response(
        content=pdf_bytes,
        media_type="application/pdf",
        headers={
            "Content-Disposition": f"attachment; filename={filename}",
            "Content-Length": str(len(pdf_bytes)),
        }
    )


async def _clear_other_defaults(db: AsyncSession, template: DocumentTemplate):
    """Só um modelo padrão por tipo"""
    await db.execute(
        update(DocumentTemplate)
        .where(DocumentTemplate.type == template.type, DocumentTemplate.id != template.id)
        .values(is_default=False)
        .execution_options(synchronize_session=False)
    )


# ============================================
# MODELOS (EQUIPE)
# ============================================

@router.get("/templates")
async def list_templates(
    type: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
    admin: AdminUser = Depends(get_current_admin)
):
    query = select(DocumentTemplate).order_by(DocumentTemplate.type, DocumentTemplate.name)
    if type:
        query = query.where(DocumentTemplate.type == type)
    result = await db.execute(query)
    return [template.to_dict() for template in result.scalars().all()]


@router.get("/templates/defaults/{document_type}")
async def get_default_blocks(
    document_type: DocumentType,
    admin: AdminUser = Depends(get_current_admin)
):
    """Blocos padrão do tipo (ponto de partida do editor)"""
    return default_blocks(document_type.value)


@router.post("/templates", status_code=status.HTTP_201_CREATED)
async def create_template(
    request: DocumentTemplateCreate,
    db: AsyncSession = Depends(get_db),
    admin: AdminUser = Depends(get_current_admin)
):
    if request.content_blocks is None:
        blocks = default_blocks(request.type)
    else:
        blocks = normalize_block_order([block.model_dump() for block in request.content_blocks])

    template = DocumentTemplate(
        name=request.name,
        type=request.type,
        is_default=request.is_default,
        is_active=request.is_active,
        page_orientation=request.page_orientation,
        page_format=request.page_format,
        margins=request.margins.model_dump(),
        content_blocks=blocks,
        styles=request.styles,
        created_by=admin.id,
    )
    db.add(template)
    await db.flush()
    if template.is_default:
        await _clear_other_defaults(db, template)

    await db.commit()
    await db.refresh(template)
    return template.to_dict()


@router.put("/templates/{template_id}")
async def update_template(
    template_id: str,
    request: DocumentTemplateUpdate,
    db: AsyncSession = Depends(get_db),
    admin: AdminUser = Depends(get_current_admin)
):
    template = await db.get(DocumentTemplate, template_id)
    if not template:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Modelo não encontrado"
        )

    update_data = request.model_dump(exclude_unset=True)
    if update_data.get("content_blocks") is not None:
        update_data["content_blocks"] = normalize_block_order(update_data["content_blocks"])
    for field, value in update_data.items():
        if value is not None:
            setattr(template, field, value)
    template.updated_at = datetime.utcnow()

    if template.is_default:
        await _clear_other_defaults(db, template)

    await db.commit()
    await db.refresh(template)
    return template.to_dict()


@router.post("/templates/preview")
async def preview_template(
    request: TemplatePreviewRequest,
    db: AsyncSession = Depends(get_db),
    admin: AdminUser = Depends(get_current_admin)
):
    """Pré-visualização com dados de exemplo"""
    template = request.model_dump()
    template["content_blocks"] = normalize_block_order(template["content_blocks"])
    pdf_bytes = await documents.preview_template(db, template)
    return _pdf_response(pdf_bytes, "preview.pdf")


# ============================================
# DOCUMENTOS DA PRÉ-MATRÍCULA
# ============================================

@router.get("/{pre_enrollment_id}/{document_type}")
async def download_document(
    pre_enrollment_id: str,
    document_type: DocumentType,
    cpf: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
    admin: Optional[AdminUser] = Depends(get_optional_admin)
):
    """Declaração, plano de estudos, orçamento ou certificado em PDF"""
    pre = await workflow.get_pre_enrollment(db, pre_enrollment_id)
    ensure_student_access(pre, cpf, admin)

    pdf_bytes = await documents.build_document(db, pre.id, document_type.value)
    filename = f"{document_type.value}_{pre.id[:8]}.pdf"
    return _pdf_response(pdf_bytes, filename)
