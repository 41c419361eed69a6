"""
Portal de Matrículas - Courses API
Catálogo de cursos e tabela de taxas
"""
import json
import re
import unicodedata
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from portal.database import get_db
from portal.models import AdminUser, Area, Course, OrganType
from portal.schemas import CourseCreate, CourseUpdate, FeeScheduleResponse
from portal.api.auth import get_current_admin
from portal.services.fees import resolve_fees

router = APIRouter(prefix="/courses", tags=["Courses"])


def slugify(text: str) -> str:
    normalized = unicodedata.normalize("NFKD", text).encode("ascii", "ignore").decode("ascii")
    return re.sub(r"[^a-z0-9]+", "-", normalized.lower()).strip("-")


async def _slug_taken(db: AsyncSession, slug: str, exclude_id: str = None) -> bool:
    query = select(Course.id).where(Course.slug == slug)
    if exclude_id:
        query = query.where(Course.id != exclude_id)
    result = await db.execute(query)
    return result.scalar_one_or_none() is not None


@router.get("")
async def list_courses(
    area_id: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db)
):
    """Cursos publicados"""
    query = select(Course).where(Course.published.is_(True)).order_by(Course.name)
    if area_id:
        query = query.where(Course.area_id == area_id)
    result = await db.execute(query)
    return [course.to_dict() for course in result.scalars().all()]


@router.get("/areas")
async def list_areas(db: AsyncSession = Depends(get_db)):
    result = await db.execute(select(Area).order_by(Area.name))
    return [area.to_dict() for area in result.scalars().all()]


@router.get("/organ-types")
async def list_organ_types(db: AsyncSession = Depends(get_db)):
    result = await db.execute(select(OrganType).order_by(OrganType.name))
    return [organ.to_dict() for organ in result.scalars().all()]


@router.get("/fees/{duration_days}", response_model=FeeScheduleResponse)
async def get_fees(duration_days: int):
    """Taxas para a duração (0 de matrícula se fora da tabela)"""
    return resolve_fees(duration_days).model_dump()


@router.get("/{slug}")
async def get_course(slug: str, db: AsyncSession = Depends(get_db)):
    result = await db.execute(
        select(Course).where(Course.slug == slug, Course.published.is_(True))
    )
    course = result.scalar_one_or_none()
    if not course:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Curso não encontrado"
        )
    return course.to_dict()


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_course(
    request: CourseCreate,
    db: AsyncSession = Depends(get_db),
    admin: AdminUser = Depends(get_current_admin)
):
    """Cria curso; as taxas vêm da tabela pela duração"""
    fees = resolve_fees(request.duration_days, strict=True)

    slug = request.slug or slugify(request.name)
    if await _slug_taken(db, slug):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Slug já utilizado por outro curso"
        )

    course = Course(
        name=request.name,
        slug=slug,
        area_id=request.area_id,
        description=request.description,
        modules=json.dumps([m.model_dump() for m in request.modules], ensure_ascii=False),
        duration_hours=request.duration_hours,
        duration_days=request.duration_days,
        pre_enrollment_fee=fees.pre_enrollment_fee,
        enrollment_fee=fees.enrollment_fee,
        published=request.published,
        asaas_title=request.asaas_title,
    )
    db.add(course)
    await db.commit()
    await db.refresh(course)
    return course.to_dict()


@router.put("/{course_id}")
async def update_course(
    course_id: str,
    request: CourseUpdate,
    db: AsyncSession = Depends(get_db),
    admin: AdminUser = Depends(get_current_admin)
):
    course = await db.get(Course, course_id)
    if not course:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Curso não encontrado"
        )

    update_data = request.model_dump(exclude_unset=True)
    if "modules" in update_data:
        modules = update_data.pop("modules") or []
        course.modules = json.dumps(modules, ensure_ascii=False)

    if "duration_days" in update_data:
        fees = resolve_fees(update_data["duration_days"], strict=True)
        course.pre_enrollment_fee = fees.pre_enrollment_fee
        course.enrollment_fee = fees.enrollment_fee

    for field, value in update_data.items():
        setattr(course, field, value)

    await db.commit()
    await db.refresh(course)
    return course.to_dict()
