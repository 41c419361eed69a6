"""
Portal de Matrículas - Auth API
Autenticação da equipe administrativa
"""
from datetime import datetime
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from portal.database import get_db
from portal.models import AdminUser, PreEnrollment
from portal.schemas import LoginRequest, LoginResponse, AdminUserResponse
from portal.core import (
    verify_password,
    get_password_hash,
    create_access_token,
    verify_access_token,
    settings
)

router = APIRouter(prefix="/auth", tags=["Authentication"])
security = HTTPBearer(auto_error=False)


async def _admin_from_token(token: str, db: AsyncSession) -> Optional[AdminUser]:
    payload = verify_access_token(token)
    if not payload:
        return None

    result = await db.execute(
        select(AdminUser).where(AdminUser.id == payload.get("sub"))
    )
    admin = result.scalar_one_or_none()
    if not admin or not admin.is_active:
        return None
    return admin


async def get_current_admin(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db)
) -> AdminUser:
    """Dependency para obter admin autenticado"""
    admin = await _admin_from_token(credentials.credentials, db) if credentials else None
    if not admin:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token inválido ou expirado"
        )
    return admin


async def get_optional_admin(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db)
) -> Optional[AdminUser]:
    """Endpoints usados pelo aluno e pela equipe"""
    if not credentials:
        return None
    return await _admin_from_token(credentials.credentials, db)


def ensure_student_access(pre: PreEnrollment, cpf: Optional[str], admin: Optional[AdminUser]):
    """O aluno se identifica pelo CPF da pré-matrícula; a equipe tem acesso livre"""
    if admin:
        return
    digits = "".join(ch for ch in (cpf or "") if ch.isdigit())
    if not digits or digits != pre.cpf:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="CPF não confere com a pré-matrícula"
        )


@router.post("/login", response_model=LoginResponse)
async def login(request: LoginRequest, db: AsyncSession = Depends(get_db)):
    """Login da equipe"""
    result = await db.execute(
        select(AdminUser).where(AdminUser.email == request.email)
    )
    admin = result.scalar_one_or_none()

    if not admin or not verify_password(request.password, admin.hashed_password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="E-mail ou senha inválidos"
        )

    if not admin.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Conta desativada"
        )

    admin.last_login_at = datetime.utcnow()
    await db.commit()

    access_token = create_access_token(data={"sub": admin.id, "email": admin.email})

    return LoginResponse(
        access_token=access_token,
        token_type="bearer",
        expires_in=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        user=admin.to_dict()
    )


@router.get("/me", response_model=AdminUserResponse)
async def get_me(admin: AdminUser = Depends(get_current_admin)):
    """Retorna dados do admin atual"""
    return admin.to_dict()


@router.post("/setup")
async def initial_setup(db: AsyncSession = Depends(get_db)):
    """Setup inicial - cria admin padrão se não existir"""
    result = await db.execute(select(AdminUser).limit(1))
    if result.scalar_one_or_none():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Setup já realizado"
        )

    admin = AdminUser(
        email=settings.ADMIN_EMAIL,
        hashed_password=get_password_hash(settings.ADMIN_PASSWORD),
        full_name="Administrador",
        is_superadmin=True
    )

    db.add(admin)
    await db.commit()

    return {"message": "Setup concluído", "email": settings.ADMIN_EMAIL}
