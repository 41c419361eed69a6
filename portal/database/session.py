"""
Portal de Matrículas - Database Session
"""
import logging
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base
from sqlalchemy import select

from portal.core.config import settings

logger = logging.getLogger(__name__)

# Engine assíncrono
engine = create_async_engine(
    settings.db_url,
    echo=settings.DEBUG,
    pool_pre_ping=True,
)

# Session factory
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False
)

# Base para models
Base = declarative_base()


async def get_db() -> AsyncSession:
    """Dependency para injetar sessão do banco"""
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def ensure_settings_rows(session: AsyncSession):
    """
    Garante que as tabelas de configuração (linha única) tenham um registro.
    O painel administrativo apenas edita essas linhas.
    """
    from portal.models import SystemSettings, PaymentSettings

    for model in (SystemSettings, PaymentSettings):
        result = await session.execute(select(model).limit(1))
        if result.scalar_one_or_none() is None:
            session.add(model())
            logger.info(f"Registro padrão criado em {model.__tablename__}")
    await session.commit()


async def init_db():
    """Inicializa banco de dados (cria tabelas) e linhas de configuração"""
    # Importa os models para registrar as tabelas no metadata
    import portal.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with AsyncSessionLocal() as session:
        await ensure_settings_rows(session)
