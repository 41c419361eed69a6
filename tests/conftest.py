"""Pytest fixtures."""

# pylint: disable=redefined-outer-name

import os

os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["PIX_QR_CODE_DELAY_SECONDS"] = "0"
os.environ["SECRET_KEY"] = "test-secret-key"

import json
from datetime import datetime, timedelta

import httpx
import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from portal.core import create_access_token, get_password_hash
from portal.core.exceptions import PaymentGatewayError
from portal.database import Base, ensure_settings_rows, get_db
from portal.main import app
from portal.api.payments import get_payment_gateway
from portal.models import AdminUser, Course, OrganType, PaymentSettings, SystemSettings
from portal.services import webhooks

VALID_CPF = "52998224725"
OTHER_CPF = "11144477735"


class FakeGateway:
    """Substitui o AsaasClient: registra as chamadas e devolve QR Codes válidos"""

    def __init__(self):
        self.customers = []
        self.charges = []
        self.fail_qr_code = False
        self.expiration = datetime.utcnow() + timedelta(days=1)

    async def create_customer(self, name, email, cpf, phone=None):
        self.customers.append({"name": name, "email": email, "cpf": cpf, "phone": phone})
        return f"cus_{len(self.customers)}"

    async def create_pix_charge(self, customer_id, amount, due_date=None):
        charge = {"id": f"pay_{len(self.charges) + 1}", "customer": customer_id, "value": amount}
        self.charges.append(charge)
        return charge

    async def get_pix_qr_code(self, charge_id):
        if self.fail_qr_code:
            raise PaymentGatewayError("QR Code indisponível")
        return {
            "encodedImage": "aW1hZ2VtLXFy",
            "payload": f"00020126-{charge_id}",
            "expirationDate": self.expiration.strftime("%Y-%m-%d %H:%M:%S"),
        }


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def session_factory(engine):
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)
    async with factory() as session:
        await ensure_settings_rows(session)
    return factory


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def webhook_calls(monkeypatch):
    """Captura os POSTs do webhook de automação"""
    calls = []

    def handler(request):
        calls.append(json.loads(request.content))
        return httpx.Response(200, json={"ok": True})

    monkeypatch.setattr(webhooks, "http_transport", httpx.MockTransport(handler))
    return calls


@pytest.fixture
async def payment_settings(db):
    payment_settings = (await db.execute(select(PaymentSettings).limit(1))).scalar_one()
    payment_settings.enabled = True
    payment_settings.environment = "sandbox"
    payment_settings.asaas_api_key_sandbox = "$aact_test_key"
    await db.commit()
    return payment_settings


@pytest.fixture
async def system_settings(db):
    system = (await db.execute(select(SystemSettings).limit(1))).scalar_one()
    system.institution_name = "Instituto Capacitar"
    system.institution_cnpj = "12.345.678/0001-90"
    system.institution_city = "Brasília"
    system.institution_email = "contato@capacitar.edu.br"
    system.director_name = "Ana Souza"
    system.director_title = "Diretora Acadêmica"
    system.pix_holder_name = "Capacitar Educação"
    await db.commit()
    return system


@pytest.fixture
async def course(db):
    course = Course(
        name="Gestão Pública Municipal",
        slug="gestao-publica-municipal",
        description="<p>Fundamentos da administração pública.</p>",
        modules=json.dumps([
            {"name": "Introdução", "hours": 60},
            {"name": "Finanças Públicas", "hours": 60},
        ]),
        duration_hours=120,
        duration_days=30,
        pre_enrollment_fee=57.00,
        enrollment_fee=294.00,
        published=True,
    )
    db.add(course)
    await db.commit()
    return course


@pytest.fixture
async def organ_type(db):
    organ = OrganType(name="Federal", hours_multiplier=0.5, is_federal=True)
    db.add(organ)
    await db.commit()
    return organ


@pytest.fixture
async def admin(db):
    admin = AdminUser(
        email="equipe@capacitar.edu.br",
        hashed_password=get_password_hash("senha-segura"),
        full_name="Equipe",
        is_superadmin=True,
    )
    db.add(admin)
    await db.commit()
    return admin


@pytest.fixture
def admin_headers(admin):
    token = create_access_token({"sub": admin.id, "email": admin.email})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def submission(course):
    return {
        "course_id": course.id,
        "full_name": "Maria Silva Santos",
        "cpf": "529.982.247-25",
        "email": "maria.santos@educacao.gov.br",
        "whatsapp": "(61) 99999-8888",
        "organization": "Ministério da Educação",
        "postal_code": "70040-020",
        "state": "df",
    }


@pytest.fixture
async def client(session_factory, gateway):
    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_payment_gateway] = lambda: gateway
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client
    app.dependency_overrides.clear()
