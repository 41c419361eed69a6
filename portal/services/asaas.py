"""
Portal de Matrículas - Asaas Client
Cliente HTTP do gateway Asaas (clientes, cobranças PIX e QR Code)
"""
import logging
import re
from datetime import date, datetime, timedelta
from typing import Optional

import httpx

from portal.core.config import settings
from portal.core.exceptions import PaymentConfigurationError, PaymentGatewayError

logger = logging.getLogger(__name__)

# Descrição fixa e curta (o Asaas rejeita descrições longas com acentos)
CHARGE_DESCRIPTION = "Pagamento curso"
CUSTOMER_NAME_MAX_LENGTH = 30


def clean_cpf(cpf: Optional[str]) -> str:
    return re.sub(r"\D", "", cpf or "")


def clean_phone(phone: Optional[str], whatsapp: Optional[str] = None) -> Optional[str]:
    """Telefone com 10 ou 11 dígitos; usa o WhatsApp quando o telefone é inválido"""
    for candidate in (phone, whatsapp):
        numbers = re.sub(r"\D", "", candidate or "")
        if 10 <= len(numbers) <= 11:
            return numbers
    return None


def truncate_name(name: str) -> str:
    return (name or "").strip()[:CUSTOMER_NAME_MAX_LENGTH]


def parse_expiration(value: Optional[str]) -> Optional[datetime]:
    """Converte a data de expiração do PIX ("2025-01-15 23:59:59" ou ISO)"""
    if not value:
        return None
    try:
        return datetime.strptime(value, "%Y-%m-%d %H:%M:%S")
    except ValueError:
        pass
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        logger.warning(f"Data de expiração do PIX ilegível: {value}")
        return None
    return parsed.replace(tzinfo=None)


class AsaasClient:
    """
    Cliente do Asaas.

    Fluxo de uma cobrança PIX:
    1. Cria (ou reaproveita) o cliente pelo CPF
    2. Cria a cobrança com vencimento no dia seguinte
    3. Busca o QR Code (imagem base64 + copia e cola)
    """

    def __init__(self, api_key: str, environment: str = "sandbox", transport: httpx.AsyncBaseTransport = None):
        if not api_key:
            raise PaymentConfigurationError("Chave da API do Asaas não configurada")
        self.api_key = api_key
        self.environment = environment
        self.base_url = (
            settings.ASAAS_PRODUCTION_URL if environment == "production" else settings.ASAAS_SANDBOX_URL
        )
        self.transport = transport

    @classmethod
    def from_settings(cls, payment_settings) -> "AsaasClient":
        return cls(payment_settings.api_key, payment_settings.environment)

    async def _request(self, method: str, path: str, json: dict = None) -> dict:
        headers = {
            "access_token": self.api_key,
            "Content-Type": "application/json",
        }
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url,
                timeout=settings.ASAAS_TIMEOUT_SECONDS,
                transport=self.transport,
            ) as client:
                response = await client.request(method, path, json=json, headers=headers)
        except httpx.HTTPError as e:
            logger.error(f"Asaas indisponível ({method} {path}): {e}")
            raise PaymentGatewayError(f"Falha de comunicação com o Asaas: {e}")

        try:
            data = response.json() if response.content else {}
        except ValueError:
            data = {}

        if response.status_code >= 400:
            errors = data.get("errors") or []
            description = errors[0].get("description") if errors else data.get("message")
            message = description or f"Erro {response.status_code} no Asaas"
            logger.error(f"Asaas {method} {path} -> {response.status_code}: {message}")
            raise PaymentGatewayError(message)

        return data

    async def create_customer(self, name: str, email: str, cpf: str, phone: Optional[str] = None) -> str:
        """Cria o cliente e retorna o id do Asaas"""
        payload = {
            "name": truncate_name(name),
            "email": (email or "").strip(),
            "cpfCnpj": cpf,
        }
        if phone:
            payload["phone"] = phone

        data = await self._request("POST", "/customers", json=payload)
        logger.info(f"Cliente Asaas criado: {data.get('id')}")
        return data["id"]

    async def create_pix_charge(self, customer_id: str, amount: float, due_date: date = None) -> dict:
        due = due_date or (datetime.utcnow().date() + timedelta(days=1))
        payload = {
            "customer": customer_id,
            "billingType": "PIX",
            "value": round(amount, 2),
            "dueDate": due.isoformat(),
            "description": CHARGE_DESCRIPTION,
            "postalService": False,
        }
        data = await self._request("POST", "/payments", json=payload)
        logger.info(f"Cobrança PIX criada no Asaas: {data.get('id')} (R$ {amount:.2f})")
        return data

    async def get_pix_qr_code(self, charge_id: str) -> dict:
        """Retorna {"encodedImage", "payload", "expirationDate"}"""
        return await self._request("GET", f"/payments/{charge_id}/pixQrCode")
