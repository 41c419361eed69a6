"""Cliente HTTP do Asaas."""

import json

import httpx
import pytest

from portal.core.exceptions import PaymentConfigurationError, PaymentGatewayError
from portal.services.asaas import AsaasClient, clean_phone, parse_expiration, truncate_name


def make_client(handler):
    return AsaasClient("$aact_key", "sandbox", transport=httpx.MockTransport(handler))


def test_missing_key_raises_configuration_error():
    with pytest.raises(PaymentConfigurationError):
        AsaasClient("", "sandbox")


async def test_create_pix_charge_payload():
    requests = []

    def handler(request):
        requests.append(request)
        return httpx.Response(200, json={"id": "pay_123", "status": "PENDING"})

    charge = await make_client(handler).create_pix_charge("cus_1", 57.0)

    assert charge["id"] == "pay_123"
    sent = json.loads(requests[0].content)
    assert sent["billingType"] == "PIX"
    assert sent["value"] == 57.0
    assert sent["postalService"] is False
    assert requests[0].headers["access_token"] == "$aact_key"
    assert requests[0].url.path.endswith("/payments")


async def test_gateway_error_uses_first_description():
    def handler(request):
        return httpx.Response(400, json={"errors": [{"code": "invalid", "description": "CPF inválido"}]})

    with pytest.raises(PaymentGatewayError) as exc:
        await make_client(handler).create_customer("Maria", "m@example.com", "52998224725")
    assert exc.value.message == "CPF inválido"
    assert exc.value.status_code == 502


async def test_network_failure_becomes_gateway_error():
    def handler(request):
        raise httpx.ConnectError("sem rede")

    with pytest.raises(PaymentGatewayError):
        await make_client(handler).get_pix_qr_code("pay_1")


def test_helpers():
    assert truncate_name("x" * 40) == "x" * 30
    assert clean_phone(None, "(61) 99999-8888") == "61999998888"
    assert clean_phone("123", None) is None
    assert parse_expiration("2025-01-31 23:59:59").day == 31
    assert parse_expiration(None) is None
