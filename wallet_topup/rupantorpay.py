"""Thin client for the RupantorPay checkout and verify-payment endpoints.

Only the documented JSON schema is supported. Anything else the provider
sends back (HTML error pages, plain text) is reported as ``GatewayError``.
"""
import logging
from dataclasses import dataclass

import requests
from requests import RequestException

from wallet_topup import config
from wallet_topup.errors import GatewayError

logger = logging.getLogger(__name__)

CHECKOUT_PATH = "/api/payment/checkout"
VERIFY_PATH = "/api/payment/verify-payment"
COMPLETED = "COMPLETED"


@dataclass
class CheckoutResult:
    payment_url: str
    payload: dict


@dataclass
class VerificationResult:
    completed: bool
    status: str
    payload: dict


def _headers(gateway, client_host=None) -> dict:
    headers = {
        "Content-Type": "application/json",
        "Accept": "application/json",
        "X-API-KEY": gateway.store_password or "",
    }
    if client_host:
        headers["X-CLIENT"] = client_host
    return headers


def _post(url: str, body: dict, headers: dict) -> requests.Response:
    try:
        return requests.post(url, json=body, headers=headers, timeout=config.rupantorpay_timeout())
    except RequestException as e:
        raise GatewayError(f"Gateway request failed: {e}")


def _json_body(resp: requests.Response) -> dict:
    try:
        data = resp.json()
    except ValueError:
        raw = (resp.text or "")[:800]
        raise GatewayError(
            f"Unexpected non-JSON response from gateway (HTTP {resp.status_code})",
            payload={"raw": raw},
            provider_status=resp.status_code,
        )
    if not isinstance(data, dict):
        raise GatewayError(
            f"Unexpected response shape from gateway (HTTP {resp.status_code})",
            payload={"raw": data},
            provider_status=resp.status_code,
        )
    return data


def create_checkout(gateway, payload: dict, client_host=None) -> CheckoutResult:
    url = config.rupantorpay_url(gateway.is_live) + CHECKOUT_PATH
    logger.info("Creating checkout for transaction %s", payload.get("transaction_id"))
    resp = _post(url, payload, _headers(gateway, client_host))
    data = _json_body(resp)

    if resp.ok and data.get("payment_url"):
        return CheckoutResult(payment_url=data["payment_url"], payload=data)

    message = data.get("message") or "Payment initiation failed"
    logger.warning("Checkout rejected (HTTP %s): %s", resp.status_code, message)
    raise GatewayError(message, payload=data, provider_status=resp.status_code)


def verify_payment(gateway, transaction_id: str) -> VerificationResult:
    url = config.rupantorpay_url(gateway.is_live) + VERIFY_PATH
    resp = _post(url, {"transaction_id": transaction_id}, _headers(gateway))
    data = _json_body(resp)

    if not resp.ok:
        message = data.get("message") or f"Verification request failed (HTTP {resp.status_code})"
        raise GatewayError(message, payload=data, provider_status=resp.status_code)

    status = str(data.get("status") or "")
    return VerificationResult(completed=status.upper() == COMPLETED, status=status, payload=data)
