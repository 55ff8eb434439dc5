"""Payment gateway selection.

PAYMENT_PROVIDER picks the adapter:
- receipt (default): ReceiptGatewayClient configured from PAYMENT_GATEWAY_* vars
- stripe: StripeGateway configured from STRIPE_SECRET_KEY

The gateway is built once per process and shared; get_payment_gateway doubles
as the FastAPI dependency so tests can override it.
"""

from __future__ import annotations

import os
import threading

from .contracts import PaymentGateway
from .receipt_client import ReceiptGatewayClient
from .settings import GatewaySettings
from .stripe_gateway import StripeGateway

PROVIDERS = ("receipt", "stripe")

_gateway: PaymentGateway | None = None
_gateway_lock = threading.Lock()


def build_payment_gateway(provider: str | None = None) -> PaymentGateway:
    """Construct a gateway for provider (default: PAYMENT_PROVIDER or "receipt").

    Raises:
        RuntimeError: On an unknown provider or missing credentials.
    """
    provider = (provider or os.environ.get("PAYMENT_PROVIDER") or "receipt").lower()
    if provider == "receipt":
        return ReceiptGatewayClient(GatewaySettings.from_env())
    if provider == "stripe":
        return StripeGateway()
    raise RuntimeError(f"Unknown PAYMENT_PROVIDER {provider!r}; expected one of {PROVIDERS}")


def get_payment_gateway() -> PaymentGateway:
    """Return the process-wide gateway, building it on first use."""
    global _gateway

    with _gateway_lock:
        if _gateway is None:
            _gateway = build_payment_gateway()
        return _gateway


def reset_payment_gateway() -> None:
    """Drop the cached gateway (config reload, tests)."""
    global _gateway

    with _gateway_lock:
        _gateway = None
