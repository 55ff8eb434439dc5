"""Receipt gateway configuration, read from the environment."""

from __future__ import annotations

import os
from dataclasses import dataclass, field

DEFAULT_BASE_URL = "https://api.bootpay.co.kr/"
DEFAULT_CONNECT_TIMEOUT = 3.0
DEFAULT_READ_TIMEOUT = 5.0


@dataclass(frozen=True)
class GatewaySettings:
    """Credentials and endpoints for the receipt gateway.

    Attributes:
        application_id: Merchant application id issued by the gateway.
        private_key: Merchant private key used to obtain access tokens.
        base_url: API root, always ending with "/".
        connect_timeout: Seconds to establish the TCP/TLS connection.
        read_timeout: Seconds to wait for a response.
    """

    application_id: str
    private_key: str = field(repr=False)
    base_url: str = DEFAULT_BASE_URL
    connect_timeout: float = DEFAULT_CONNECT_TIMEOUT
    read_timeout: float = DEFAULT_READ_TIMEOUT

    def __post_init__(self) -> None:
        if not self.application_id:
            raise RuntimeError("Payment gateway application_id is empty")
        if not self.private_key:
            raise RuntimeError("Payment gateway private_key is empty")
        if not self.base_url.endswith("/"):
            object.__setattr__(self, "base_url", self.base_url + "/")

    @property
    def timeout(self) -> tuple[float, float]:
        """(connect, read) pair in the form requests expects."""
        return (self.connect_timeout, self.read_timeout)

    @classmethod
    def from_env(cls) -> GatewaySettings:
        """Load settings from PAYMENT_GATEWAY_* variables.

        Required:
        - PAYMENT_GATEWAY_APPLICATION_ID
        - PAYMENT_GATEWAY_PRIVATE_KEY

        Optional:
        - PAYMENT_GATEWAY_BASE_URL (default: bootpay REST API)
        - PAYMENT_GATEWAY_CONNECT_TIMEOUT / PAYMENT_GATEWAY_READ_TIMEOUT (seconds)

        Raises:
            RuntimeError: If a required variable is missing or a timeout is not a number.
        """
        application_id = os.environ.get("PAYMENT_GATEWAY_APPLICATION_ID", "")
        private_key = os.environ.get("PAYMENT_GATEWAY_PRIVATE_KEY", "")
        if not application_id or not private_key:
            raise RuntimeError(
                "Missing payment gateway config: PAYMENT_GATEWAY_APPLICATION_ID "
                "and PAYMENT_GATEWAY_PRIVATE_KEY required"
            )

        return cls(
            application_id=application_id,
            private_key=private_key,
            base_url=os.environ.get("PAYMENT_GATEWAY_BASE_URL") or DEFAULT_BASE_URL,
            connect_timeout=_float_env("PAYMENT_GATEWAY_CONNECT_TIMEOUT", DEFAULT_CONNECT_TIMEOUT),
            read_timeout=_float_env("PAYMENT_GATEWAY_READ_TIMEOUT", DEFAULT_READ_TIMEOUT),
        )


def _float_env(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        raise RuntimeError(f"{name} must be a number of seconds, got {raw!r}")
