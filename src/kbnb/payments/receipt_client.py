"""REST client for the receipt-based payment gateway (bootpay-style API).

Endpoints (relative to GatewaySettings.base_url):
- POST request/token.json    {application_id, private_key} -> access token
- GET  receipt/{id}.json     Authorization: <token>        -> receipt state
- POST cancel.json           {receipt_id, name, reason}    -> refund result

Every response body is an envelope {"status": <int>, "code": ..., "message":
..., "data": {...}} where status 200 means success.

Security: never log tokens or the private key; receipt ids are masked.
"""

from __future__ import annotations

from typing import Any

import requests

from kbnb.observability.logging import get_logger
from kbnb.observability.redaction import safe_log_context

from .contracts import CancelResult, PaymentGatewayError, ReceiptVerification
from .settings import GatewaySettings

logger = get_logger(__name__)

# receipt "status" value the gateway uses for a captured payment
RECEIPT_STATUS_PAID = 1

# cancel error codes meaning there is nothing left to refund
CANCEL_WAIVED_CODES = frozenset({"RC_ALREADY_CANCELLED", "RC_RECEIPT_EXPIRED"})


class ReceiptGatewayClient:
    """PaymentGateway implementation over HTTP.

    Usage:
        client = ReceiptGatewayClient(GatewaySettings.from_env())
        token = client.get_access_token()
        verification = client.verify_receipt("6100ab...", token)
    """

    def __init__(
        self,
        settings: GatewaySettings,
        session: requests.Session | None = None,
    ) -> None:
        self._settings = settings
        self._session = session or requests.Session()

    def _url(self, path: str) -> str:
        return self._settings.base_url + path

    def _send(
        self,
        method: str,
        path: str,
        *,
        json: dict[str, Any] | None = None,
        token: str | None = None,
        allow_error_status: bool = False,
    ) -> dict[str, Any]:
        """Perform one request and return the decoded envelope.

        Raises:
            PaymentGatewayError: On network errors, timeouts, unexpected HTTP
                status (unless allow_error_status) or a non-JSON body.
        """
        headers = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = token

        try:
            resp = self._session.request(
                method,
                self._url(path),
                json=json,
                headers=headers,
                timeout=self._settings.timeout,
            )
        except requests.Timeout as exc:
            raise PaymentGatewayError(f"payment gateway timed out on {path}") from exc
        except requests.RequestException as exc:
            raise PaymentGatewayError(f"payment gateway unreachable on {path}") from exc

        if resp.status_code >= 400 and not allow_error_status:
            raise PaymentGatewayError(
                f"payment gateway returned HTTP {resp.status_code} on {path}"
            )

        try:
            body = resp.json()
        except ValueError as exc:
            raise PaymentGatewayError(f"payment gateway sent a non-JSON body on {path}") from exc

        if not isinstance(body, dict):
            raise PaymentGatewayError(f"payment gateway sent an unexpected body on {path}")
        return body

    def get_access_token(self) -> str:
        """Exchange application id + private key for an access token.

        Raises:
            PaymentGatewayError: If the gateway rejects the credentials or is unavailable.
        """
        body = self._send(
            "POST",
            "request/token.json",
            json={
                "application_id": self._settings.application_id,
                "private_key": self._settings.private_key,
            },
        )
        data = body.get("data") or {}
        token = data.get("token") if isinstance(data, dict) else None
        if body.get("status") != 200 or not token:
            logger.warning(
                "payment gateway rejected token request",
                extra={"extra_fields": {"gateway_status": body.get("status"), "code": body.get("code")}},
            )
            raise PaymentGatewayError("payment gateway rejected the access token request")
        return token

    def verify_receipt(self, receipt_id: str, token: str) -> ReceiptVerification:
        """Look up a receipt and report whether it is a captured payment.

        Raises:
            PaymentGatewayError: If token is empty or the lookup fails.
        """
        if not token:
            raise PaymentGatewayError("access token is empty")

        body = self._send("GET", f"receipt/{receipt_id}.json", token=token)
        data = body.get("data")
        if body.get("status") != 200 or not isinstance(data, dict):
            raise PaymentGatewayError("payment gateway could not verify the receipt")

        receipt_status = data.get("status")
        price = data.get("price")
        try:
            amount = int(price) if isinstance(price, (int, float)) else None
        except (ValueError, OverflowError) as exc:
            raise PaymentGatewayError("payment gateway sent an invalid price") from exc
        verification = ReceiptVerification(
            receipt_id=receipt_id,
            confirmed=receipt_status == RECEIPT_STATUS_PAID,
            amount=amount,
            status=str(data.get("status_en") or receipt_status),
        )

        logger.info(
            "receipt verified",
            extra={
                "extra_fields": safe_log_context(
                    receipt_id=receipt_id,
                    confirmed=verification.confirmed,
                    gateway_status=verification.status,
                )
            },
        )
        return verification

    def cancel(
        self,
        receipt_id: str,
        reason: str,
        *,
        name: str | None = None,
    ) -> CancelResult:
        """Cancel the payment behind a receipt (full refund).

        Raises:
            PaymentGatewayError: If no token can be obtained or the call fails
                at the transport level.
        """
        token = self.get_access_token()
        body = self._send(
            "POST",
            "cancel.json",
            json={"receipt_id": receipt_id, "name": name or "", "reason": reason},
            token=token,
            allow_error_status=True,
        )

        code = body.get("code")
        if body.get("status") == 200:
            result = CancelResult(success=True)
        elif code in CANCEL_WAIVED_CODES:
            result = CancelResult(success=False, waived=True, message=body.get("message"))
        else:
            result = CancelResult(success=False, message=body.get("message"))

        logger.info(
            "receipt cancel requested",
            extra={
                "extra_fields": safe_log_context(
                    receipt_id=receipt_id,
                    success=result.success,
                    waived=result.waived,
                    code=code,
                )
            },
        )
        return result
