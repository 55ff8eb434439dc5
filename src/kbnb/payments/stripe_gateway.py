"""Stripe-backed PaymentGateway.

The receipt id is a PaymentIntent id (pi_...). Verification retrieves the
intent; cancellation issues a full refund against it.

Never log full Stripe payloads (only masked ids and statuses).
"""

from __future__ import annotations

import os

import stripe

from kbnb.observability.logging import get_logger
from kbnb.observability.redaction import safe_log_context

from .contracts import CancelResult, PaymentGatewayError, ReceiptVerification

logger = get_logger(__name__)

# Stripe error codes meaning the intent has nothing left to refund
_REFUND_WAIVED_CODES = frozenset({"charge_already_refunded", "charge_disputed"})


class StripeGateway:
    """PaymentGateway over Stripe PaymentIntents and Refunds.

    Stripe authenticates every call with the secret key, so the "access
    token" handed to verify_receipt is the key itself.
    """

    def __init__(self, api_key: str | None = None) -> None:
        """Initialize the gateway.

        Args:
            api_key: Stripe secret key. Defaults to STRIPE_SECRET_KEY env var.

        Raises:
            RuntimeError: If no API key is provided or found in environment.
        """
        self._api_key = api_key or os.environ.get("STRIPE_SECRET_KEY")
        if not self._api_key:
            raise RuntimeError(
                "Stripe API key not provided. "
                "Set STRIPE_SECRET_KEY or pass api_key parameter."
            )

    def _client(self, api_key: str | None = None) -> stripe.StripeClient:
        return stripe.StripeClient(api_key or self._api_key)

    def get_access_token(self) -> str:
        return self._api_key

    def verify_receipt(self, receipt_id: str, token: str) -> ReceiptVerification:
        """Retrieve the PaymentIntent and report it confirmed iff it succeeded.

        Raises:
            PaymentGatewayError: If token is empty or Stripe fails.
        """
        if not token:
            raise PaymentGatewayError("access token is empty")

        try:
            intent = self._client(token).v1.payment_intents.retrieve(receipt_id)
        except stripe.StripeError as exc:
            raise PaymentGatewayError(
                f"stripe could not retrieve payment intent: {type(exc).__name__}"
            ) from exc

        verification = ReceiptVerification(
            receipt_id=receipt_id,
            confirmed=intent.status == "succeeded",
            amount=intent.amount_received,
            status=intent.status,
        )
        logger.info(
            "stripe payment intent verified",
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
        """Refund the PaymentIntent in full.

        Raises:
            PaymentGatewayError: On Stripe connectivity/authentication failures.
        """
        metadata = {"cancel_reason": reason[:500]}
        if name:
            metadata["requested_by"] = name[:100]

        try:
            refund = self._client().v1.refunds.create(
                params={
                    "payment_intent": receipt_id,
                    "reason": "requested_by_customer",
                    "metadata": metadata,
                },
                options={"idempotency_key": f"refund:{receipt_id}"},
            )
        except stripe.InvalidRequestError as exc:
            if exc.code in _REFUND_WAIVED_CODES:
                return CancelResult(success=False, waived=True, message=exc.code)
            return CancelResult(success=False, message=exc.code or "invalid_request")
        except stripe.StripeError as exc:
            raise PaymentGatewayError(f"stripe refund failed: {type(exc).__name__}") from exc

        success = refund.status in ("succeeded", "pending")
        logger.info(
            "stripe refund created",
            extra={
                "extra_fields": safe_log_context(
                    receipt_id=receipt_id,
                    refund_status=refund.status,
                )
            },
        )
        return CancelResult(success=success, message=None if success else refund.status)
