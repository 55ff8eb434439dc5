"""Payment gateway contract.

The reservation use cases only talk to a PaymentGateway; concrete adapters
live in receipt_client (REST receipt gateway) and stripe_gateway.
"""

from dataclasses import dataclass
from typing import Protocol


class PaymentGatewayError(Exception):
    """Gateway unreachable, timed out, rejected credentials or answered garbage."""


@dataclass(frozen=True)
class ReceiptVerification:
    """Result of looking a receipt up at the gateway.

    Attributes:
        receipt_id: The receipt that was verified.
        confirmed: True only if the gateway reports the payment as captured.
        amount: Captured amount, if the gateway reports one.
        status: Gateway-specific status label (for logs).
    """

    receipt_id: str
    confirmed: bool
    amount: int | None = None
    status: str = ""


@dataclass(frozen=True)
class CancelResult:
    """Result of a cancel/refund request.

    waived is True when the gateway says there is nothing left to refund
    (receipt already cancelled or expired on its side).
    """

    success: bool
    waived: bool = False
    message: str | None = None

    @property
    def settled(self) -> bool:
        return self.success or self.waived


class PaymentGateway(Protocol):
    """Operations the reservation flow needs from a payment provider."""

    def get_access_token(self) -> str:
        ...

    def verify_receipt(self, receipt_id: str, token: str) -> ReceiptVerification:
        ...

    def cancel(
        self,
        receipt_id: str,
        reason: str,
        *,
        name: str | None = None,
    ) -> CancelResult:
        ...
