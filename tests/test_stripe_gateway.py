"""Tests for StripeGateway (StripeClient mocked)."""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest
import stripe

from kbnb.payments.contracts import PaymentGatewayError
from kbnb.payments.stripe_gateway import StripeGateway


@pytest.fixture
def stripe_client():
    with patch("kbnb.payments.stripe_gateway.stripe.StripeClient") as client_cls:
        client = MagicMock()
        client_cls.return_value = client
        client.client_cls = client_cls
        yield client


class TestInit:
    def test_key_from_env(self, monkeypatch):
        monkeypatch.setenv("STRIPE_SECRET_KEY", "sk_test_env")

        assert StripeGateway().get_access_token() == "sk_test_env"

    def test_missing_key(self, monkeypatch):
        monkeypatch.delenv("STRIPE_SECRET_KEY", raising=False)

        with pytest.raises(RuntimeError, match="STRIPE_SECRET_KEY"):
            StripeGateway()


class TestVerify:
    def test_succeeded_intent_confirmed(self, stripe_client):
        stripe_client.v1.payment_intents.retrieve.return_value = SimpleNamespace(
            status="succeeded", amount_received=240000
        )
        gateway = StripeGateway(api_key="sk_test_1")

        result = gateway.verify_receipt("pi_123", gateway.get_access_token())

        assert result.confirmed is True
        assert result.amount == 240000
        stripe_client.client_cls.assert_called_with("sk_test_1")
        stripe_client.v1.payment_intents.retrieve.assert_called_once_with("pi_123")

    def test_unpaid_intent_not_confirmed(self, stripe_client):
        stripe_client.v1.payment_intents.retrieve.return_value = SimpleNamespace(
            status="requires_payment_method", amount_received=0
        )

        result = StripeGateway(api_key="sk_test_1").verify_receipt("pi_123", "sk_test_1")

        assert result.confirmed is False
        assert result.status == "requires_payment_method"

    def test_stripe_error_wrapped(self, stripe_client):
        stripe_client.v1.payment_intents.retrieve.side_effect = stripe.APIConnectionError("down")

        with pytest.raises(PaymentGatewayError):
            StripeGateway(api_key="sk_test_1").verify_receipt("pi_123", "sk_test_1")

    def test_empty_token(self, stripe_client):
        with pytest.raises(PaymentGatewayError):
            StripeGateway(api_key="sk_test_1").verify_receipt("pi_123", "")


class TestCancel:
    def test_refund_created_with_idempotency_key(self, stripe_client):
        stripe_client.v1.refunds.create.return_value = SimpleNamespace(status="succeeded")

        result = StripeGateway(api_key="sk_test_1").cancel("pi_123", "change of plans", name="guest")

        assert result.success is True
        call = stripe_client.v1.refunds.create.call_args
        assert call.kwargs["params"]["payment_intent"] == "pi_123"
        assert call.kwargs["params"]["metadata"] == {"cancel_reason": "change of plans", "requested_by": "guest"}
        assert call.kwargs["options"] == {"idempotency_key": "refund:pi_123"}

    def test_pending_refund_counts_as_success(self, stripe_client):
        stripe_client.v1.refunds.create.return_value = SimpleNamespace(status="pending")

        assert StripeGateway(api_key="sk_test_1").cancel("pi_123", "x").success is True

    def test_failed_refund(self, stripe_client):
        stripe_client.v1.refunds.create.return_value = SimpleNamespace(status="failed")

        result = StripeGateway(api_key="sk_test_1").cancel("pi_123", "x")

        assert result.settled is False
        assert result.message == "failed"

    def test_already_refunded_is_waived(self, stripe_client):
        stripe_client.v1.refunds.create.side_effect = stripe.InvalidRequestError(
            "Charge has already been refunded.", None, code="charge_already_refunded"
        )

        result = StripeGateway(api_key="sk_test_1").cancel("pi_123", "x")

        assert result.waived is True
        assert result.settled is True

    def test_other_invalid_request_refused(self, stripe_client):
        stripe_client.v1.refunds.create.side_effect = stripe.InvalidRequestError(
            "No such payment_intent", "payment_intent", code="resource_missing"
        )

        result = StripeGateway(api_key="sk_test_1").cancel("pi_404", "x")

        assert result.settled is False
        assert result.message == "resource_missing"

    def test_auth_error_raises(self, stripe_client):
        stripe_client.v1.refunds.create.side_effect = stripe.AuthenticationError("bad key")

        with pytest.raises(PaymentGatewayError):
            StripeGateway(api_key="sk_test_1").cancel("pi_123", "x")
