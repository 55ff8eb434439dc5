"""Shared pytest fixtures for kbnb tests."""
import sys
sys.dont_write_bytecode = True

import pytest  # noqa: E402


@pytest.fixture(autouse=True)
def _reset_payment_gateway():
    """Drop the process-wide gateway so env changes in one test don't leak."""
    from kbnb.payments.gateway import reset_payment_gateway

    reset_payment_gateway()
    yield
    reset_payment_gateway()
