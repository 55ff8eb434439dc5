"""Redaction helpers for safe logging.

Receipt ids are bearer-like references at the payment gateway: only their
last four characters are ever logged. Emails never reach the logs.
"""

import re
from datetime import date
from typing import Any

_EMAIL_PATTERN = re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}")

_REDACTED = "[REDACTED]"
_SECRET_KEYS = ("token", "private_key", "secret", "password", "authorization")


def mask_receipt(receipt_id: str | None) -> str:
    """Keep the last four characters of a receipt id."""
    if not receipt_id:
        return "null"
    if len(receipt_id) <= 4:
        return "****"
    return "*" * (len(receipt_id) - 4) + receipt_id[-4:]


def redact_string(value: str) -> str:
    return _EMAIL_PATTERN.sub(_REDACTED, value)


def redact_value(key: str, value: Any) -> Any:
    """Return a log-safe form of value; key decides secret/receipt handling."""
    lowered = key.lower()
    if any(marker in lowered for marker in _SECRET_KEYS):
        return _REDACTED
    if "receipt" in lowered:
        return mask_receipt(value if isinstance(value, str) else None)
    if value is None or isinstance(value, (bool, int, float)):
        return value
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, str):
        return redact_string(value)
    if isinstance(value, dict):
        return f"dict(keys={sorted(value.keys())})"
    if isinstance(value, (list, tuple)):
        return f"list(len={len(value)})"
    return f"<{type(value).__name__}>"


def safe_log_context(**kwargs: Any) -> dict[str, Any]:
    """Build an extra_fields dict safe for logging."""
    return {k: redact_value(k, v) for k, v in kwargs.items()}
