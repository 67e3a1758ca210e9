"""Keep member PII out of log lines.

Member records carry contact details and identity numbers, and allocation
remarks are free text typed at the front desk. Log context is built with
safe_log_context() so none of it is written verbatim.
"""

import re
from datetime import date, datetime
from typing import Any

REDACTED = "[REDACTED]"

# Phone numbers (optionally +country code, spaces/dashes/parens) and emails.
_PII_PATTERNS = (
    re.compile(r"\+?\d[\d\s\-()]{8,}\d"),
    re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}"),
)

# Member and allocation fields dropped outright.
MEMBER_FIELDS = frozenset({"name", "email", "contact_number", "identification_number", "remarks"})


def redact_string(value: str) -> str:
    for pattern in _PII_PATTERNS:
        value = pattern.sub(REDACTED, value)
    return value


def redact_value(value: Any) -> str:
    """Render a value for a log line.

    Scalars and dates keep their value, strings are scrubbed of phone
    numbers and emails, and containers are reduced to their shape.
    """
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, str):
        return redact_string(value)
    if isinstance(value, dict):
        return f"dict(keys={list(value)})"
    if isinstance(value, (list, tuple)):
        return f"list(len={len(value)})"
    return f"<{type(value).__name__}>"


def safe_log_context(**fields: Any) -> dict[str, str]:
    context = {}
    for key, value in fields.items():
        if key in MEMBER_FIELDS and value is not None:
            context[key] = REDACTED
        else:
            context[key] = redact_value(value)
    return context
