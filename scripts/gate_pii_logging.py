#!/usr/bin/env python3
"""Gate: member PII must not reach log lines unredacted.

Fails if, anywhere under src/:
- print( is called in runtime code
- a logger call mentions a member or remarks field (email, contact number,
  identification number, remarks) without going through safe_log_context /
  redact_value / redact_string

Logger calls are inspected whole (multi-line calls included) by walking
the AST rather than line by line.

Usage:
    python scripts/gate_pii_logging.py
"""

import ast
import sys
from pathlib import Path

SENSITIVE_FIELDS = (
    "remarks",
    "email",
    "contact_number",
    "identification_number",
    "member_name",
)

REDACTION_HELPERS = (
    "safe_log_context",
    "redact_value",
    "redact_string",
)

LOG_METHODS = frozenset({"debug", "info", "warning", "error", "critical", "exception"})


def _is_logger_call(node: ast.Call) -> bool:
    func = node.func
    return (
        isinstance(func, ast.Attribute)
        and func.attr in LOG_METHODS
        and isinstance(func.value, ast.Name)
        and func.value.id == "logger"
    )


def _is_print_call(node: ast.Call) -> bool:
    return isinstance(node.func, ast.Name) and node.func.id == "print"


def check_source(source: str, filename: str = "<string>") -> list[str]:
    """Return violation messages for one module's source."""
    try:
        tree = ast.parse(source, filename=filename)
    except SyntaxError as exc:
        return [f"{filename}:{exc.lineno}: cannot parse ({exc.msg})"]

    errors: list[str] = []
    for node in ast.walk(tree):
        if not isinstance(node, ast.Call):
            continue

        if _is_print_call(node):
            errors.append(f"{filename}:{node.lineno}: print() not allowed in runtime code")
            continue

        if not _is_logger_call(node):
            continue

        segment = (ast.get_source_segment(source, node) or "").lower()
        if any(helper in segment for helper in REDACTION_HELPERS):
            continue
        for field in SENSITIVE_FIELDS:
            if field in segment:
                errors.append(
                    f"{filename}:{node.lineno}: logger call mentions '{field}' "
                    "without redaction (safe_log_context/redact_value)"
                )
    return errors


def check_tree(src_dir: Path) -> list[str]:
    errors: list[str] = []
    for pyfile in sorted(src_dir.rglob("*.py")):
        errors.extend(check_source(pyfile.read_text(encoding="utf-8"), str(pyfile)))
    return errors


def main() -> int:
    src_dir = Path(__file__).resolve().parent.parent / "src"
    if not src_dir.exists():
        sys.stderr.write("Error: src directory not found\n")
        return 1

    errors = check_tree(src_dir)
    if errors:
        sys.stderr.write("PII logging gate FAILED:\n")
        for err in errors:
            sys.stderr.write(f"  {err}\n")
        return 1

    sys.stdout.write("PII logging gate PASSED\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())
