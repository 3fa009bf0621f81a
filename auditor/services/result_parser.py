"""Coerce free-form vendor replies into :class:`AuditResult` values.

Vendors are asked for bare JSON but frequently wrap it in prose or code
fences. Parsing is a two-stage fallback: decode the whole text, then decode
the first greedy ``{...}`` span. The second stage is a heuristic and is not
guaranteed: text containing several independent objects, or stray braces in
the surrounding prose, yields a span that is either invalid JSON (reported as
unparsable) or a different object than intended. Vendor output is outside our
control so this limitation is accepted rather than worked around.
"""

from __future__ import annotations

import json
import re
from typing import Any, Dict, List

from auditor.models.audit import AuditResult, LineNote, Severity, SEVERITIES, Vulnerability

_OBJECT_SPAN = re.compile(r"\{[\s\S]+\}")


class UnparsableResponseError(ValueError):
    """Raised when no structured audit result can be extracted from vendor text."""


def normalize_severity(raw: Any) -> Severity:
    """Map a vendor severity label onto ``high``, ``medium`` or ``low``."""

    text = str(raw or "").strip().lower()
    if text in SEVERITIES:
        return text  # type: ignore[return-value]
    if "high" in text:
        return "high"
    if "medium" in text:
        return "medium"
    return "low"


def _decode_object(text: str) -> Dict[str, Any] | None:
    try:
        data = json.loads(text)
    except (json.JSONDecodeError, TypeError):
        return None
    return data if isinstance(data, dict) else None


def _coerce_line(raw: Any) -> int | None:
    if isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        value = raw
    elif isinstance(raw, float) and raw.is_integer():
        value = int(raw)
    elif isinstance(raw, str) and raw.strip().isdigit():
        value = int(raw.strip())
    else:
        return None
    return value if value > 0 else None


def _coerce_text(raw: Any) -> str:
    if raw is None:
        return ""
    return raw if isinstance(raw, str) else str(raw)


def _entries(data: Dict[str, Any], *keys: str) -> List[Dict[str, Any]]:
    for key in keys:
        value = data.get(key)
        if isinstance(value, list):
            return [entry for entry in value if isinstance(entry, dict)]
    return []


def _build_result(data: Dict[str, Any]) -> AuditResult:
    vulnerabilities: List[Vulnerability] = []
    for entry in _entries(data, "vulnerabilities"):
        line = _coerce_line(entry.get("line"))
        if line is None:
            continue
        vulnerabilities.append(
            Vulnerability(
                line=line,
                type=_coerce_text(entry.get("type")),
                message=_coerce_text(entry.get("message")),
                severity=normalize_severity(entry.get("severity")),
            )
        )

    explanations: List[LineNote] = []
    for entry in _entries(data, "explanations"):
        line = _coerce_line(entry.get("line"))
        if line is None:
            continue
        explanations.append(LineNote(line, _coerce_text(entry.get("explanation", entry.get("text")))))

    fixes: List[LineNote] = []
    for entry in _entries(data, "suggestedFixes", "suggested_fixes"):
        line = _coerce_line(entry.get("line"))
        if line is None:
            continue
        fixes.append(LineNote(line, _coerce_text(entry.get("fix", entry.get("text")))))

    return AuditResult(
        vulnerabilities=tuple(vulnerabilities),
        explanations=tuple(explanations),
        suggested_fixes=tuple(fixes),
    )


def parse_audit_result(raw_text: str) -> AuditResult:
    """Parse vendor text into an audit result or raise :class:`UnparsableResponseError`."""

    data = _decode_object(raw_text)
    if data is None:
        match = _OBJECT_SPAN.search(raw_text or "")
        if match:
            data = _decode_object(match.group(0))
    if data is None:
        preview = (raw_text or "")[:120].replace("\n", " ")
        raise UnparsableResponseError(f"Could not parse audit response: {preview!r}")
    return _build_result(data)
