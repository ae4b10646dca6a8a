"""Normalization of raw command input into canonical settings dictionaries.

Two input shapes reach the bridge:

* query parameters from the HTTP API, where every value is a string and each
  field is coerced according to its kind,
* parsed JSON payloads from MQTT, where recognized fields are copied through
  untouched and validation is left to the device encoder.

Neither path raises on bad input; a malformed field is simply left out.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, Mapping, Optional

KIND_INT = "int"
KIND_BOOL = "bool"
KIND_COLOR = "color"
KIND_STRING = "string"
KIND_TEXT = "text"
KIND_DATE = "date"

COLOR_LENGTH = 6

_LEADING_INT_RE = re.compile(r"^\s*([+-]?\d+)", re.ASCII)
_MISSING = object()


@dataclass(frozen=True)
class FieldSpec:
    """A recognized settings field and how query strings are coerced into it."""

    name: str
    kind: str


def parse_leading_int(value: str) -> Optional[int]:
    """Parse the leading base-10 integer of ``value`` (``"12px"`` -> 12)."""

    match = _LEADING_INT_RE.match(value)
    if not match:
        return None
    return int(match.group(1))


def _coerce_int(raw: str) -> Any:
    parsed = parse_leading_int(raw)
    # Zero is indistinguishable from a missing value on the query path.
    if not parsed:
        return _MISSING
    return parsed


def _coerce_bool(raw: str) -> Any:
    return raw == "true"


def _coerce_color(raw: str) -> Any:
    if len(raw) != COLOR_LENGTH:
        return _MISSING
    return raw


def _coerce_string(raw: str) -> Any:
    return raw


def _coerce_text(raw: str) -> Any:
    if not raw:
        return _MISSING
    return raw


def parse_iso_date(raw: str) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp, accepting a trailing ``Z`` for UTC."""

    candidate = raw.strip()
    if candidate.endswith("Z"):
        candidate = candidate[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(candidate)
    except ValueError:
        return None


def _coerce_date(raw: str) -> Any:
    parsed = parse_iso_date(raw)
    if parsed is None:
        return _MISSING
    return parsed


_COERCERS: Dict[str, Callable[[str], Any]] = {
    KIND_INT: _coerce_int,
    KIND_BOOL: _coerce_bool,
    KIND_COLOR: _coerce_color,
    KIND_STRING: _coerce_string,
    KIND_TEXT: _coerce_text,
    KIND_DATE: _coerce_date,
}


def from_query(fields: Iterable[FieldSpec], params: Mapping[str, Any]) -> Dict[str, Any]:
    """Build settings from string-typed query parameters."""

    settings: Dict[str, Any] = {}
    for spec in fields:
        raw = params.get(spec.name)
        if not isinstance(raw, str):
            continue
        coercer = _COERCERS.get(spec.kind)
        if coercer is None:
            continue
        value = coercer(raw)
        if value is _MISSING:
            continue
        settings[spec.name] = value
    return settings


def from_payload(fields: Iterable[FieldSpec], payload: Mapping[str, Any]) -> Dict[str, Any]:
    """Copy recognized fields from a parsed JSON object without coercion."""

    return {spec.name: payload[spec.name] for spec in fields if spec.name in payload}


__all__ = [
    "COLOR_LENGTH",
    "FieldSpec",
    "KIND_BOOL",
    "KIND_COLOR",
    "KIND_DATE",
    "KIND_INT",
    "KIND_STRING",
    "KIND_TEXT",
    "from_payload",
    "from_query",
    "parse_iso_date",
    "parse_leading_int",
]
