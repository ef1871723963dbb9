"""
Field Resolver - resolves a logical report field against a raw valuation record.

Pure functions only: no logging, no I/O, no mutation of the record.
"""

from typing import Any, Dict, Iterable, Mapping, Optional

from valuedesk.modules.report.field_schema import (
    DESCRIPTIVE_KEYS,
    FieldSpec,
    get_field_spec,
)
from valuedesk.modules.report.formatters import format_date


NA = "NA"


class _Missing:
    """Marker for a candidate that did not supply a usable value"""

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING = _Missing()


def lookup_path(record: Any, path: str) -> Any:
    """Walk a dotted path into nested mappings; MISSING when any hop is absent"""
    current = record
    for part in path.split("."):
        if not isinstance(current, Mapping) or part not in current:
            return MISSING
        current = current[part]
    return current


def coerce_value(value: Any) -> Any:
    """
    Apply the acceptance rules to a raw candidate value.

    - None / empty string / MISSING -> MISSING
    - bool -> "Yes" / "No"
    - mapping -> its descriptive sub-key when present, otherwise MISSING
    - list / tuple -> MISSING (collections are never scalar report values)
    """
    if value is MISSING or value is None:
        return MISSING
    if isinstance(value, bool):
        return "Yes" if value else "No"
    if isinstance(value, str):
        return value if value != "" else MISSING
    if isinstance(value, Mapping):
        for key in DESCRIPTIVE_KEYS:
            inner = value.get(key)
            if isinstance(inner, str) and inner != "":
                return inner
        return MISSING
    if isinstance(value, (list, tuple, set)):
        return MISSING
    return value


def resolve_spec(record: Mapping, spec: FieldSpec) -> Any:
    """Highest-priority acceptable candidate for a compiled spec, or MISSING"""
    if not isinstance(record, Mapping):
        return MISSING
    for path in reversed(spec.candidates):
        value = coerce_value(lookup_path(record, path))
        if value is not MISSING:
            return value
    return MISSING


def resolve(record: Optional[Mapping], name: str, default: Any = NA) -> Any:
    """
    Resolve a logical field name to a concrete value.

    Args:
        record: Raw valuation record (any nesting)
        name: Logical field name
        default: Returned when no candidate resolves

    Returns:
        The resolved value, or ``default`` ("NA" unless overridden)
    """
    value = resolve_spec(record or {}, get_field_spec(name))
    return default if value is MISSING else value


def resolve_many(record: Optional[Mapping], names: Iterable[str]) -> Dict[str, Any]:
    return {name: resolve(record, name) for name in names}


def resolve_date(record: Optional[Mapping], name: str) -> str:
    """Resolve a field and format it as d/m/yyyy"""
    return format_date(resolve(record, name))


def is_present(value: Any) -> bool:
    """True for values that would be rendered as real data"""
    return value is not MISSING and value is not None and value != "" and value != NA
