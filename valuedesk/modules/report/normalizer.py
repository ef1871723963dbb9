"""
Data Normalizer
===============

Flattens a raw valuation record into the field map the report template reads.

The merge is a small pipeline of *sources*. Each source extracts a partial flat
map holding only acceptable (non-empty) values, and the reducer applies them in
order so that a later source overrides an earlier one only where it actually
supplies a value:

    1. root-level record fields          (lowest priority)
    2. form sections, in schema order
    3. the finalized ``pdfDetails`` snapshot (highest priority)

Because the sources are built from the same compiled schema the resolver uses,
``normalize(record)[name] == resolve(record, name)`` for every logical field.
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from valuedesk.modules.report.field_schema import (
    IMAGE_COLLECTIONS,
    LOGICAL_FIELDS,
    SECTION_MAPPINGS,
    SNAPSHOT_SECTION,
    SectionMapping,
    root_candidates,
    snapshot_candidates,
)
from valuedesk.modules.report.resolver import MISSING, NA, coerce_value, lookup_path


Extractor = Callable[[Mapping], Dict[str, Any]]


@dataclass(frozen=True)
class FieldSource:
    """A named partial extractor in the merge pipeline"""
    name: str
    extract: Extractor


def _first_accepted(container: Any, keys: Tuple[str, ...]) -> Any:
    """Scan keys from highest to lowest priority"""
    for key in reversed(keys):
        value = coerce_value(lookup_path(container, key))
        if value is not MISSING:
            return value
    return MISSING


def _root_source() -> FieldSource:
    plan = {name: root_candidates(name) for name in LOGICAL_FIELDS}

    def extract(record: Mapping) -> Dict[str, Any]:
        partial = {}
        for name, keys in plan.items():
            value = _first_accepted(record, keys)
            if value is not MISSING:
                partial[name] = value
        return partial

    return FieldSource("root", extract)


def _section_source(section: SectionMapping) -> FieldSource:
    def extract(record: Mapping) -> Dict[str, Any]:
        body = lookup_path(record, section.path)
        if not isinstance(body, Mapping) or not body:
            return {}
        partial = {}
        for name, keys in section.fields.items():
            value = _first_accepted(body, keys)
            if value is not MISSING:
                partial[name] = value
        return partial

    return FieldSource(section.path, extract)


def _snapshot_source() -> FieldSource:
    plan = {name: snapshot_candidates(name) for name in LOGICAL_FIELDS}

    def extract(record: Mapping) -> Dict[str, Any]:
        snapshot = record.get(SNAPSHOT_SECTION)
        if not isinstance(snapshot, Mapping) or not snapshot:
            return {}
        partial = {}
        for name, keys in plan.items():
            value = _first_accepted(snapshot, keys)
            if value is not MISSING:
                partial[name] = value
        return partial

    return FieldSource(SNAPSHOT_SECTION, extract)


def build_pipeline() -> Tuple[FieldSource, ...]:
    """Sources in merge order, lowest priority first"""
    return (
        _root_source(),
        *(_section_source(section) for section in SECTION_MAPPINGS),
        _snapshot_source(),
    )


PIPELINE: Tuple[FieldSource, ...] = build_pipeline()


def merge_non_empty(accumulator: Dict[str, Any], partial: Mapping[str, Any]) -> Dict[str, Any]:
    """Reducer: values in ``partial`` override, empty values never do"""
    merged = dict(accumulator)
    for name, value in partial.items():
        if coerce_value(value) is not MISSING:
            merged[name] = value
    return merged


def _image_list(record: Mapping, key: str) -> List[Any]:
    images = record.get(key)
    if isinstance(images, (list, tuple)):
        return [img for img in images if img]
    return []


def normalize(record: Optional[Mapping], pipeline: Tuple[FieldSource, ...] = PIPELINE) -> Dict[str, Any]:
    """
    Produce the flat field map for a record.

    Every logical field is present in the output; unresolved fields hold "NA".
    Image collections are copied through as lists. The input is not mutated.

    Args:
        record: Raw valuation record
        pipeline: Merge sources, lowest priority first

    Returns:
        Flat mapping of logical field name -> value
    """
    record = record if isinstance(record, Mapping) else {}

    merged: Dict[str, Any] = {}
    for source in pipeline:
        merged = merge_non_empty(merged, source.extract(record))

    flat = {name: merged.get(name, NA) for name in LOGICAL_FIELDS}
    for key in IMAGE_COLLECTIONS:
        flat[key] = _image_list(record, key)
    return flat


def applied_sources(record: Optional[Mapping], pipeline: Tuple[FieldSource, ...] = PIPELINE) -> List[str]:
    """Names of the sources that contributed at least one value (for diagnostics)"""
    record = record if isinstance(record, Mapping) else {}
    return [source.name for source in pipeline if source.extract(record)]
