"""
Dashboard Aggregator
====================

Merges the three valuation collections into a single reviewer view.

    fetch (parallel) -> tag formType -> dedup by uniqueId -> filter -> sort -> page

Status counts, the completion rate and the running durations of open
records are derived from the deduplicated set.
"""

import asyncio
import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, List, Literal, Optional

from pydantic import BaseModel, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from valuedesk.core.config import settings
from valuedesk.core.exceptions import ValidationError, ValueDeskError
from valuedesk.core.logging_config import logger
from valuedesk.modules.report.formatters import parse_date
from valuedesk.services.gateway import RequestGateway
from valuedesk.services.record_service import FETCH_ORDER, FormType, RecordService
from valuedesk.utils.pagination import clamp_page, paginate_list


class RecordStatus(str, Enum):
    PENDING = "pending"
    ON_PROGRESS = "on-progress"
    APPROVED = "approved"
    REJECTED = "rejected"
    REWORK = "rework"


# Statuses that still show a running duration
OPEN_STATUSES = (
    RecordStatus.PENDING,
    RecordStatus.ON_PROGRESS,
    RecordStatus.REJECTED,
    RecordStatus.REWORK,
)

DATE_SORT_FIELDS = ("createdAt", "dateTime", "updatedAt", "lastUpdatedAt")
DURATION_SORT_FIELD = "duration"


def normalize_status(value: Any) -> Optional[RecordStatus]:
    """Trimmed, lower-cased status; None for anything unrecognised"""
    if isinstance(value, RecordStatus):
        return value
    text = str(value if value is not None else "").strip().lower()
    for status in RecordStatus:
        if status.value == text:
            return status
    return None


def parse_instant(value: Any) -> Optional[datetime]:
    """
    Timestamp of a record field as an aware datetime.

    Accepts ISO-8601 strings (with or without "Z"), epoch milliseconds and
    the plain date layouts understood by ``parse_date``.
    """
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    if not isinstance(value, str) or not value.strip():
        return None
    try:
        parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError:
        day = parse_date(value)
        if day is None:
            return None
        parsed = datetime(day.year, day.month, day.day)
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def record_key(record: Dict[str, Any]) -> Optional[str]:
    key = record.get("_id") or record.get("uniqueId")
    return str(key) if key else None


def last_modified(record: Dict[str, Any]) -> Optional[datetime]:
    """First non-empty of lastUpdatedAt, updatedAt, createdAt"""
    value = record.get("lastUpdatedAt") or record.get("updatedAt") or record.get("createdAt")
    return parse_instant(value)


def deduplicate(records: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """
    Collapse records sharing a uniqueId, keeping the most recently modified.

    The survivor takes the slot of the first occurrence. A newcomer only
    replaces it when strictly newer; ties and unparsable timestamps keep the
    existing entry. Records without a uniqueId are always kept.
    """
    result: List[Dict[str, Any]] = []
    positions: Dict[Any, int] = {}

    for record in records:
        unique_id = record.get("uniqueId")
        if not unique_id:
            result.append(record)
            continue

        if unique_id not in positions:
            positions[unique_id] = len(result)
            result.append(record)
            continue

        index = positions[unique_id]
        existing_time = last_modified(result[index])
        current_time = last_modified(record)
        if existing_time is not None and current_time is not None and current_time > existing_time:
            result[index] = record
            logger.warning(f"[Dashboard] Duplicate uniqueId '{unique_id}': kept newer version")
        else:
            logger.warning(f"[Dashboard] Duplicate uniqueId '{unique_id}': kept existing version")

    return result


# ========== Status summary ==========

@dataclass
class StatusSummary:
    counts: Dict[RecordStatus, int] = field(default_factory=dict)
    total: int = 0

    def count(self, status: RecordStatus) -> int:
        return self.counts.get(status, 0)

    @property
    def completion_rate(self) -> int:
        """Approved plus rejected over total, as a whole percentage"""
        if self.total == 0:
            return 0
        done = self.count(RecordStatus.APPROVED) + self.count(RecordStatus.REJECTED)
        return int(math.floor(done * 100 / self.total + 0.5))

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {status.value: self.count(status) for status in RecordStatus}
        data["total"] = self.total
        data["completionRate"] = f"{self.completion_rate}%"
        return data


def summarize(records: List[Dict[str, Any]]) -> StatusSummary:
    counts = {status: 0 for status in RecordStatus}
    for record in records:
        status = normalize_status(record.get("status"))
        if status is not None:
            counts[status] += 1
    return StatusSummary(counts=counts, total=len(records))


# ========== Durations ==========

@dataclass(frozen=True)
class ElapsedDuration:
    days: int
    hours: int
    minutes: int
    seconds: int

    @classmethod
    def from_seconds(cls, total: float) -> "ElapsedDuration":
        total = max(0, int(total))
        minutes, seconds = divmod(total, 60)
        hours, minutes = divmod(minutes, 60)
        days, hours = divmod(hours, 24)
        return cls(days=days, hours=hours, minutes=minutes, seconds=seconds)

    @property
    def total_seconds(self) -> int:
        return self.days * 86400 + self.hours * 3600 + self.minutes * 60 + self.seconds

    def __str__(self) -> str:
        return f"{self.days}d {self.hours}h {self.minutes}m {self.seconds}s"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def compute_durations(
    records: List[Dict[str, Any]],
    now: Optional[datetime] = None,
) -> Dict[str, ElapsedDuration]:
    """Time since creation for every open record, keyed by _id (or uniqueId)"""
    now = now or _utcnow()
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)

    durations: Dict[str, ElapsedDuration] = {}
    for record in records:
        if normalize_status(record.get("status")) not in OPEN_STATUSES:
            continue
        key = record_key(record)
        created = parse_instant(record.get("createdAt"))
        if key is None or created is None:
            continue
        durations[key] = ElapsedDuration.from_seconds((now - created).total_seconds())
    return durations


class DurationTracker:
    """
    Background task that recomputes running durations on a fixed interval.

    ``source`` returns the current record list; ``snapshot()`` returns the
    latest computed durations.
    """

    def __init__(
        self,
        source: Callable[[], List[Dict[str, Any]]],
        interval: Optional[float] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.source = source
        self.interval = interval if interval is not None else settings.DURATION_REFRESH_INTERVAL
        self.clock = clock or _utcnow
        self._durations: Dict[str, ElapsedDuration] = {}
        self._task: Optional[asyncio.Task] = None
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    def refresh(self) -> Dict[str, ElapsedDuration]:
        self._durations = compute_durations(self.source(), self.clock())
        return self._durations

    def snapshot(self) -> Dict[str, ElapsedDuration]:
        return dict(self._durations)

    async def start(self) -> None:
        """Compute once immediately, then keep refreshing in the background"""
        if self._running:
            return
        self._running = True
        self.refresh()
        self._task = asyncio.create_task(self._refresh_loop())
        logger.debug(f"[Dashboard] Duration tracker started ({self.interval}s)")

    async def stop(self) -> None:
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.debug("[Dashboard] Duration tracker stopped")

    async def _refresh_loop(self) -> None:
        while self._running:
            try:
                await asyncio.sleep(self.interval)
                self.refresh()
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(f"[Dashboard] Duration refresh failed: {e}")


# ========== Query ==========

class DashboardQuery(BaseModel):
    """Filter, sort and page selection for the dashboard table"""
    status: Optional[RecordStatus] = None
    city: Optional[str] = None
    bank_name: Optional[str] = None
    engineer_name: Optional[str] = None
    sort_field: str = "createdAt"
    sort_order: Literal["asc", "desc"] = "desc"
    page: int = Field(default=1, ge=1)
    page_size: int = Field(default_factory=lambda: settings.DASHBOARD_PAGE_SIZE, ge=1)

    @field_validator("status", mode="before")
    @classmethod
    def normalize_status_filter(cls, v):
        if v is None or v == "":
            return None
        status = normalize_status(v)
        if status is None:
            raise ValueError(f"unknown status '{v}'")
        return status

    @field_validator("city", "bank_name", "engineer_name", mode="before")
    @classmethod
    def blank_to_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v

    def toggle_sort(self, sort_field: str) -> "DashboardQuery":
        """Same column flips the order; a new column starts ascending. Back to page 1."""
        if sort_field == self.sort_field:
            order = "asc" if self.sort_order == "desc" else "desc"
        else:
            order = "asc"
        return self.model_copy(update={"sort_field": sort_field, "sort_order": order, "page": 1})

    def with_filters(self, **filters) -> "DashboardQuery":
        """Change filters; any filter change goes back to page 1"""
        return build_query(**{**self.model_dump(), **filters, "page": 1})


def build_query(**kwargs) -> DashboardQuery:
    """
    DashboardQuery from loose keyword input.

    Raises:
        ValidationError: a value was rejected
    """
    try:
        return DashboardQuery(**kwargs)
    except PydanticValidationError as e:
        first = e.errors()[0]
        location = ".".join(str(part) for part in first.get("loc", ())) or None
        raise ValidationError(f"Invalid dashboard query: {first.get('msg')}", field=location)


def filter_records(records: List[Dict[str, Any]], query: DashboardQuery) -> List[Dict[str, Any]]:
    """All set filters must match"""
    result = []
    for record in records:
        if query.status and normalize_status(record.get("status")) != query.status:
            continue
        if query.city and record.get("city") != query.city:
            continue
        if query.bank_name and record.get("bankName") != query.bank_name:
            continue
        if query.engineer_name and record.get("engineerName") != query.engineer_name:
            continue
        result.append(record)
    return result


def _sort_value(record: Dict[str, Any], sort_field: str, durations: Dict[str, ElapsedDuration]):
    if sort_field == DURATION_SORT_FIELD:
        duration = durations.get(record_key(record) or "")
        return (0, duration.total_seconds if duration else 0)

    value = record.get(sort_field)
    if sort_field in DATE_SORT_FIELDS:
        instant = parse_instant(value)
        return (0, instant.timestamp()) if instant else None
    if value is None or value == "":
        return None
    if isinstance(value, str):
        return (1, value.lower())
    if isinstance(value, (int, float)):
        return (0, value)
    return (1, str(value).lower())


def sort_records(
    records: List[Dict[str, Any]],
    sort_field: str = "createdAt",
    sort_order: str = "desc",
    durations: Optional[Dict[str, ElapsedDuration]] = None,
) -> List[Dict[str, Any]]:
    """
    Stable sort by one column.

    Strings compare case-insensitively, date columns by instant and the
    synthetic "duration" column by elapsed seconds. Records with no value
    for the column go last in either order.
    """
    durations = durations or {}
    keyed = [(record, _sort_value(record, sort_field, durations)) for record in records]
    present = [item for item in keyed if item[1] is not None]
    missing = [record for record, key in keyed if key is None]

    present.sort(key=lambda item: item[1], reverse=(sort_order == "desc"))
    return [record for record, _ in present] + missing


def unique_values(records: List[Dict[str, Any]], key: str) -> List[str]:
    values = {
        record[key] for record in records
        if isinstance(record.get(key), str) and record[key].strip()
    }
    return sorted(values)


class DashboardAggregator:
    """Reviewer dashboard over all three form collections"""

    def __init__(self, gateway: RequestGateway):
        self.gateway = gateway
        self.services: Dict[FormType, RecordService] = {
            form_type: RecordService(gateway, form_type) for form_type in FETCH_ORDER
        }
        self.records: List[Dict[str, Any]] = []
        self._identity: Optional[Dict[str, str]] = None

    async def _fetch_source(self, form_type: FormType, username: str, role: str, client_id: str):
        try:
            records = await self.services[form_type].list_records(username, role, client_id)
        except ValueDeskError as e:
            logger.warning(f"[Dashboard] {form_type.value} fetch failed, using empty list: {e.message}")
            return []
        return [{**record, "formType": form_type.value} for record in records]

    async def fetch_all(self, username: str, role: str, client_id: str) -> List[Dict[str, Any]]:
        """Fresh fetch of every collection, tagged, merged and deduplicated"""
        self._identity = {"username": username, "role": role, "client_id": client_id}
        for form_type in FETCH_ORDER:
            self.gateway.invalidate_cache(form_type.endpoint)

        batches = await asyncio.gather(*[
            self._fetch_source(form_type, username, role, client_id)
            for form_type in FETCH_ORDER
        ])
        merged = [record for batch in batches for record in batch]
        self.records = deduplicate(merged)

        logger.info(
            f"[Dashboard] Loaded {len(self.records)} records "
            f"({len(merged) - len(self.records)} duplicates removed)"
        )
        return self.records

    @property
    def summary(self) -> StatusSummary:
        return summarize(self.records)

    def filter_options(self) -> Dict[str, List[str]]:
        return {
            "cities": unique_values(self.records, "city"),
            "banks": unique_values(self.records, "bankName"),
            "engineers": unique_values(self.records, "engineerName"),
        }

    def durations(self, now: Optional[datetime] = None) -> Dict[str, ElapsedDuration]:
        return compute_durations(self.records, now)

    def duration_tracker(self, interval: Optional[float] = None) -> DurationTracker:
        return DurationTracker(lambda: self.records, interval=interval)

    def view(self, query: Optional[DashboardQuery] = None, now: Optional[datetime] = None) -> Dict[str, Any]:
        """Filtered, sorted page of records plus pagination metadata"""
        query = query or DashboardQuery()
        filtered = filter_records(self.records, query)
        ordered = sort_records(filtered, query.sort_field, query.sort_order, self.durations(now))
        page = clamp_page(query.page, len(ordered), query.page_size)
        return paginate_list(ordered, page, query.page_size)

    async def request_rework(
        self,
        record: Dict[str, Any],
        comments: str,
        username: str,
        role: str,
    ) -> List[Dict[str, Any]]:
        """
        Send ``record`` back for rework through its own collection, then refetch.

        Raises:
            UnknownFormTypeError: the record has no recognised formType
        """
        form_type = FormType.parse(record.get("formType"))
        await self.services[form_type].request_rework(record.get("uniqueId"), comments, username, role)

        identity = self._identity or {"username": username, "role": role, "client_id": ""}
        return await self.fetch_all(identity["username"], identity["role"], identity["client_id"])
