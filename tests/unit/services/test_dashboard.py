"""
Unit Tests for the Dashboard Aggregator
Tests for: dedup, status summary, durations, filtering, sorting, paging, fetch
"""
import asyncio
import logging
from datetime import datetime, timezone

import httpx
import pytest
from faker import Faker

from valuedesk.core.exceptions import UnknownFormTypeError, ValidationError
from valuedesk.services.dashboard import (
    DashboardAggregator,
    DashboardQuery,
    DurationTracker,
    ElapsedDuration,
    RecordStatus,
    build_query,
    compute_durations,
    deduplicate,
    filter_records,
    normalize_status,
    parse_instant,
    sort_records,
    summarize,
)

fake = Faker()

NOW = datetime(2025, 1, 2, 1, 2, 3, tzinfo=timezone.utc)


def _record(unique_id, status="pending", **extra):
    record = {"_id": f"id-{unique_id}", "uniqueId": unique_id, "status": status,
              "engineerName": fake.name()}
    record.update(extra)
    return record


class TestStatusHelpers:
    """Test status and timestamp parsing"""

    def test_normalize_status(self):
        """Test trimming and case folding"""
        assert normalize_status("  Approved ") is RecordStatus.APPROVED
        assert normalize_status("ON-PROGRESS") is RecordStatus.ON_PROGRESS
        assert normalize_status("done") is None
        assert normalize_status(None) is None

    def test_parse_instant(self):
        """Test ISO, Z suffix, epoch ms and plain dates"""
        expected = datetime(2025, 1, 1, tzinfo=timezone.utc)

        assert parse_instant("2025-01-01T00:00:00Z") == expected
        assert parse_instant("2025-01-01T00:00:00.000+00:00") == expected
        assert parse_instant(1735689600000) == expected
        assert parse_instant("2025-01-01") == expected
        assert parse_instant("") is None
        assert parse_instant("not a date") is None
        assert parse_instant(True) is None


class TestDeduplicate:
    """Test collapsing records with the same uniqueId"""

    def test_newer_wins_in_first_slot(self):
        """Test the newer record replaces the older in its original position"""
        old = _record("A", updatedAt="2025-01-01T00:00:00Z", formType="ubiShop")
        other = _record("B")
        new = _record("A", updatedAt="2025-01-05T00:00:00Z", formType="ubiApf")

        assert deduplicate([old, other, new]) == [new, other]

    def test_older_duplicate_dropped(self):
        """Test an older later record does not replace a newer one"""
        new = _record("A", updatedAt="2025-01-05T00:00:00Z")
        old = _record("A", updatedAt="2025-01-01T00:00:00Z")

        assert deduplicate([new, old]) == [new]

    def test_tie_keeps_first(self):
        """Test equal timestamps keep the first seen"""
        first = _record("A", createdAt="2025-01-01T00:00:00Z", formType="ubiShop")
        second = _record("A", createdAt="2025-01-01T00:00:00Z", formType="bomFlat")

        assert deduplicate([first, second]) == [first]

    def test_unparsable_timestamp_keeps_existing(self):
        """Test a missing timestamp never replaces"""
        first = _record("A")
        second = _record("A", updatedAt="2025-01-01T00:00:00Z")

        assert deduplicate([first, second]) == [first]

    def test_lastupdated_preferred(self):
        """Test lastUpdatedAt takes precedence over updatedAt"""
        first = _record("A", lastUpdatedAt="2025-02-01T00:00:00Z", updatedAt="2025-01-01T00:00:00Z")
        second = _record("A", updatedAt="2025-01-20T00:00:00Z")

        assert deduplicate([first, second]) == [first]

    def test_records_without_unique_id_kept(self):
        """Test records lacking a uniqueId are never merged"""
        a = {"status": "pending"}
        b = {"status": "pending", "uniqueId": ""}

        assert deduplicate([a, b]) == [a, b]


class TestSummary:
    """Test status counts and completion rate"""

    def test_counts_and_rate(self):
        """Test approved plus rejected over total"""
        records = [
            _record("1", "approved"),
            _record("2", "Rejected"),
            _record("3", "approved"),
            _record("4", "pending"),
        ]

        summary = summarize(records)

        assert summary.count(RecordStatus.APPROVED) == 2
        assert summary.count(RecordStatus.REJECTED) == 1
        assert summary.completion_rate == 75
        assert summary.to_dict()["completionRate"] == "75%"
        assert summary.to_dict()["total"] == 4

    def test_rate_rounds_half_up(self):
        """Test 1 of 8 rounds to 13"""
        records = [_record("0", "approved")] + [_record(str(i)) for i in range(1, 8)]

        assert summarize(records).completion_rate == 13

    def test_empty(self):
        """Test no records gives zero"""
        assert summarize([]).completion_rate == 0

    def test_unknown_status_counted_in_total_only(self):
        """Test unrecognised statuses add to the total"""
        summary = summarize([_record("1", "archived")])

        assert summary.total == 1
        assert sum(summary.counts.values()) == 0


class TestDurations:
    """Test elapsed time of open records"""

    def test_open_record_duration(self):
        """Test days, hours, minutes and seconds since creation"""
        record = _record("A", "pending", createdAt="2025-01-01T00:00:00Z")

        durations = compute_durations([record], NOW)

        assert durations["id-A"] == ElapsedDuration(1, 1, 2, 3)
        assert str(durations["id-A"]) == "1d 1h 2m 3s"

    def test_closed_records_skipped(self):
        """Test approved records have no running duration"""
        record = _record("A", "approved", createdAt="2025-01-01T00:00:00Z")

        assert compute_durations([record], NOW) == {}

    def test_future_creation_clamped(self):
        """Test clock skew never gives negative durations"""
        record = _record("A", "rework", createdAt="2025-02-01T00:00:00Z")

        assert compute_durations([record], NOW)["id-A"].total_seconds == 0

    def test_keyed_by_unique_id_without_internal_id(self):
        """Test uniqueId is the fallback key"""
        record = {"uniqueId": "VAL-5", "status": "on-progress", "createdAt": "2025-01-02T01:02:00Z"}

        assert compute_durations([record], NOW)["VAL-5"].seconds == 3


class TestDurationTracker:
    """Test the background duration refresher"""

    @pytest.mark.asyncio
    async def test_start_computes_immediately(self):
        """Test durations are available as soon as the tracker starts"""
        records = [_record("A", createdAt="2025-01-01T00:00:00Z")]
        tracker = DurationTracker(lambda: records, interval=0.01, clock=lambda: NOW)

        await tracker.start()
        try:
            assert tracker.running
            assert str(tracker.snapshot()["id-A"]) == "1d 1h 2m 3s"
        finally:
            await tracker.stop()

        assert not tracker.running

    @pytest.mark.asyncio
    async def test_refresh_picks_up_new_records(self):
        """Test the loop recomputes from the current source"""
        records = []
        tracker = DurationTracker(lambda: records, interval=0.01, clock=lambda: NOW)

        await tracker.start()
        records.append(_record("B", createdAt="2025-01-02T01:00:00Z"))
        await asyncio.sleep(0.05)
        await tracker.stop()

        assert tracker.snapshot()["id-B"].minutes == 2

    @pytest.mark.asyncio
    async def test_failed_refresh_keeps_loop_alive(self, caplog):
        """Test a source error is logged and the next tick recovers"""
        calls = []

        def flaky():
            calls.append(1)
            if len(calls) == 2:
                raise RuntimeError("source unavailable")
            return [_record("C", createdAt="2025-01-02T01:00:00Z")]

        tracker = DurationTracker(flaky, interval=0.01, clock=lambda: NOW)

        with caplog.at_level(logging.ERROR, logger="valuedesk"):
            await tracker.start()
            await asyncio.sleep(0.1)
            assert tracker.running
            await tracker.stop()

        assert len(calls) > 2
        assert "id-C" in tracker.snapshot()
        assert any("source unavailable" in r.getMessage() for r in caplog.records)


class TestQuery:
    """Test query validation, toggling and filter changes"""

    def test_defaults(self):
        """Test default sort and page size"""
        query = DashboardQuery()

        assert query.sort_field == "createdAt"
        assert query.sort_order == "desc"
        assert query.page == 1
        assert query.page_size == 10

    def test_toggle_same_field_flips_order(self):
        """Test re-selecting the sort column flips direction and resets the page"""
        query = DashboardQuery(page=3).toggle_sort("createdAt")

        assert query.sort_order == "asc"
        assert query.page == 1
        assert query.toggle_sort("createdAt").sort_order == "desc"

    def test_toggle_new_field_starts_ascending(self):
        """Test a new column sorts ascending"""
        query = DashboardQuery(sort_order="asc").toggle_sort("city")

        assert query.sort_field == "city"
        assert query.sort_order == "asc"

    def test_with_filters_resets_page(self):
        """Test filter changes go back to page 1"""
        query = DashboardQuery(page=4).with_filters(city="Pune", status="Approved")

        assert query.page == 1
        assert query.city == "Pune"
        assert query.status is RecordStatus.APPROVED

    def test_blank_filters_cleared(self):
        """Test blank strings mean no filter"""
        query = build_query(city="  ", status="")

        assert query.city is None
        assert query.status is None

    def test_invalid_values(self):
        """Test rejected values raise ValidationError"""
        with pytest.raises(ValidationError):
            build_query(status="finished")
        with pytest.raises(ValidationError) as exc_info:
            build_query(page=0)
        assert exc_info.value.details["field"] == "page"


class TestFilterAndSort:
    """Test in-memory filtering and ordering"""

    def test_filters_combine(self):
        """Test every set filter must match"""
        records = [
            _record("1", "approved", city="Pune", bankName="BOM"),
            _record("2", "approved", city="Mumbai", bankName="BOM"),
            _record("3", "pending", city="Pune", bankName="BOM"),
        ]

        result = filter_records(records, DashboardQuery(status="approved", city="Pune"))

        assert [r["uniqueId"] for r in result] == ["1"]

    def test_case_insensitive_strings(self):
        """Test strings sort without regard to case"""
        records = [_record("1", city="pune"), _record("2", city="Aurangabad"), _record("3", city="Mumbai")]

        ordered = sort_records(records, "city", "asc")

        assert [r["city"] for r in ordered] == ["Aurangabad", "Mumbai", "pune"]

    def test_dates_by_instant(self):
        """Test date columns compare by time, not text"""
        records = [
            _record("1", createdAt="2025-01-01T10:00:00+05:30"),
            _record("2", createdAt="2025-01-01T06:00:00Z"),
        ]

        assert [r["uniqueId"] for r in sort_records(records, "createdAt", "asc")] == ["1", "2"]
        assert [r["uniqueId"] for r in sort_records(records, "createdAt", "desc")] == ["2", "1"]

    def test_missing_values_last(self):
        """Test records without the column go last in both orders"""
        records = [_record("1"), _record("2", city="Pune"), _record("3", city="Nagpur")]

        assert sort_records(records, "city", "asc")[-1]["uniqueId"] == "1"
        assert sort_records(records, "city", "desc")[-1]["uniqueId"] == "1"

    def test_duration_sort(self):
        """Test the duration column sorts by elapsed seconds"""
        records = [
            _record("1", "pending", createdAt="2025-01-01T12:00:00Z"),
            _record("2", "approved", createdAt="2024-01-01T00:00:00Z"),
            _record("3", "pending", createdAt="2025-01-01T00:00:00Z"),
        ]
        durations = compute_durations(records, NOW)

        ordered = sort_records(records, "duration", "desc", durations)

        assert [r["uniqueId"] for r in ordered] == ["3", "1", "2"]


class TestDashboardAggregator:
    """Test fetching and viewing through the gateway"""

    @staticmethod
    def _handler(request):
        path = request.url.path
        if path == "/api/valuations":
            return httpx.Response(200, json=[
                _record("A", "approved", city="Pune", createdAt="2025-01-01T00:00:00Z"),
                _record("B", "pending", city="Nashik", createdAt="2025-01-01T00:00:00Z"),
            ])
        if path == "/api/bof-maharashtra":
            return httpx.Response(200, json={"data": {"data": [
                _record("A", "rework", city="Pune", createdAt="2025-01-01T00:00:00Z",
                        updatedAt="2025-01-03T00:00:00Z"),
            ]}})
        if path == "/api/ubi-apf":
            return httpx.Response(500, json={"message": "collection offline"})
        return httpx.Response(200, json={"ok": True})

    @pytest.mark.asyncio
    async def test_fetch_all_merges_and_tolerates_failures(self, make_gateway, memory_session):
        """Test failed sources count as empty and duplicates keep the newest"""
        aggregator = DashboardAggregator(make_gateway(self._handler, session_store=memory_session))

        records = await aggregator.fetch_all("reviewer", "manager", "client-1")

        assert [r["uniqueId"] for r in records] == ["A", "B"]
        assert records[0]["formType"] == "bomFlat"
        assert records[0]["status"] == "rework"
        assert records[1]["formType"] == "ubiShop"
        assert aggregator.summary.total == 2
        assert aggregator.filter_options()["cities"] == ["Nashik", "Pune"]

    @pytest.mark.asyncio
    async def test_fetch_all_bypasses_cache(self, make_gateway, memory_session):
        """Test every load goes back to the server"""
        calls = []

        def handler(request):
            calls.append(request.url.path)
            return self._handler(request)

        aggregator = DashboardAggregator(make_gateway(handler, session_store=memory_session))
        await aggregator.fetch_all("reviewer", "manager", "client-1")
        await aggregator.fetch_all("reviewer", "manager", "client-1")

        assert calls.count("/api/valuations") == 2

    @pytest.mark.asyncio
    async def test_view_pages_and_clamps(self, make_gateway, memory_session):
        """Test the view pages the sorted records and clamps the page"""
        aggregator = DashboardAggregator(make_gateway(self._handler, session_store=memory_session))
        await aggregator.fetch_all("reviewer", "manager", "client-1")

        view = aggregator.view(DashboardQuery(sort_field="city", sort_order="asc", page=9, page_size=1), NOW)

        assert view["page"] == 2
        assert view["total_pages"] == 2
        assert [r["city"] for r in view["items"]] == ["Pune"]
        assert view["has_previous"] is True

    @pytest.mark.asyncio
    async def test_request_rework_routes_by_form_type(self, make_gateway, memory_session):
        """Test rework goes to the record's own collection and reloads"""
        posts = []

        def handler(request):
            if request.method == "POST":
                posts.append(request.url.path)
                return httpx.Response(200, json={"ok": True})
            return self._handler(request)

        aggregator = DashboardAggregator(make_gateway(handler, session_store=memory_session))
        records = await aggregator.fetch_all("reviewer", "manager", "client-1")

        reloaded = await aggregator.request_rework(records[0], "Check area", "reviewer", "manager")

        assert posts == ["/api/bof-maharashtra/A/request-rework"]
        assert len(reloaded) == 2

    @pytest.mark.asyncio
    async def test_request_rework_unknown_form_type(self, make_gateway):
        """Test records without a form type cannot be sent back"""
        aggregator = DashboardAggregator(make_gateway(self._handler))

        with pytest.raises(UnknownFormTypeError):
            await aggregator.request_rework({"uniqueId": "X"}, "c", "u", "r")
