"""
Unit Tests for the Record Service
"""
import json

import httpx
import pytest

from valuedesk.core.exceptions import GatewayError, RecordNotFoundError, UnknownFormTypeError
from valuedesk.services.record_service import FETCH_ORDER, FormType, RecordService, extract_records


class TestFormType:
    """Test form type lookup"""

    def test_parse_known(self):
        """Test wire values map to form types and endpoints"""
        assert FormType.parse("bomFlat") is FormType.BOM_FLAT
        assert FormType.parse(FormType.UBI_APF) is FormType.UBI_APF
        assert FormType.BOM_FLAT.endpoint == "/bof-maharashtra"

    def test_parse_unknown(self):
        """Test unknown form types are rejected"""
        with pytest.raises(UnknownFormTypeError):
            FormType.parse("sbiLand")
        with pytest.raises(UnknownFormTypeError):
            FormType.parse(None)

    def test_fetch_order(self):
        """Test the collection order used for merging"""
        assert [f.value for f in FETCH_ORDER] == ["ubiShop", "bomFlat", "ubiApf"]


class TestExtractRecords:
    """Test response shape handling"""

    def test_shapes(self):
        """Test bare list, data list and nested data list"""
        record = {"uniqueId": "VAL-1"}

        assert extract_records([record]) == [record]
        assert extract_records({"data": [record]}) == [record]
        assert extract_records({"data": {"data": [record]}}) == [record]

    def test_unexpected_payloads(self):
        """Test anything else yields no records"""
        assert extract_records(None) == []
        assert extract_records("oops") == []
        assert extract_records({"data": "x"}) == []
        assert extract_records([{"a": 1}, "junk", 3]) == [{"a": 1}]


class TestRecordService:
    """Test list, fetch and rework calls"""

    @pytest.mark.asyncio
    async def test_list_records_params(self, make_gateway, memory_session):
        """Test the identity query parameters"""
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"data": [{"uniqueId": "VAL-1"}]})

        service = RecordService(make_gateway(handler, session_store=memory_session), "ubiShop")
        records = await service.list_records("reviewer", "manager", "client-1")

        assert records == [{"uniqueId": "VAL-1"}]
        assert seen[0].url.path == "/api/valuations"
        assert dict(seen[0].url.params) == {"username": "reviewer", "userRole": "manager", "clientId": "client-1"}

    @pytest.mark.asyncio
    async def test_get_record_unwraps_data(self, make_gateway):
        """Test a wrapped single record is unwrapped"""
        def handler(request):
            assert request.url.path == "/api/ubi-apf/VAL-7"
            return httpx.Response(200, json={"data": {"uniqueId": "VAL-7"}})

        service = RecordService(make_gateway(handler), FormType.UBI_APF)

        assert await service.get_record("VAL-7") == {"uniqueId": "VAL-7"}

    @pytest.mark.asyncio
    async def test_get_record_not_found(self, make_gateway):
        """Test 404 and empty payloads raise RecordNotFoundError"""
        def handler(request):
            if request.url.path.endswith("/missing"):
                return httpx.Response(404, json={"message": "Not found"})
            return httpx.Response(200, json={})

        service = RecordService(make_gateway(handler), "bomFlat")

        with pytest.raises(RecordNotFoundError):
            await service.get_record("missing")
        with pytest.raises(RecordNotFoundError):
            await service.get_record("empty")

    @pytest.mark.asyncio
    async def test_get_record_other_errors_propagate(self, make_gateway):
        """Test non-404 failures are not reported as missing records"""
        def handler(request):
            return httpx.Response(503, json={"message": "maintenance"})

        service = RecordService(make_gateway(handler), "bomFlat")

        with pytest.raises(GatewayError) as exc_info:
            await service.get_record("VAL-1")
        assert exc_info.value.status_code == 503

    @pytest.mark.asyncio
    async def test_request_rework(self, make_gateway, memory_session):
        """Test the rework call and cache invalidation of the collection"""
        seen = []

        def handler(request):
            seen.append(request)
            if request.method == "POST":
                return httpx.Response(200, json={"status": "rework"})
            return httpx.Response(200, json=[{"uniqueId": "VAL-1"}])

        service = RecordService(make_gateway(handler, session_store=memory_session), "bomFlat")
        await service.list_records("reviewer", "manager", "client-1")
        result = await service.request_rework("VAL-1", "Fix the area", "reviewer", "manager")
        await service.list_records("reviewer", "manager", "client-1")

        post = next(r for r in seen if r.method == "POST")
        assert post.url.path == "/api/bof-maharashtra/VAL-1/request-rework"
        assert json.loads(post.content) == {
            "reworkComments": "Fix the area", "username": "reviewer", "userRole": "manager",
        }
        assert result == {"status": "rework"}
        assert len([r for r in seen if r.method == "GET"]) == 2
