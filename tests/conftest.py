"""
ValueDesk - Test Configuration and Fixtures
"""
import os
import base64
import io
import tempfile
from typing import Callable

import httpx
import pytest
from faker import Faker
from PIL import Image

# Set testing environment
_TEST_DIR = tempfile.mkdtemp(prefix="valuedesk-tests-")
os.environ['ENVIRONMENT'] = 'test'
os.environ['LOG_LEVEL'] = 'WARNING'
os.environ['API_BASE_URL'] = 'http://test/api'
os.environ['SERVICE_API_KEY'] = 'test-service-key'
os.environ['SESSION_DIR'] = os.path.join(_TEST_DIR, 'session')
os.environ['EXPORT_DIR'] = os.path.join(_TEST_DIR, 'exports')
os.environ['RASTER_DPI'] = '48'
os.environ['IMAGE_LOAD_TIMEOUT'] = '2'

from valuedesk.services.cache_store import RequestCache
from valuedesk.services.gateway import GatewayContext, RequestGateway
from valuedesk.services.notifications import RecordingSink
from valuedesk.services.session_store import MemorySessionStore, SessionState

fake = Faker('en_IN')
Faker.seed(1234)

BASE_URL = 'http://test/api'


def png_data_uri(color=(200, 30, 30), size=(24, 16)) -> str:
    """Small solid-colour PNG as a data URI"""
    buffer = io.BytesIO()
    Image.new('RGB', size, color).save(buffer, format='PNG')
    return 'data:image/png;base64,' + base64.b64encode(buffer.getvalue()).decode('ascii')


class FakeClock:
    """Monotonic clock the tests move by hand"""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sample_record() -> dict:
    """A bomFlat-style record with values spread across root, sections and snapshot"""
    return {
        '_id': fake.uuid4(),
        'uniqueId': 'VAL-1001',
        'clientName': fake.name(),
        'bankName': 'Bank of Maharashtra',
        'city': 'Pune',
        'engineerName': fake.name(),
        'status': 'approved',
        'createdAt': '2025-01-10T09:30:00.000Z',
        'dateOfInspection': '2025-01-12',
        'documentInformation': {
            'branch': 'S.P. Road',
            'dateOfInspection': '2025-01-14',
            'dateOfValuation': '2025-01-15',
            'valuationPurpose': 'Home loan',
        },
        'ownerDetails': {
            'ownerNameAddress': fake.name() + ', ' + fake.city(),
            'propertyDescription': 'Residential flat on the third floor',
        },
        'locationOfProperty': {
            'plotSurveyNo': '45/2',
            'doorNo': 'Flat 304',
            'residentialArea': True,
            'commercialArea': False,
            'industrialArea': False,
        },
        'documentsProduced': {
            'photocopyCopyAgreement': {'agreementForSaleExecutedName': 'Ramesh Patil'},
            'commencementCertificate': 'CC/2019/221',
        },
        'valuationResults': {
            'fairMarketValue': '4500000',
            'saleDeedValue': '4200000',
        },
        'presentValue': '4200000',
        'wardrobes': '50000',
        'showcases': 'Nil',
        'kitchenArrangements': 'NA',
        'superfineFinish': '',
        'pdfDetails': {
            'purposeOfValuation': 'Housing loan',
            'valuationPlace': 'Pune',
        },
        'propertyImages': [png_data_uri(), 'not a url'],
        'locationImages': [{'url': png_data_uri((30, 30, 200))}],
    }


@pytest.fixture
def memory_session() -> MemorySessionStore:
    return MemorySessionStore(SessionState(
        username='reviewer',
        role='manager',
        client_id='client-1',
        token='old',
        refresh_token='refresh-1',
    ))


@pytest.fixture
def recording_sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def make_gateway(clock, recording_sink) -> Callable[..., RequestGateway]:
    """
    Factory for a RequestGateway backed by httpx.MockTransport.

    ``handler`` receives each httpx.Request and returns an httpx.Response
    (it may be a coroutine function).
    """
    def factory(handler, session_store=None, ttl=None) -> RequestGateway:
        context = GatewayContext.create(
            session_store=session_store if session_store is not None else MemorySessionStore(),
            sink=recording_sink,
            cache=RequestCache(ttl=ttl, clock=clock),
        )
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url=BASE_URL)
        return RequestGateway(context=context, client=client)

    return factory


@pytest.fixture
def make_png_uri() -> Callable[..., str]:
    return png_data_uri
