"""
Record Service - per form type access to the valuation collections.

Each report template (form type) lives in its own collection on the
record storage API. The service wraps the list / fetch / rework calls for
one collection on top of the shared RequestGateway.
"""

from enum import Enum
from typing import Any, Dict, List, Optional

from valuedesk.core.config import settings
from valuedesk.core.exceptions import GatewayError, RecordNotFoundError, UnknownFormTypeError
from valuedesk.core.logging_config import logger
from valuedesk.services.gateway import RequestGateway


class FormType(str, Enum):
    UBI_SHOP = "ubiShop"
    BOM_FLAT = "bomFlat"
    UBI_APF = "ubiApf"

    @property
    def endpoint(self) -> str:
        return {
            FormType.UBI_SHOP: settings.UBI_SHOP_ENDPOINT,
            FormType.BOM_FLAT: settings.BOM_FLAT_ENDPOINT,
            FormType.UBI_APF: settings.UBI_APF_ENDPOINT,
        }[self]

    @classmethod
    def parse(cls, value: Any) -> "FormType":
        """FormType for ``value``; raises UnknownFormTypeError"""
        if isinstance(value, FormType):
            return value
        for form_type in cls:
            if form_type.value == value:
                return form_type
        raise UnknownFormTypeError(str(value))


# Dashboard fetch order; dedup ties keep the earlier collection
FETCH_ORDER = (FormType.UBI_SHOP, FormType.BOM_FLAT, FormType.UBI_APF)


def extract_records(payload: Any) -> List[Dict[str, Any]]:
    """
    Record list out of a collection response.

    Accepts a bare list, ``{"data": [...]}`` or ``{"data": {"data": [...]}}``;
    anything else yields an empty list.
    """
    if isinstance(payload, list):
        records = payload
    elif isinstance(payload, dict) and isinstance(payload.get("data"), list):
        records = payload["data"]
    elif (
        isinstance(payload, dict)
        and isinstance(payload.get("data"), dict)
        and isinstance(payload["data"].get("data"), list)
    ):
        records = payload["data"]["data"]
    else:
        records = []
    return [record for record in records if isinstance(record, dict)]


class RecordService:
    """List, fetch and send back records of one form type"""

    def __init__(self, gateway: RequestGateway, form_type):
        self.gateway = gateway
        self.form_type = FormType.parse(form_type)

    @property
    def endpoint(self) -> str:
        return self.form_type.endpoint

    async def list_records(self, username: str, role: str, client_id: str) -> List[Dict[str, Any]]:
        response = await self.gateway.get(
            self.endpoint,
            params={"username": username, "userRole": role, "clientId": client_id},
        )
        records = extract_records(response.data)
        logger.debug(f"[RecordService] {self.form_type.value}: {len(records)} records")
        return records

    async def get_record(self, unique_id: str) -> Dict[str, Any]:
        """
        Fetch one record by its unique id.

        Raises:
            RecordNotFoundError: the collection has no such record
        """
        try:
            response = await self.gateway.get(f"{self.endpoint}/{unique_id}")
        except GatewayError as e:
            if e.status_code == 404:
                raise RecordNotFoundError(unique_id)
            raise

        payload = response.data
        if isinstance(payload, dict) and isinstance(payload.get("data"), dict):
            payload = payload["data"]
        if not isinstance(payload, dict) or not payload:
            raise RecordNotFoundError(unique_id)
        return payload

    async def request_rework(
        self,
        unique_id: str,
        comments: str,
        username: str,
        role: str,
    ) -> Optional[Any]:
        """Send a record back to its author with reviewer comments"""
        response = await self.gateway.post(
            f"{self.endpoint}/{unique_id}/request-rework",
            json={"reworkComments": comments, "username": username, "userRole": role},
        )
        self.gateway.invalidate_cache(self.endpoint)
        logger.info(f"[RecordService] Rework requested for {unique_id} ({self.form_type.value}) by {username}")
        return response.data
