from __future__ import annotations

import os
from functools import lru_cache
from typing import Dict, List, Optional, Protocol

import httpx
import logging
from pydantic import ValidationError

from luxebot.models.catalog import PropertySummary
from luxebot.utils.fixture_loader import load_properties

logger = logging.getLogger(__name__)


class CatalogError(Exception):
    """Raised when the property catalog cannot be read."""


class PropertyCatalog(Protocol):
    async def list_all(self) -> List[PropertySummary]:
        ...

    async def list_featured(self) -> List[PropertySummary]:
        ...

    async def get_by_id(self, property_id: int) -> Optional[PropertySummary]:
        ...


@lru_cache(maxsize=1)
def get_fixture_properties() -> Dict[int, PropertySummary]:
    properties: Dict[int, PropertySummary] = {}
    for raw in load_properties():
        summary = PropertySummary.model_validate(raw)
        properties[summary.id] = summary
    return properties


class FixturePropertyCatalog:
    """Catalog backed by the bundled fixtures, or by an explicit list in tests."""

    def __init__(self, properties: Optional[List[PropertySummary]] = None) -> None:
        self._properties = list(properties) if properties is not None else None

    def _all(self) -> List[PropertySummary]:
        if self._properties is not None:
            return list(self._properties)
        return list(get_fixture_properties().values())

    async def list_all(self) -> List[PropertySummary]:
        return self._all()

    async def list_featured(self) -> List[PropertySummary]:
        return [prop for prop in self._all() if prop.featured]

    async def get_by_id(self, property_id: int) -> Optional[PropertySummary]:
        return next((prop for prop in self._all() if prop.id == property_id), None)


class HttpPropertyCatalog:
    """Reads listings from the booking site's public ``/api/properties`` endpoints."""

    def __init__(self, base_url: str, timeout: float = 10.0, transport: Optional[httpx.AsyncBaseTransport] = None) -> None:
        self.base_url = base_url.rstrip("/")
        self._timeout = httpx.Timeout(timeout, connect=5.0)
        self._transport = transport

    async def _get(self, path: str) -> httpx.Response:
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url, timeout=self._timeout, transport=self._transport
            ) as client:
                return await client.get(path)
        except httpx.HTTPError as exc:
            logger.warning("catalog.request_error path=%s err=%s", path, exc)
            raise CatalogError(f"catalog request failed: {exc}") from exc

    async def _get_list(self, path: str) -> List[PropertySummary]:
        response = await self._get(path)
        try:
            response.raise_for_status()
            return [PropertySummary.model_validate(raw) for raw in response.json()]
        except (httpx.HTTPStatusError, ValueError, TypeError, ValidationError) as exc:
            logger.warning("catalog.bad_response path=%s status=%s err=%s", path, response.status_code, exc)
            raise CatalogError(f"catalog returned an unusable response for {path}") from exc

    async def list_all(self) -> List[PropertySummary]:
        return await self._get_list("/api/properties")

    async def list_featured(self) -> List[PropertySummary]:
        return await self._get_list("/api/properties/featured")

    async def get_by_id(self, property_id: int) -> Optional[PropertySummary]:
        response = await self._get(f"/api/properties/{property_id}")
        if response.status_code == 404:
            return None
        try:
            response.raise_for_status()
            return PropertySummary.model_validate(response.json())
        except (httpx.HTTPStatusError, ValueError, ValidationError) as exc:
            logger.warning("catalog.bad_response property_id=%s err=%s", property_id, exc)
            raise CatalogError(f"catalog returned an unusable response for property {property_id}") from exc


def build_catalog(base_url: Optional[str] = None) -> PropertyCatalog:
    url = base_url or os.getenv("LUXEBOT_CATALOG_URL")
    if url:
        logger.info("catalog.selected kind=http base_url=%s", url)
        return HttpPropertyCatalog(url)
    logger.info("catalog.selected kind=fixtures")
    return FixturePropertyCatalog()
