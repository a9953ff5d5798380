import httpx
import pytest

from luxebot.models.chat import ContentKind
from luxebot.services.catalog import (
    CatalogError,
    FixturePropertyCatalog,
    HttpPropertyCatalog,
    build_catalog,
)
from luxebot.services.recommender import CATALOG_APOLOGY, recommend
from luxebot.services.session_store import SessionContext

from conftest import make_property

_LISTING = {
    "id": 7,
    "name": "Eko Atlantic Loft",
    "location": "Victoria Island, Lagos",
    "pricePerNight": 95000,
    "bedrooms": 2,
    "bathrooms": 2,
    "maxGuests": 4,
    "imageUrl": "https://example.com/loft.jpg",
    "featured": True,
    "isNew": False,
    "description": "ignored by the summary model",
}


def _catalog(handler):
    return HttpPropertyCatalog("https://luxe.example.com/", transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_http_catalog_reads_listing_endpoints():
    paths = []

    def handler(request: httpx.Request) -> httpx.Response:
        paths.append(request.url.path)
        if request.url.path == "/api/properties/7":
            return httpx.Response(200, json=_LISTING)
        if request.url.path == "/api/properties/99":
            return httpx.Response(404, json={"message": "Property not found"})
        return httpx.Response(200, json=[_LISTING])

    catalog = _catalog(handler)

    featured = await catalog.list_featured()
    everything = await catalog.list_all()
    one = await catalog.get_by_id(7)
    missing = await catalog.get_by_id(99)

    assert featured[0].price_per_night == 95000
    assert everything[0].image_url == "https://example.com/loft.jpg"
    assert one is not None and one.name == "Eko Atlantic Loft"
    assert missing is None
    assert paths == ["/api/properties/featured", "/api/properties", "/api/properties/7", "/api/properties/99"]


@pytest.mark.asyncio
async def test_http_catalog_server_error_raises_catalog_error():
    catalog = _catalog(lambda request: httpx.Response(500, json={"message": "Failed to fetch properties"}))

    with pytest.raises(CatalogError):
        await catalog.list_all()


@pytest.mark.asyncio
async def test_http_catalog_connection_error_raises_catalog_error():
    def refuse(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(CatalogError):
        await _catalog(refuse).list_featured()


def test_build_catalog_follows_environment(monkeypatch):
    assert isinstance(build_catalog(), FixturePropertyCatalog)
    monkeypatch.setenv("LUXEBOT_CATALOG_URL", "https://luxe.example.com")
    assert isinstance(build_catalog(), HttpPropertyCatalog)


@pytest.mark.asyncio
async def test_fixture_catalog_featured_subset(catalog):
    featured = await catalog.list_featured()
    everything = await catalog.list_all()

    assert {prop.id for prop in featured} == {1, 2, 3}
    assert len(everything) == 5
    assert await catalog.get_by_id(42) is None


@pytest.mark.asyncio
async def test_recommend_caches_catalog_per_session():
    calls = []

    class CountingCatalog(FixturePropertyCatalog):
        async def list_featured(self):
            calls.append("featured")
            return await super().list_featured()

    catalog = CountingCatalog([make_property(1, "Ikoyi, Lagos")])
    context = SessionContext.start("cache")

    await recommend("find a place", context, catalog)
    await recommend("find another place", context, catalog)

    assert calls == ["featured"]


@pytest.mark.asyncio
async def test_recommend_uses_all_listings_when_none_featured():
    catalog = FixturePropertyCatalog([make_property(4, "Ikeja, Lagos", featured=False)])

    recommendation = await recommend("anything in Ikeja?", SessionContext.start("plain"), catalog)

    assert [prop.id for prop in recommendation.properties] == [4]
    assert recommendation.message == "Here are some properties I recommend in Ikeja:"


@pytest.mark.asyncio
async def test_recommend_apologizes_when_catalog_fails():
    class BrokenCatalog(FixturePropertyCatalog):
        async def list_featured(self):
            raise CatalogError("down")

    recommendation = await recommend("find a place", SessionContext.start("broken"), BrokenCatalog([]))

    assert recommendation.message == CATALOG_APOLOGY
    assert recommendation.kind == ContentKind.PLAIN_TEXT
    assert recommendation.properties == []


@pytest.mark.asyncio
async def test_recommend_merges_slots_when_called_on_its_own(catalog):
    context = SessionContext.start("standalone")

    first = await recommend("a place in Ikoyi for 2 guests", context, catalog)
    again = await recommend("a place in Ikoyi for 2 guests", context, catalog)

    assert context.preferred_location == "ikoyi"
    assert context.guest_count == 2
    assert [prop.id for prop in first.properties] == [prop.id for prop in again.properties] == [3]
