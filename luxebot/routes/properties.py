from __future__ import annotations

from fastapi import APIRouter, HTTPException, Request

from luxebot.models.catalog import RecommendRequest, RecommendResponse
from luxebot.services.catalog import CatalogError, PropertyCatalog
from luxebot.services.intents import extract_location

router = APIRouter()

MAX_RECOMMENDED = 3


@router.post("/recommend", response_model=RecommendResponse, response_model_by_alias=True)
async def recommend_properties(body: RecommendRequest, request: Request) -> RecommendResponse:
    query = body.query.strip()
    if not query:
        raise HTTPException(status_code=400, detail="Query is required")

    catalog: PropertyCatalog = request.app.state.catalog
    try:
        properties = await catalog.list_all()
    except CatalogError as exc:
        raise HTTPException(status_code=502, detail="Failed to get property recommendations") from exc

    location = extract_location(query)
    if location:
        in_area = [prop for prop in properties if location in prop.location.lower()]
        properties = in_area or properties

    return RecommendResponse(
        property_ids=[prop.id for prop in properties[:MAX_RECOMMENDED]],
        message=f'Here are some properties that match: "{query}"',
    )
