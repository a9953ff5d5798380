from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

import logging

from luxebot.logging.flight_recorder import FlightRecorder
from luxebot.models.catalog import PropertySummary
from luxebot.models.chat import ContentKind
from luxebot.services.catalog import CatalogError, PropertyCatalog
from luxebot.services.intents import extract_slots
from luxebot.services.session_store import SessionContext

logger = logging.getLogger(__name__)

CATALOG_APOLOGY = "I'm sorry, I couldn't fetch property recommendations at the moment."


@dataclass
class Recommendation:
    message: str
    properties: List[PropertySummary] = field(default_factory=list)
    kind: ContentKind = ContentKind.PROPERTY_LIST
    exact_match: bool = True


async def load_catalog(context: SessionContext, catalog: PropertyCatalog) -> List[PropertySummary]:
    """Featured listings, fetched once per session; the full list when nothing is featured."""
    if context.catalog_cache is not None:
        return context.catalog_cache
    properties = await catalog.list_featured()
    if not properties:
        properties = await catalog.list_all()
    context.catalog_cache = properties
    return properties


async def recommend(
    text: str,
    context: SessionContext,
    catalog: PropertyCatalog,
    recorder: Optional[FlightRecorder] = None,
) -> Recommendation:
    """Pick listings for ``text``, preferring the guest's location.

    Slots are merged from ``text`` here as well, so the recommender can be called
    on its own; merging is idempotent when the dialogue manager already did it.
    """
    extract_slots(text, context)
    try:
        candidates = await load_catalog(context, catalog)
    except CatalogError as exc:
        logger.warning("recommend.catalog_error conversation=%s err=%s", context.conversation_id, exc)
        if recorder:
            recorder.log("CATALOG", "catalog_error", error=str(exc))
        return Recommendation(message=CATALOG_APOLOGY, kind=ContentKind.PLAIN_TEXT, exact_match=False)

    location = context.preferred_location
    place = f" in {location.title()}" if location else ""
    matches = candidates
    if location:
        matches = [prop for prop in candidates if location.lower() in prop.location.lower()]

    if matches:
        recommendation = Recommendation(
            message=f"Here are some properties I recommend{place}:",
            properties=list(matches),
        )
    else:
        recommendation = Recommendation(
            message=f"I don't have properties specifically{place} at the moment, but here are some popular options:",
            properties=list(candidates),
            exact_match=False,
        )

    if recorder:
        recorder.log(
            "RECOMMEND",
            "recommendations",
            location=location,
            count=len(recommendation.properties),
            exact_match=recommendation.exact_match,
        )
    return recommendation
