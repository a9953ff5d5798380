from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class PropertySummary(BaseModel):
    """Read-only projection of a listing, as served by the property catalog."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: int
    name: str
    location: str
    price_per_night: int = Field(..., alias="pricePerNight", ge=0)
    bedrooms: int = Field(..., ge=0)
    bathrooms: int = Field(..., ge=0)
    max_guests: int = Field(..., alias="maxGuests", ge=1)
    image_url: Optional[str] = Field(default=None, alias="imageUrl")
    featured: bool = False
    is_new: bool = Field(default=False, alias="isNew")


class RecommendRequest(BaseModel):
    query: str = ""


class RecommendResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    property_ids: list[int] = Field(default_factory=list, alias="propertyIds")
    message: str
