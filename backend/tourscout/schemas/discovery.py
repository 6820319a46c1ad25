"""Tour discovery request/response schemas."""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class DiscoveryRequest(BaseModel):
    """Body of POST /tours/discover."""

    destination: str = Field(..., min_length=1, examples=["Lisbon"])
    interests: List[str] = []
    duration: Optional[int] = Field(None, ge=1, description="Trip length in days")
    travelers: Optional[int] = Field(None, ge=1)
    budget: Optional[float] = Field(None, ge=0, description="Whole-trip budget")
    category: Optional[str] = None


class DiscoveredTourResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    description: str
    full_description: str
    location: str
    city: str
    country: str
    coordinates: Optional[Dict[str, Any]] = None
    price: Optional[float] = None
    currency: str
    price_type: str
    duration: Optional[float] = None
    duration_display: str
    images: List[str]
    included: List[str]
    excluded: List[str]
    highlights: List[str]
    max_participants: int
    min_participants: int
    operator_name: Optional[str] = None
    operator_id: Optional[str] = None
    operator_logo: Optional[str] = None
    verified: bool
    rating: float
    reviews: int
    availability: List[str]
    categories: List[str]
    category: str
    difficulty: Optional[str] = None
    languages: List[str]
    match_score: int
    featured: bool
    cancellation_policy: str
    starting_point: Optional[str] = None
    ending_point: Optional[str] = None
    tour_type: str


class DiscoveryResult(BaseModel):
    tours: List[DiscoveredTourResponse]
