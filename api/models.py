"""
Pydantic models for API request/response validation.

These models define the trail document shape, the search request accepted
by the API, and the response returned for searches. They automatically
generate OpenAPI schema definitions.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, model_validator


class Difficulty(str, Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"
    EXPERT = "expert"


class TrailType(str, Enum):
    LOOP = "loop"
    OUT_AND_BACK = "out-and-back"
    POINT_TO_POINT = "point-to-point"
    SHUTTLE = "shuttle"


class SortField(str, Enum):
    RATING = "rating"
    DISTANCE = "distance"
    DIFFICULTY = "difficulty"
    POPULARITY = "popularity"
    ELEVATION = "elevation"
    NAME = "name"
    CREATED = "created"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


class Range(BaseModel):
    """Inclusive numeric bounds; either side may be omitted."""

    min: float | None = Field(None, ge=0, description="Lower bound (inclusive)")
    max: float | None = Field(None, ge=0, description="Upper bound (inclusive)")


class Coordinates(BaseModel):
    longitude: float = Field(..., ge=-180, le=180)
    latitude: float = Field(..., ge=-90, le=90)


class LocationFilter(BaseModel):
    """Geospatial filter. Accepted for compatibility but not applied."""

    coordinates: Coordinates
    radius: float = Field(..., ge=1, le=500, description="Search radius in km")


class FilterSet(BaseModel):
    """
    Optional trail filters.

    Every populated field narrows the search; an absent field adds no
    constraint. Values within a list field are OR-ed, fields are AND-ed.
    """

    difficulty: list[Difficulty] | None = Field(
        None, description="Difficulty levels to include", examples=[["intermediate"]]
    )
    distance: Range | None = Field(None, description="Trail length in km")
    duration: Range | None = Field(None, description="Estimated duration in hours")
    elevation_gain: Range | None = Field(None, description="Elevation gain in metres")
    rating: Range | None = Field(None, description="Average rating bounds (0-5)")
    trail_type: list[TrailType] | None = Field(None, description="Trail layouts to include")
    features: list[str] | None = Field(
        None,
        description="Features such as 'scenic views', 'water features', 'wildlife' or a species name",
        examples=[["scenic views", "elk"]],
    )
    amenities: list[str] | None = Field(
        None,
        description="Amenities: parking, restrooms, camping, drinking water",
        examples=[["parking"]],
    )
    region: str | None = Field(None, max_length=100, description="Exact region match")
    seasonal_month: int | None = Field(
        None, ge=1, le=12, description="Month (1-12) in which the trail must be accessible"
    )
    location: LocationFilter | None = Field(
        None, description="Geospatial filter (not supported, ignored)"
    )

    @model_validator(mode="after")
    def check_rating_bounds(self) -> "FilterSet":
        if self.rating is not None:
            for value in (self.rating.min, self.rating.max):
                if value is not None and value > 5:
                    raise ValueError("rating bounds must be between 0 and 5")
        return self


class SearchRequest(BaseModel):
    """A complete trail search: free text, filters, sort and pagination."""

    query: str | None = Field(
        None,
        max_length=200,
        description="Free text matched against name, description, park and region",
        examples=["mountain"],
    )
    filters: FilterSet | None = None
    sort_by: SortField = Field(SortField.RATING, description="Sort field")
    sort_order: SortOrder = Field(SortOrder.DESC, description="Sort direction")
    limit: int = Field(20, ge=1, le=100, description="Page size")
    offset: int = Field(0, ge=0, description="Number of results to skip")

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "query": "mountain",
                    "filters": {
                        "difficulty": ["intermediate", "advanced"],
                        "distance": {"min": 5, "max": 20},
                    },
                    "sort_by": "rating",
                    "sort_order": "desc",
                    "limit": 10,
                    "offset": 0,
                }
            ]
        }
    }


class Trail(BaseModel):
    """
    A trail document as stored in the trails collection.

    Nested sections are kept as plain dictionaries so that documents written
    by other clients round-trip without losing fields.
    """

    id: str = Field(..., description="Document identifier", examples=["3f1c9a52"])
    name: str = Field(..., description="Trail name", examples=["Mount Washington Loop"])
    description: str | None = Field(None, description="Trail description")
    location: dict[str, Any] = Field(
        ...,
        description="Region, park, country and coordinates",
        examples=[{"region": "White Mountains", "park": "White Mountain NF", "country": "US"}],
    )
    characteristics: dict[str, Any] = Field(
        default_factory=dict,
        description="Difficulty, distance (km), duration (hours), elevation gain (m), trail type",
    )
    features: dict[str, Any] = Field(default_factory=dict)
    safety: dict[str, Any] = Field(default_factory=dict)
    amenities: dict[str, Any] = Field(default_factory=dict)
    ratings: dict[str, Any] = Field(default_factory=dict)
    is_active: bool = Field(True, alias="isActive")
    partition_key: str | None = Field(None, alias="partitionKey")
    created_at: str | None = Field(None, alias="createdAt")
    updated_at: str | None = Field(None, alias="updatedAt")

    model_config = {"populate_by_name": True}


class TrailsSearchResponse(BaseModel):
    """Response model for trail searches."""

    trail_count: int = Field(..., ge=0, description="Number of trails in this page", examples=[10])
    total: int = Field(..., ge=0, description="Total number of matching trails", examples=[42])
    has_more: bool = Field(..., description="Whether more results exist past this page")
    offset: int = Field(..., ge=0)
    limit: int = Field(..., ge=1)
    ignored_filters: list[str] = Field(
        default_factory=list,
        description="Filter values that were present but invalid and therefore not applied",
        examples=[["Invalid value 'spa' for filter 'amenities': unknown amenity"]],
    )
    trails: list[Trail] = Field(..., description="Trails in this page")
