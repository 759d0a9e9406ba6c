"""
Hike Planner Trail Search API

A FastAPI application that exposes trail search over the Hike Planner
trails collection.

Searches combine free text, typed filters (difficulty, distance, duration,
elevation, rating, trail type, features, amenities, region, season), sorting
and pagination. Every search returns the requested page together with the
total number of matches and whether more pages exist.

Usage:
    Start the development server:
        $ uvicorn api.main:app --reload

    The API will be available at:
        - Interactive docs (Swagger UI): http://localhost:8000/docs
        - Alternative docs (ReDoc): http://localhost:8000/redoc
        - OpenAPI schema: http://localhost:8000/openapi.json
"""

from fastapi import FastAPI, HTTPException, Path, Query
from pydantic import ValidationError
from sqlalchemy import text

from api.database import get_db_engine
from api.models import (
    Difficulty,
    FilterSet,
    Range,
    SearchRequest,
    SortField,
    SortOrder,
    Trail,
    TrailsSearchResponse,
    TrailType,
)
from api.queries import fetch_trail, search_trails
from config.settings import config
from utils.logging import setup_api_logging

logger = setup_api_logging()

# Create FastAPI app with metadata for OpenAPI documentation
app = FastAPI(
    title="Hike Planner Trail Search API",
    description="""
    API for searching hiking trails by text, difficulty, distance, duration,
    elevation, rating, trail type, features, amenities, region and season.
    """,
    version=config.APP_VERSION,
    contact={
        "name": "Hike Planner Project",
    },
)


def _range(min_value: float | None, max_value: float | None) -> Range | None:
    if min_value is None and max_value is None:
        return None
    return Range(min=min_value, max=max_value)


def _run_search(request: SearchRequest) -> dict:
    try:
        return search_trails(request)
    except Exception as e:
        logger.error(f"Trail search failed: {e}")
        raise HTTPException(
            status_code=500,
            detail=f"Error searching trails: {str(e)}",
        )


@app.get("/", tags=["Root"])
async def root():
    """
    Root endpoint returning API information and available endpoints.

    Returns basic metadata about the API and links to documentation.
    """
    return {
        "name": "Hike Planner Trail Search API",
        "version": config.APP_VERSION,
        "description": "Search hiking trails with filters, sorting and pagination",
        "documentation": {
            "swagger_ui": "/docs",
            "redoc": "/redoc",
            "openapi_json": "/openapi.json",
        },
        "endpoints": {
            "trails": "/trails",
            "trail_search": "/trails/search",
            "trail": "/trails/{trail_id}",
            "health_check": "/health",
        },
    }


@app.get(
    "/trails",
    response_model=TrailsSearchResponse,
    tags=["Trails"],
    summary="Search trails",
    description="""
    Returns one page of active trails matching the given filters.

    List filters (difficulty, trail_type, features, amenities) accept repeated
    parameters and match any of the given values; different filters must all match.
    """,
)
async def get_trails(
    q: str | None = Query(
        default=None,
        max_length=200,
        description="Free text matched against trail name, description, park and region",
    ),
    difficulty: list[Difficulty] | None = Query(
        default=None,
        description="Difficulty level; repeat for several: ?difficulty=beginner&difficulty=intermediate",
    ),
    min_distance: float | None = Query(default=None, gt=0, description="Minimum length in km"),
    max_distance: float | None = Query(default=None, gt=0, description="Maximum length in km"),
    min_duration: float | None = Query(default=None, ge=0, description="Minimum duration in hours"),
    max_duration: float | None = Query(default=None, ge=0, description="Maximum duration in hours"),
    min_elevation: float | None = Query(default=None, ge=0, description="Minimum elevation gain in metres"),
    max_elevation: float | None = Query(default=None, ge=0, description="Maximum elevation gain in metres"),
    min_rating: float | None = Query(default=None, ge=0, le=5, description="Minimum average rating"),
    max_rating: float | None = Query(default=None, ge=0, le=5, description="Maximum average rating"),
    trail_type: list[TrailType] | None = Query(default=None, description="Trail layout"),
    features: list[str] | None = Query(default=None, description="Trail features, e.g. 'scenic views'"),
    amenities: list[str] | None = Query(default=None, description="Amenities, e.g. 'parking'"),
    region: str | None = Query(default=None, max_length=100, description="Exact region"),
    month: int | None = Query(default=None, ge=1, le=12, description="Month the trail must be accessible"),
    sort_by: SortField = Query(default=SortField.RATING, description="Sort field"),
    sort_order: SortOrder = Query(default=SortOrder.DESC, description="Sort direction"),
    limit: int = Query(default=20, ge=1, le=100, description="Page size"),
    offset: int = Query(default=0, ge=0, description="Number of results to skip"),
):
    """
    Search trails using query parameters.

    **Example queries:**
    - All trails, best rated first: `/trails`
    - Text search: `/trails?q=mountain`
    - Intermediate or advanced, 5-20 km: `/trails?difficulty=intermediate&difficulty=advanced&min_distance=5&max_distance=20`
    - Loops with parking, shortest first: `/trails?trail_type=loop&amenities=parking&sort_by=distance&sort_order=asc`
    - Accessible in July: `/trails?month=7`
    - Second page of 10: `/trails?limit=10&offset=10`
    """
    try:
        request = SearchRequest(
            query=q,
            filters=FilterSet(
                difficulty=difficulty,
                distance=_range(min_distance, max_distance),
                duration=_range(min_duration, max_duration),
                elevation_gain=_range(min_elevation, max_elevation),
                rating=_range(min_rating, max_rating),
                trail_type=trail_type,
                features=features,
                amenities=amenities,
                region=region,
                seasonal_month=month,
            ),
            sort_by=sort_by,
            sort_order=sort_order,
            limit=limit,
            offset=offset,
        )
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=e.errors(include_url=False, include_context=False))

    return _run_search(request)


@app.post(
    "/trails/search",
    response_model=TrailsSearchResponse,
    tags=["Trails"],
    summary="Search trails with a JSON body",
    description="""
    Same search as `GET /trails`, taking a structured search request body.
    Unsupported geospatial `location` filters are accepted and ignored.
    """,
)
async def post_trail_search(request: SearchRequest):
    """
    Search trails using a JSON request body.

    **Example body:**
    ```json
    {
        "query": "mountain",
        "filters": {"difficulty": ["intermediate", "advanced"], "distance": {"min": 5, "max": 20}},
        "sort_by": "rating",
        "sort_order": "desc",
        "limit": 10,
        "offset": 0
    }
    ```
    """
    return _run_search(request)


@app.get(
    "/trails/{trail_id}",
    response_model=Trail,
    tags=["Trails"],
    summary="Get a trail",
    responses={404: {"description": "Trail not found"}},
)
async def get_trail(
    trail_id: str = Path(
        ...,
        description="Trail document id",
        min_length=1,
        max_length=100,
    ),
    region: str = Query(
        ...,
        min_length=1,
        max_length=100,
        description="Region the trail belongs to (its partition key)",
    ),
):
    """
    Get a single trail by id.

    **Example usage:**
    - `/trails/3f1c9a52?region=White%20Mountains`
    """
    try:
        trail = fetch_trail(trail_id, region)
    except Exception as e:
        raise HTTPException(
            status_code=500,
            detail=f"Error retrieving trail: {str(e)}",
        )

    if trail is None:
        raise HTTPException(
            status_code=404,
            detail=f"Trail '{trail_id}' not found in region '{region}'",
        )

    return trail


@app.get("/health", tags=["Health"])
async def health_check():
    """
    Health check endpoint to verify API and database connectivity.

    Returns the status of the API server and database connection.
    Useful for monitoring and load balancer health checks.
    """
    try:
        # Test database connection
        engine = get_db_engine()
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))

        return {
            "status": "healthy",
            "database": "connected",
        }
    except Exception as e:
        return {
            "status": "unhealthy",
            "database": "disconnected",
            "error": str(e),
        }
