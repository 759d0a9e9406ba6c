"""
Trail query functions for the API.

These functions run searches through the trail repository and return
formatted results ready for API responses.
"""

from typing import Any

from api.database import get_db_engine
from api.models import SearchRequest
from api.repository import TrailRepository
from api.store import DocumentStore
from config.settings import config


def get_trail_repository() -> TrailRepository:
    """Build a repository over the configured trails collection."""
    return TrailRepository(DocumentStore(get_db_engine(), config.TRAILS_COLLECTION))


def search_trails(request: SearchRequest) -> dict[str, Any]:
    """
    Search trails with free text, filters, sorting and pagination.

    Args:
        request: Validated search request

    Returns:
        Dictionary containing:
            - trail_count: int (trails in this page)
            - total: int (all matching trails)
            - has_more: bool
            - offset: int
            - limit: int
            - ignored_filters: list of filter values that were skipped
            - trails: list of trail documents

    Example:
        >>> search_trails(SearchRequest(query="mountain", limit=10))
        {
            'trail_count': 10,
            'total': 23,
            'has_more': True,
            ...
        }
    """
    result = get_trail_repository().search(request)

    return {
        "trail_count": len(result.trails),
        "total": result.total,
        "has_more": result.has_more,
        "offset": result.offset,
        "limit": result.limit,
        "ignored_filters": result.ignored_filters,
        "trails": result.trails,
    }


def fetch_trail(trail_id: str, region: str) -> dict[str, Any] | None:
    """
    Fetch a single trail by id within its region partition.

    Returns:
        The trail document, or None if it does not exist
    """
    return get_trail_repository().find_by_id(trail_id, region)
