"""
Trail repository: trail-specific operations on top of the document store.

Trails are partitioned by ``location.region``. Every listing operation goes
through a fresh ``TrailQueryBuilder`` so inactive trails are never returned
and all caller values are bound as parameters.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from api.errors import DocumentNotFoundError
from api.models import Difficulty, SearchRequest
from api.query_builder import TrailQueryBuilder
from api.store import DocumentStore

TOP_RATED_MIN_REVIEWS = 5


@dataclass
class SearchResult:
    """One page of search results plus what is needed to fetch the next."""

    trails: list[dict[str, Any]]
    total: int
    has_more: bool
    offset: int
    limit: int
    ignored_filters: list[str] = field(default_factory=list)


class TrailRepository:
    """Create, read, search and maintain trail documents."""

    def __init__(self, store: DocumentStore, logger: Optional[logging.Logger] = None):
        self.store = store
        self.logger = logger or logging.getLogger(__name__)

    def create(self, trail: dict[str, Any]) -> dict[str, Any]:
        """
        Store a new, active trail partitioned by its region.

        Raises:
            ValueError: If the trail has no location.region
        """
        region = (trail.get("location") or {}).get("region")
        if not region:
            raise ValueError("Trail location.region is required")
        return self.store.create({**trail, "isActive": True}, partition_key=region)

    def find_by_id(self, trail_id: str, region: str) -> dict[str, Any] | None:
        return self.store.read(trail_id, region)

    def _run_listing(self, builder: TrailQueryBuilder) -> list[dict[str, Any]]:
        return self.store.query(builder.build(self.store.renderer))

    def search(self, request: SearchRequest) -> SearchResult:
        """
        Run a full trail search.

        Executes the count query and the paginated data query built from the
        same filters, then derives ``has_more`` from the total.

        Args:
            request (SearchRequest): Text, filters, sort and pagination

        Returns:
            SearchResult: The requested page with total and has_more

        Raises:
            DocumentStoreError: If either query fails
        """
        builder = (
            TrailQueryBuilder()
            .with_text_search(request.query)
            .with_filters(request.filters)
            .sort_by(request.sort_by, request.sort_order)
            .with_pagination(request.offset, request.limit)
        )
        if self.logger.isEnabledFor(logging.DEBUG):
            self.logger.debug(f"Trail search state: {builder.filter_summary()}")

        total = self.store.count(builder.build_count_query(self.store.renderer))
        trails = self.store.query(builder.build(self.store.renderer))

        page = builder.page
        has_more = page.offset + len(trails) < total
        self.logger.info(
            f"Trail search returned {len(trails)} of {total} trails "
            f"(offset={page.offset}, limit={page.limit})"
        )

        return SearchResult(
            trails=trails,
            total=total,
            has_more=has_more,
            offset=page.offset,
            limit=page.limit,
            ignored_filters=[str(error) for error in builder.rejected],
        )

    def find_by_region(self, region: str, limit: int = 20) -> list[dict[str, Any]]:
        builder = (
            TrailQueryBuilder()
            .with_region(region)
            .sort_by("rating", "desc")
            .with_pagination(0, limit)
        )
        return self._run_listing(builder)

    def find_by_park(self, park: str, limit: int = 20) -> list[dict[str, Any]]:
        builder = (
            TrailQueryBuilder()
            .with_park(park)
            .sort_by("rating", "desc")
            .with_pagination(0, limit)
        )
        return self._run_listing(builder)

    def find_top_rated(self, limit: int = 10, region: str | None = None) -> list[dict[str, Any]]:
        """Highest rated trails with more than a handful of reviews."""
        builder = (
            TrailQueryBuilder()
            .with_review_count_above(TOP_RATED_MIN_REVIEWS)
            .with_region(region)
            .sort_by("rating", "desc")
            .with_pagination(0, limit)
        )
        return self._run_listing(builder)

    def find_recommended(
        self,
        fitness_level: Difficulty | str,
        max_distance: float,
        region: str | None = None,
        limit: int = 10,
    ) -> list[dict[str, Any]]:
        """Trails matching a hiker's fitness level within a distance budget."""
        builder = (
            TrailQueryBuilder()
            .with_difficulty([fitness_level])
            .with_distance_range(max_distance=max_distance)
            .with_region(region)
            .sort_by("rating", "desc")
            .with_pagination(0, limit)
        )
        return self._run_listing(builder)

    def update_rating(self, trail_id: str, region: str, new_rating: float) -> dict[str, Any]:
        """
        Fold a new rating into the trail's running average.

        Raises:
            ValueError: If the rating is outside 1-5
            DocumentNotFoundError: If the trail does not exist
        """
        if not 1 <= new_rating <= 5:
            raise ValueError(f"Rating must be between 1 and 5, got {new_rating}")

        trail = self.store.read(trail_id, region)
        if trail is None:
            raise DocumentNotFoundError(self.store.collection, trail_id, region)

        ratings = dict(trail.get("ratings") or {})
        current_average = ratings.get("average") or 0.0
        current_count = ratings.get("count") or 0
        new_count = current_count + 1
        new_average = (current_average * current_count + new_rating) / new_count

        ratings["average"] = round(new_average, 2)
        ratings["count"] = new_count
        return self.store.update(trail_id, region, {"ratings": ratings})

    def deactivate(self, trail_id: str, region: str) -> dict[str, Any]:
        return self.store.update(trail_id, region, {"isActive": False})

    def reactivate(self, trail_id: str, region: str) -> dict[str, Any]:
        return self.store.update(trail_id, region, {"isActive": True})
